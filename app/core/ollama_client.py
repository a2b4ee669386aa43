"""Ollama client for embeddings, text generation and health probes."""

import time
from numbers import Real
from typing import Any, List, Optional

import httpx
import ollama
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import (
    APIClientError,
    InvalidUpstreamResponseError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class OllamaClient:
    """Wrapper for the Ollama API client.

    Translates transport failures into the application's upstream error
    taxonomy and validates response payloads. It performs no retries; retry
    decisions belong to the gateways that own a retry policy.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        embedding_model: str = "nomic-embed-text",
        generation_model: str = "llama3.2",
        timeout: float = 120.0,
    ):
        """Initialize Ollama client.

        Args:
            base_url: Ollama API base URL
            embedding_model: Model used for embeddings
            generation_model: Default model used for text generation
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.embedding_model = embedding_model
        self.generation_model = generation_model
        self.timeout = timeout

        try:
            self.client = ollama.AsyncClient(host=self.base_url, timeout=timeout)
            LOGGER.info(f"Initialized Ollama client at {self.base_url} (timeout: {timeout}s)")
        except Exception as e:
            LOGGER.error(f"Failed to initialize Ollama client: {e}")
            raise APIClientError(f"Failed to initialize Ollama client: {e}", original_error=e)

    async def embed(self, text: str, model: Optional[str] = None) -> List[float]:
        """Generate an embedding vector for text.

        Raises:
            UpstreamUnavailableError: If Ollama cannot be reached or answers non-2xx
            InvalidUpstreamResponseError: If the embedding field is missing or malformed
        """
        model = model or self.embedding_model
        start = time.perf_counter()
        LOGGER.debug(f"Requesting embedding ({len(text)} chars) from {model}")

        response = await self._call("embedding", self.client.embeddings(model=model, prompt=text))

        embedding = _get_field(response, "embedding")
        if not isinstance(embedding, (list, tuple)) or not embedding:
            LOGGER.error(f"Invalid embedding response format from Ollama: {type(embedding).__name__}")
            raise InvalidUpstreamResponseError("Invalid embedding response format")
        if not all(isinstance(v, Real) and not isinstance(v, bool) for v in embedding):
            raise InvalidUpstreamResponseError("Embedding contains non-numeric values")

        LOGGER.info(
            f"Embedding generated in {(time.perf_counter() - start) * 1000:.0f}ms",
            extra={"model": model, "dimensions": len(embedding)},
        )
        return [float(v) for v in embedding]

    async def generate(self, prompt: str, model: Optional[str] = None) -> str:
        """Generate a complete (non-streaming) text response for a prompt.

        Raises:
            UpstreamUnavailableError: If Ollama cannot be reached or answers non-2xx
            InvalidUpstreamResponseError: If the response field is missing or empty
        """
        model = model or self.generation_model
        start = time.perf_counter()
        LOGGER.debug(f"Requesting generation ({len(prompt)} chars) from {model}")

        response = await self._call(
            "generation",
            self.client.generate(model=model, prompt=prompt, stream=False),
        )

        text = _get_field(response, "response")
        if not isinstance(text, str) or not text:
            LOGGER.error("Invalid generation response format from Ollama")
            raise InvalidUpstreamResponseError("Invalid generation response format")

        LOGGER.info(
            f"Text generated in {(time.perf_counter() - start) * 1000:.0f}ms",
            extra={
                "model": model,
                "content_length": len(text),
                "content_preview": text[:200],
            },
        )
        return text

    async def list_models(self) -> List[str]:
        """List the model names available on the Ollama server."""
        response = await self._call("tags", self.client.list())
        models = _get_field(response, "models") or []
        names = []
        for entry in models:
            name = _get_field(entry, "model") or _get_field(entry, "name")
            if name:
                names.append(name)
        return names

    async def check_health(self) -> bool:
        """Return True when the Ollama server answers its tags endpoint."""
        try:
            models = await self.list_models()
            LOGGER.info(f"Ollama is healthy, available models: {models}")
            return True
        except APIClientError as e:
            LOGGER.warning(f"Ollama health check failed: {e}")
            return False

    async def _call(self, operation: str, awaitable) -> Any:
        """Await an Ollama SDK call, mapping failures onto upstream errors."""
        try:
            return await awaitable
        except ollama.ResponseError as e:
            LOGGER.error(f"Ollama {operation} request failed: {e.status_code} {e.error}")
            raise UpstreamUnavailableError(
                f"Ollama {operation} failed with status {e.status_code}: {e.error}",
                original_error=e,
            )
        except httpx.TimeoutException as e:
            LOGGER.error(f"Ollama {operation} request timed out after {self.timeout}s")
            raise UpstreamTimeoutError(
                f"Ollama {operation} timed out after {self.timeout}s", original_error=e
            )
        except (ConnectionError, httpx.TransportError) as e:
            LOGGER.error(f"Network error - is Ollama running on {self.base_url}? {e}")
            raise UpstreamUnavailableError(
                f"Ollama is not reachable at {self.base_url}", original_error=e
            )
        except PydanticValidationError as e:
            LOGGER.error(f"Malformed Ollama {operation} payload: {e}")
            raise InvalidUpstreamResponseError(
                f"Invalid {operation} response format", original_error=e
            )
        except (ValueError, TypeError) as e:
            LOGGER.error(f"Unreadable Ollama {operation} payload: {e}")
            raise InvalidUpstreamResponseError(
                f"Invalid {operation} response format", original_error=e
            )


def _get_field(payload: Any, key: str) -> Any:
    """Read a field from an SDK response object or a plain mapping."""
    if payload is None:
        return None
    if isinstance(payload, dict):
        return payload.get(key)
    return getattr(payload, key, None)
