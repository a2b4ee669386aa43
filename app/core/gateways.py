"""Embedding and text generation gateways.

The gateways are the only entry points the pipeline uses to reach the model
service. Each one owns a retry policy; request-path calls are not retried.
"""

from functools import lru_cache
from typing import List, Optional

from app.core.config import settings
from app.core.exceptions import InvalidUpstreamResponseError, ValidationError
from app.core.ollama_client import OllamaClient
from app.core.retry_policy import NO_RETRY, RetryPolicy
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class EmbeddingGateway:
    """Turns text into a fixed-length vector."""

    def __init__(
        self,
        client: OllamaClient,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
        retry_policy: RetryPolicy = NO_RETRY,
    ):
        """Initialize the gateway.

        Args:
            client: Ollama client used for the outbound call
            model: Embedding model name (defaults to the client's model)
            dimensions: Expected vector length; None disables the check
            retry_policy: Retry policy for failed calls
        """
        self.client = client
        self.model = model or client.embedding_model
        self.dimensions = dimensions
        self.retry_policy = retry_policy

    async def embed(self, text: str) -> List[float]:
        """Embed text.

        Raises:
            ValidationError: If text is empty
            UpstreamUnavailableError: If the embedding service is unreachable
            InvalidUpstreamResponseError: If the payload is malformed or has the wrong size
        """
        if not text or not text.strip():
            raise ValidationError("Text to embed must not be empty")

        vector = await self.retry_policy.run(
            lambda: self.client.embed(text, model=self.model), name="embedding"
        )

        if self.dimensions is not None and len(vector) != self.dimensions:
            raise InvalidUpstreamResponseError(
                f"Embedding has {len(vector)} dimensions, expected {self.dimensions}"
            )
        return vector

    async def is_available(self) -> bool:
        """Probe the embedding service."""
        return await self.client.check_health()


class GenerationGateway:
    """Sends a prompt to the language model and returns the full completion."""

    def __init__(
        self,
        client: OllamaClient,
        default_model: Optional[str] = None,
        retry_policy: RetryPolicy = NO_RETRY,
    ):
        self.client = client
        self.default_model = default_model or client.generation_model
        self.retry_policy = retry_policy

    async def generate(self, prompt: str, model: Optional[str] = None) -> str:
        """Generate a completion for prompt.

        Raises:
            UpstreamUnavailableError: If the generation service is unreachable
            InvalidUpstreamResponseError: If the response field is missing
        """
        model = model or self.default_model
        return await self.retry_policy.run(
            lambda: self.client.generate(prompt, model=model), name="generation"
        )


@lru_cache
def get_ollama_client() -> OllamaClient:
    """Process-wide Ollama client built from settings."""
    return OllamaClient(
        base_url=settings.ollama.base_url,
        embedding_model=settings.ollama.embedding_model,
        generation_model=settings.ollama.generation_model,
        timeout=settings.ollama.timeout,
    )


def create_embedding_gateway(
    client: Optional[OllamaClient] = None,
    retry_policy: RetryPolicy = NO_RETRY,
) -> EmbeddingGateway:
    """Build an EmbeddingGateway from settings."""
    return EmbeddingGateway(
        client=client or get_ollama_client(),
        model=settings.ollama.embedding_model,
        dimensions=settings.ollama.embedding_dimensions,
        retry_policy=retry_policy,
    )


def create_generation_gateway(
    client: Optional[OllamaClient] = None,
    retry_policy: RetryPolicy = NO_RETRY,
) -> GenerationGateway:
    """Build a GenerationGateway from settings."""
    return GenerationGateway(
        client=client or get_ollama_client(),
        default_model=settings.ollama.generation_model,
        retry_policy=retry_policy,
    )
