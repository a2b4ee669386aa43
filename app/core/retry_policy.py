"""Retry policies for calls to external services.

Each external dependency gets an explicit policy instead of ad hoc loops.
Request-path model calls are not retried; the backfill job's startup probes
retry with a fixed delay.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")


class Backoff(str, Enum):
    """How the delay between attempts grows."""
    NONE = "none"
    FIXED = "fixed"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


@dataclass(frozen=True)
class RetryPolicy:
    """Retry settings for one external dependency.

    Attributes:
        max_attempts: Total attempts, including the first one
        delay_seconds: Base delay between attempts
        backoff: Delay growth strategy
        retry_on: Exception types that trigger another attempt
    """

    max_attempts: int = 1
    delay_seconds: float = 0.0
    backoff: Backoff = Backoff.NONE
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must be non-negative")

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given zero-based failed attempt."""
        if self.backoff == Backoff.EXPONENTIAL:
            return self.delay_seconds * (2 ** attempt)
        if self.backoff == Backoff.LINEAR:
            return self.delay_seconds * (attempt + 1)
        return self.delay_seconds

    async def run(self, operation: Callable[[], Awaitable[T]], name: str = "operation") -> T:
        """Run an operation, retrying according to the policy.

        The last error is re-raised unchanged once attempts are exhausted.
        """
        for attempt in range(self.max_attempts):
            try:
                return await operation()
            except self.retry_on as e:
                if attempt >= self.max_attempts - 1:
                    raise
                delay = self.delay_for(attempt)
                LOGGER.warning(
                    f"{name} failed (Attempt {attempt + 1}/{self.max_attempts}), retrying in {delay}s: {e}"
                )
                await asyncio.sleep(delay)
        raise RuntimeError("unreachable")  # pragma: no cover

    async def wait_until(self, probe: Callable[[], Awaitable[bool]], name: str = "service") -> bool:
        """Poll a boolean probe until it succeeds or attempts run out.

        Returns:
            True once the probe reports healthy, False if it never did
        """
        for attempt in range(self.max_attempts):
            if await probe():
                return True
            if attempt < self.max_attempts - 1:
                LOGGER.info(f"Waiting for {name}... ({attempt + 1}/{self.max_attempts})")
                await asyncio.sleep(self.delay_for(attempt))
        return False


NO_RETRY = RetryPolicy(max_attempts=1)
