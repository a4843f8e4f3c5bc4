from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterator, Optional

from ...config.defaults import (
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY_SECONDS,
    MIN_RETRY_DELAY_SECONDS,
)
from ..errors import AuthenticationError, ConfigurationError, DispatchError

Sleeper = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryConfig:
    """Primary-provider retry policy.

    ``max_attempts`` is the total number of attempts (not retries). The delay
    before attempt ``n + 1`` is ``delay_seconds * n`` (linear backoff).
    With ``short_circuit_auth`` an :class:`AuthenticationError` stops the
    primary loop immediately instead of burning the remaining attempts.
    """

    max_attempts: int = DEFAULT_RETRY_COUNT
    delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    short_circuit_auth: bool = False

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ConfigurationError(message="retry count must be at least 1")
        if self.delay_seconds < MIN_RETRY_DELAY_SECONDS:
            raise ConfigurationError(
                message=f"retry delay must be at least {MIN_RETRY_DELAY_SECONDS}s"
            )

    def delays(self) -> Iterator[float]:
        for attempt in range(1, self.max_attempts):
            yield self.delay_seconds * attempt

    def delay_after(self, attempt: int) -> float:
        """Backoff to wait after the failed 1-based ``attempt``."""
        return self.delay_seconds * attempt

    def should_retry(self, error: DispatchError, attempt: int) -> bool:
        """Return True when another primary attempt should follow ``attempt``."""
        if attempt >= self.max_attempts:
            return False
        if isinstance(error, ConfigurationError):
            return False
        if self.short_circuit_auth and isinstance(error, AuthenticationError):
            return False
        return error.retryable


DEFAULT_RETRY_CONFIG = RetryConfig()


async def backoff(delay: float, sleeper: Optional[Sleeper] = None) -> None:
    """Suspend for ``delay`` seconds using ``sleeper`` (``asyncio.sleep`` by default)."""
    await (sleeper or asyncio.sleep)(delay)


__all__ = ["RetryConfig", "DEFAULT_RETRY_CONFIG", "Sleeper", "backoff"]
