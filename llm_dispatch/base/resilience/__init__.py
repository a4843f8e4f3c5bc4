"""Retry policy primitives."""

from .retry import DEFAULT_RETRY_CONFIG, RetryConfig, Sleeper, backoff

__all__ = ["RetryConfig", "DEFAULT_RETRY_CONFIG", "Sleeper", "backoff"]
