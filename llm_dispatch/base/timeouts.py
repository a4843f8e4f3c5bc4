"""Timeout configuration for dispatch attempts.

TimeoutConfig
    Normalized timeout values in seconds. ``request_timeout_seconds`` is the
    per-attempt deadline used when a provider sets no ``timeout_ms``
    parameter; ``connect_timeout_seconds`` and ``stream_idle_timeout_seconds``
    configure the underlying ``httpx`` client.

get_timeout_config()
    Process-cached configuration; environment overrides (all optional)::

        LLM_DISPATCH_TIMEOUT_CONNECT_SECONDS
        LLM_DISPATCH_TIMEOUT_REQUEST_SECONDS
        LLM_DISPATCH_TIMEOUT_STREAM_IDLE_SECONDS

    The cache refreshes when any of these variables changes.

Per-attempt deadlines are enforced by the adapters with ``asyncio.wait_for``
so an expired attempt is cancelled and releases its connection before the
next attempt starts.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..config.defaults import DEFAULT_TIMEOUT_MS

_ENV_CONNECT = "LLM_DISPATCH_TIMEOUT_CONNECT_SECONDS"
_ENV_REQUEST = "LLM_DISPATCH_TIMEOUT_REQUEST_SECONDS"
_ENV_STREAM_IDLE = "LLM_DISPATCH_TIMEOUT_STREAM_IDLE_SECONDS"


@dataclass(frozen=True)
class TimeoutConfig:
    """Container for normalized timeout values (seconds)."""

    connect_timeout_seconds: float = 10.0
    request_timeout_seconds: float = DEFAULT_TIMEOUT_MS / 1000.0
    stream_idle_timeout_seconds: float = 60.0


_CACHED: Optional[TimeoutConfig] = None
_ENV_GUARD: Optional[str] = None


def _parse_env_float(name: str, default: float) -> float:
    """Read a positive float from ``name``; fall back to ``default``."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        val = float(raw)
    except ValueError:
        return default
    return val if val > 0 else default


def get_timeout_config() -> TimeoutConfig:
    """Return the process-cached :class:`TimeoutConfig`."""
    global _CACHED, _ENV_GUARD  # noqa: PLW0603 - documented module cache
    guard = "/".join(os.getenv(n, "") for n in (_ENV_CONNECT, _ENV_REQUEST, _ENV_STREAM_IDLE))
    if _CACHED is not None and guard == _ENV_GUARD:
        return _CACHED
    defaults = TimeoutConfig()
    _CACHED = TimeoutConfig(
        connect_timeout_seconds=_parse_env_float(_ENV_CONNECT, defaults.connect_timeout_seconds),
        request_timeout_seconds=_parse_env_float(_ENV_REQUEST, defaults.request_timeout_seconds),
        stream_idle_timeout_seconds=_parse_env_float(_ENV_STREAM_IDLE, defaults.stream_idle_timeout_seconds),
    )
    _ENV_GUARD = guard
    return _CACHED


def attempt_timeout_seconds(parameters: Mapping[str, Any]) -> float:
    """Return the per-attempt deadline for a merged parameter mapping.

    ``timeout_ms`` wins when it is a positive number; otherwise the
    configured request timeout applies.
    """
    raw = parameters.get("timeout_ms")
    if isinstance(raw, (int, float)) and not isinstance(raw, bool) and raw > 0:
        return float(raw) / 1000.0
    return get_timeout_config().request_timeout_seconds


__all__ = ["TimeoutConfig", "get_timeout_config", "attempt_timeout_seconds"]
