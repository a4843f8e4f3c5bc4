"""Async HTTP client construction for provider adapters.

Adapters never build ``httpx.AsyncClient`` instances directly. They call a
:data:`ClientFactory` once per attempt and use the client as an async
context manager, so a cancelled or timed-out attempt always closes its
connections before the next attempt begins.

Tests (and embedding applications) pass a factory bound to a custom
transport, e.g. ``httpx.MockTransport``, through :func:`client_factory`.
"""
from __future__ import annotations

from typing import Callable, Optional

import httpx

from ..timeouts import get_timeout_config

ClientFactory = Callable[[], httpx.AsyncClient]


def build_async_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """Return a new ``httpx.AsyncClient`` configured from :func:`get_timeout_config`.

    The read timeout is the stream idle timeout; the overall attempt deadline
    is enforced separately by the caller.
    """
    cfg = get_timeout_config()
    timeout = httpx.Timeout(
        cfg.stream_idle_timeout_seconds,
        connect=cfg.connect_timeout_seconds,
    )
    if transport is not None:
        return httpx.AsyncClient(timeout=timeout, transport=transport)
    return httpx.AsyncClient(timeout=timeout)


def client_factory(transport: Optional[httpx.AsyncBaseTransport] = None) -> ClientFactory:
    """Return a zero-argument factory producing clients bound to ``transport``."""

    def _factory() -> httpx.AsyncClient:
        return build_async_client(transport)

    return _factory


__all__ = ["ClientFactory", "build_async_client", "client_factory"]
