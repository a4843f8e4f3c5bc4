"""HTTP client helpers for adapters."""

from .client import ClientFactory, build_async_client, client_factory

__all__ = ["ClientFactory", "build_async_client", "client_factory"]
