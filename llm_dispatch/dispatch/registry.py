"""Adapter registry: per-provider adapter cache.

The registry is the only component that decrypts credentials; the plaintext
key is handed straight to the adapter constructor and lives nowhere else.

Adapters are keyed by provider id. A cached adapter is reused only while
its configuration snapshot equals the one the caller resolved; otherwise a
new adapter is built from that snapshot and replaces the cached one, so an
in-flight request always talks to the provider it resolved. ``invalidate``
and ``invalidate_all`` drop entries explicitly after configuration edits.

All cache access goes through a single ``threading.Lock``; no await happens
while it is held.
"""
from __future__ import annotations

import threading
from typing import Dict, Optional, Type

from ..adapters import AdapterFactory, ProviderAdapter
from ..base.errors import ConfigurationError, CredentialError
from ..base.http import ClientFactory
from ..base.logging import LogContext, get_logger, log_event
from ..base.models import ProviderConfig
from ..credentials import CredentialCipher
from ..persistence.interfaces import IConfigStore

_logger = get_logger("llm_dispatch.registry")


class AdapterRegistry:
    def __init__(
        self,
        store: IConfigStore,
        cipher: Optional[CredentialCipher] = None,
        *,
        http_client_factory: Optional[ClientFactory] = None,
        factory: Type[AdapterFactory] = AdapterFactory,
    ) -> None:
        self._store = store
        self._cipher = cipher
        self._http_client_factory = http_client_factory
        self._factory = factory
        self._adapters: Dict[str, ProviderAdapter] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._adapters)

    def __contains__(self, provider_id: object) -> bool:
        with self._lock:
            return provider_id in self._adapters

    def _decrypt(self, config: ProviderConfig) -> str:
        """Return the plaintext key; raises ``CredentialError`` on failure."""
        if not config.api_key:
            return ""
        if self._cipher is None:
            return config.api_key
        return self._cipher.decrypt(config.api_key)

    def build(self, config: ProviderConfig) -> ProviderAdapter:
        """Build an uncached adapter for ``config``.

        Raises:
            CredentialError: stored credential cannot be decrypted.
            ConfigurationError: vendor kind or base URL unusable.
        """
        try:
            api_key = self._decrypt(config)
        except CredentialError as exc:
            exc.provider = config.provider_id
            raise
        adapter = self._factory.create(config, api_key, http_client_factory=self._http_client_factory)
        log_event(
            _logger,
            "registry.build",
            LogContext(provider=config.provider_id),
            vendor=config.vendor.value,
            adapter=type(adapter).__name__,
        )
        return adapter

    def get_for(self, config: ProviderConfig) -> ProviderAdapter:
        """Return the adapter for this exact configuration snapshot."""
        with self._lock:
            cached = self._adapters.get(config.provider_id)
            if cached is not None and cached.config == config:
                return cached
        adapter = self.build(config)
        with self._lock:
            current = self._adapters.get(config.provider_id)
            if current is not None and current.config == config:
                return current
            self._adapters[config.provider_id] = adapter
        return adapter

    def get(self, provider_id: str) -> ProviderAdapter:
        """Return the adapter for the provider's current stored configuration.

        Raises:
            ConfigurationError: the provider does not exist.
        """
        with self._lock:
            cached = self._adapters.get(provider_id)
        if cached is not None:
            return cached
        config = self._store.get_provider_config(provider_id)
        if config is None:
            raise ConfigurationError(message=f"provider '{provider_id}' does not exist", provider=provider_id)
        return self.get_for(config)

    def invalidate(self, provider_id: str) -> bool:
        with self._lock:
            return self._adapters.pop(provider_id, None) is not None

    def invalidate_all(self) -> None:
        with self._lock:
            self._adapters.clear()


__all__ = ["AdapterRegistry"]
