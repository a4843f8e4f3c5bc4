"""Composition root for the dispatch layer.

Builds the store, cipher, dispatcher and settings service from one
:class:`DispatchSettings` and hands out shared instances.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..base.http import ClientFactory
from ..base.resilience import RetryConfig
from ..config import DispatchSettings, get_dispatch_settings
from ..credentials import CredentialCipher
from ..dispatch import Dispatcher
from ..persistence.sqlite import SqliteDispatchStore
from ..service import ProviderSettingsService


class DispatchContainer:
    """Lazily constructed singletons wired from settings.

    Without a configured secret no cipher is built and credentials are
    stored as given.
    """

    def __init__(
        self,
        settings: Optional[DispatchSettings] = None,
        *,
        http_client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.settings = settings or get_dispatch_settings()
        self._http_client_factory = http_client_factory
        self._singletons: Dict[str, Any] = {}

    def store(self) -> SqliteDispatchStore:
        if "store" not in self._singletons:
            self._singletons["store"] = SqliteDispatchStore(self.settings.db_path)
        return self._singletons["store"]

    def cipher(self) -> Optional[CredentialCipher]:
        if "cipher" not in self._singletons:
            secret = self.settings.secret
            self._singletons["cipher"] = CredentialCipher(secret) if secret else None
        return self._singletons["cipher"]

    def retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_attempts=self.settings.retry_count,
            delay_seconds=self.settings.retry_delay_seconds,
            short_circuit_auth=self.settings.short_circuit_auth,
        )

    def dispatcher(self) -> Dispatcher:
        if "dispatcher" not in self._singletons:
            store = self.store()
            self._singletons["dispatcher"] = Dispatcher(
                store,
                store,
                cipher=self.cipher(),
                retry_config=self.retry_config(),
                http_client_factory=self._http_client_factory,
            )
        return self._singletons["dispatcher"]

    def settings_service(self) -> ProviderSettingsService:
        if "settings_service" not in self._singletons:
            self._singletons["settings_service"] = ProviderSettingsService(
                self.store(),
                self.cipher(),
                self.dispatcher(),
                retention_days=self.settings.outcome_retention_days,
            )
        return self._singletons["settings_service"]


def build_container(
    settings: Optional[DispatchSettings] = None,
    *,
    http_client_factory: Optional[ClientFactory] = None,
) -> DispatchContainer:
    return DispatchContainer(settings, http_client_factory=http_client_factory)


__all__ = ["DispatchContainer", "build_container"]
