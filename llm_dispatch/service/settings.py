"""Provider and task-route administration.

``ProviderSettingsService`` is the write side of the configuration store.
Credentials are encrypted before they reach the database and are only ever
returned masked. Every edit drops the affected dispatcher caches so the next
request resolves against the new configuration.
"""
from __future__ import annotations

import logging
import sqlite3
import uuid
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..base.errors import ConfigurationError, CredentialError, ErrorCode
from ..base.logging import LogContext, get_logger, log_event
from ..base.models import CallOutcome, ProviderConfig, TaskRoute, VendorKind
from ..config.defaults import OUTCOME_RETENTION_DAYS, VENDOR_PRESETS
from ..config.env import SEED_KEY_ENV, get_seed_key
from ..credentials import CredentialCipher, mask_secret
from ..dispatch import Dispatcher
from ..persistence.interfaces import OutcomeStats
from ..persistence.sqlite import SqliteDispatchStore

_logger = get_logger("llm_dispatch.settings")

_MASK_UNREADABLE = "****"
_EDITABLE_FIELDS = frozenset(
    {"name", "vendor", "base_url", "models", "parameters", "is_enabled", "is_default", "sort_order"}
)


def _not_found(provider_id: str) -> ConfigurationError:
    return ConfigurationError(
        message=f"provider '{provider_id}' does not exist",
        code=ErrorCode.NOT_FOUND,
        provider=provider_id,
    )


class ProviderSettingsService:
    """CRUD over providers and task routes with cache invalidation."""

    def __init__(
        self,
        store: SqliteDispatchStore,
        cipher: Optional[CredentialCipher] = None,
        dispatcher: Optional[Dispatcher] = None,
        *,
        retention_days: int = OUTCOME_RETENTION_DAYS,
    ) -> None:
        self._store = store
        self._cipher = cipher
        self._dispatcher = dispatcher
        self._retention_days = retention_days

    # ------------------------------------------------------------------
    # Credential handling
    # ------------------------------------------------------------------
    def _seal(self, api_key: str) -> str:
        if not api_key:
            return ""
        if self._cipher is None:
            log_event(_logger, "settings.plaintext_credential", level=logging.WARNING)
            return api_key
        return self._cipher.encrypt(api_key)

    def _masked(self, config: ProviderConfig) -> ProviderConfig:
        if not config.api_key:
            return config
        if self._cipher is None:
            shown = mask_secret(config.api_key)
        else:
            try:
                shown = mask_secret(self._cipher.decrypt(config.api_key))
            except CredentialError:
                shown = _MASK_UNREADABLE
        return config.model_copy(update={"api_key": shown})

    # ------------------------------------------------------------------
    # Cache invalidation
    # ------------------------------------------------------------------
    def _provider_changed(self, provider_id: str, *, default_changed: bool = False) -> None:
        if self._dispatcher is None:
            return
        if default_changed:
            self._dispatcher.clear_cache()
        else:
            self._dispatcher.clear_provider_cache(provider_id)
            self._dispatcher.clear_task_cache()

    def _route_changed(self, task_name: str) -> None:
        if self._dispatcher is not None:
            self._dispatcher.clear_task_cache(task_name)

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------
    def list_providers(self, enabled_only: bool = False) -> List[ProviderConfig]:
        with self._store.unit_of_work() as uow:
            rows = uow.providers.list(enabled_only=enabled_only)
        return [self._masked(p) for p in rows]

    def get_provider(self, provider_id: str) -> Optional[ProviderConfig]:
        config = self._store.get_provider_config(provider_id)
        return self._masked(config) if config else None

    def create_provider(
        self,
        vendor: VendorKind | str,
        *,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
        api_key: str = "",
        models: Optional[Sequence[str]] = None,
        parameters: Optional[Mapping[str, Any]] = None,
        is_enabled: bool = True,
        is_default: bool = False,
        provider_id: Optional[str] = None,
    ) -> ProviderConfig:
        """Create a provider, filling unset fields from the vendor preset.

        Raises:
            ConfigurationError: duplicate id or a value the store rejects.
            pydantic.ValidationError: invalid vendor kind or field value.
        """
        kind = VendorKind(vendor)
        preset = VENDOR_PRESETS.get(kind.value, {})
        with self._store.unit_of_work() as uow:
            config = ProviderConfig(
                provider_id=provider_id or uuid.uuid4().hex,
                name=name if name is not None else str(preset.get("name", kind.value)),
                vendor=kind,
                base_url=base_url if base_url is not None else str(preset.get("base_url", "")),
                api_key=self._seal(api_key),
                models=list(models) if models is not None else list(preset.get("models", [])),  # type: ignore[arg-type]
                parameters=dict(parameters or {}),
                is_enabled=is_enabled,
                is_default=is_default,
                sort_order=uow.providers.next_sort_order(),
            )
            try:
                stored = uow.providers.add(config)
            except sqlite3.IntegrityError as exc:
                raise ConfigurationError(
                    message=f"provider '{config.provider_id}' could not be stored: {exc}",
                    code=ErrorCode.CONFLICT,
                    provider=config.provider_id,
                    raw=exc,
                ) from exc
        log_event(
            _logger,
            "settings.provider_created",
            LogContext(provider=stored.provider_id),
            vendor=kind.value,
            is_default=stored.is_default,
        )
        self._provider_changed(stored.provider_id, default_changed=stored.is_default)
        return self._masked(stored)

    def update_provider(self, provider_id: str, *, api_key: Optional[str] = None, **changes: Any) -> ProviderConfig:
        """Apply ``changes`` to a provider.

        ``api_key=None`` keeps the stored credential; an empty string clears it.

        Raises:
            ConfigurationError: unknown provider or unknown field.
        """
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ConfigurationError(message=f"unknown provider fields: {', '.join(sorted(unknown))}")
        with self._store.unit_of_work() as uow:
            current = uow.providers.get(provider_id)
            if current is None:
                raise _not_found(provider_id)
            data = current.model_dump()
            data.update(changes)
            if api_key is not None:
                data["api_key"] = self._seal(api_key)
            try:
                stored = uow.providers.update(ProviderConfig(**data))
            except KeyError as exc:  # pragma: no cover - row read above in the same transaction
                raise _not_found(provider_id) from exc
        log_event(
            _logger,
            "settings.provider_updated",
            LogContext(provider=provider_id),
            fields=sorted(set(changes) | ({"api_key"} if api_key is not None else set())),
        )
        self._provider_changed(provider_id, default_changed="is_default" in changes or "is_enabled" in changes)
        return self._masked(stored)

    def delete_provider(self, provider_id: str) -> bool:
        with self._store.unit_of_work() as uow:
            removed = uow.providers.delete(provider_id)
        if removed:
            log_event(_logger, "settings.provider_deleted", LogContext(provider=provider_id))
            self._provider_changed(provider_id, default_changed=True)
        return removed

    def set_default_provider(self, provider_id: str) -> None:
        """Flag ``provider_id`` as the single default.

        Raises:
            ConfigurationError: the provider does not exist.
        """
        with self._store.unit_of_work() as uow:
            if not uow.providers.set_default(provider_id):
                raise _not_found(provider_id)
        log_event(_logger, "settings.default_changed", LogContext(provider=provider_id))
        self._provider_changed(provider_id, default_changed=True)

    def reorder_providers(self, provider_ids: Sequence[str]) -> None:
        with self._store.unit_of_work() as uow:
            uow.providers.reorder(provider_ids)
        if self._dispatcher is not None:
            self._dispatcher.clear_cache()

    # ------------------------------------------------------------------
    # Task routes
    # ------------------------------------------------------------------
    def list_task_routes(self) -> List[TaskRoute]:
        with self._store.unit_of_work() as uow:
            return uow.routes.list()

    def upsert_task_route(
        self,
        task_name: str,
        *,
        provider_id: Optional[str] = None,
        model: Optional[str] = None,
        parameters: Optional[Mapping[str, Any]] = None,
    ) -> TaskRoute:
        """Create or replace the route for ``task_name``.

        Raises:
            ConfigurationError: ``provider_id`` names a missing provider.
        """
        route = TaskRoute(task_name=task_name, provider_id=provider_id, model=model, parameters=dict(parameters or {}))
        with self._store.unit_of_work() as uow:
            if provider_id and uow.providers.get(provider_id) is None:
                raise _not_found(provider_id)
            stored = uow.routes.upsert(route)
        log_event(_logger, "settings.route_upserted", LogContext(provider=provider_id, model=model, task=task_name))
        self._route_changed(task_name)
        return stored

    def delete_task_route(self, task_name: str) -> bool:
        with self._store.unit_of_work() as uow:
            removed = uow.routes.delete(task_name)
        self._route_changed(task_name)
        return removed

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------
    def seed_defaults_from_env(self) -> List[ProviderConfig]:
        """Create preset providers for vendors whose seed key is set.

        Only runs against an empty provider table; the first seeded provider
        becomes the default.
        """
        with self._store.unit_of_work() as uow:
            if uow.providers.list():
                return []
        created: List[ProviderConfig] = []
        for vendor in SEED_KEY_ENV:
            key = get_seed_key(vendor)
            if not key:
                continue
            created.append(self.create_provider(vendor, api_key=key, is_default=not created))
        log_event(_logger, "settings.seeded", count=len(created), vendors=[p.vendor.value for p in created])
        return created

    # ------------------------------------------------------------------
    # Outcome log maintenance
    # ------------------------------------------------------------------
    def recent_outcomes(self, limit: int = 50, provider_id: Optional[str] = None) -> List[CallOutcome]:
        with self._store.unit_of_work() as uow:
            return uow.outcomes.list_recent(limit=limit, provider_id=provider_id)

    def outcome_stats(self, provider_id: Optional[str] = None) -> OutcomeStats:
        with self._store.unit_of_work() as uow:
            return uow.outcomes.stats(provider_id=provider_id)

    def cleanup_outcomes(self, days: Optional[int] = None) -> int:
        """Delete outcome records older than the retention window."""
        with self._store.unit_of_work() as uow:
            removed = uow.outcomes.cleanup(days=days or self._retention_days)
        log_event(_logger, "settings.outcomes_cleaned", removed=removed)
        return removed

    def provider_summary(self) -> Dict[str, OutcomeStats]:
        """Per-provider outcome stats keyed by provider id."""
        with self._store.unit_of_work() as uow:
            return {p.provider_id: uow.outcomes.stats(provider_id=p.provider_id) for p in uow.providers.list()}


__all__ = ["ProviderSettingsService"]
