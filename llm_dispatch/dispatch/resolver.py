"""Configuration resolver.

``resolve(request)`` picks the concrete (provider, model, parameters) for a
request. Precedence, highest first:

1. ``request.provider_id``: that provider; missing or disabled is a
   :class:`ConfigurationError`. Task routes are not consulted.
2. ``request.task_name`` whose route names a provider: that provider; a
   missing provider is a :class:`ConfigurationError`.
3. The provider flagged default, else the enabled provider with the lowest
   ``sort_order``.

A route without a provider still contributes its model and parameters to
rule 3. Parameters merge ``provider ⊕ route ⊕ request`` (right wins); the
model is ``request.model``, else the route's model, else the provider's
first catalog entry.

Task routes are cached per task name behind a lock; the only I/O is
reading the configuration store.
"""
from __future__ import annotations

import threading
from typing import Any, Dict, List, Mapping, Optional

from ..base.errors import ConfigurationError, ErrorCode
from ..base.models import CallRequest, ProviderConfig, ResolvedTarget, TaskRoute
from ..persistence.interfaces import IConfigStore


def merge_parameters(*layers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Shallow-merge ``layers`` left to right; later layers win."""
    merged: Dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged.update(layer)
    return merged


class ConfigResolver:
    def __init__(self, store: IConfigStore) -> None:
        self._store = store
        self._routes: Dict[str, TaskRoute] = {}
        self._lock = threading.Lock()

    def task_route(self, task_name: str) -> Optional[TaskRoute]:
        """Return the (cached) route for ``task_name``; ``None`` when absent."""
        with self._lock:
            cached = self._routes.get(task_name)
        if cached is not None:
            return cached
        route = self._store.get_task_route(task_name)
        if route is not None:
            with self._lock:
                self._routes[task_name] = route
        return route

    def clear_task_cache(self, task_name: Optional[str] = None) -> None:
        with self._lock:
            if task_name is None:
                self._routes.clear()
            else:
                self._routes.pop(task_name, None)

    def resolve(self, request: CallRequest) -> ResolvedTarget:
        """Return the target for ``request``.

        Raises:
            ConfigurationError: no usable provider or model.
        """
        if request.provider_id:
            provider = self._store.get_provider_config(request.provider_id)
            if provider is None:
                raise ConfigurationError(
                    message=f"provider '{request.provider_id}' does not exist",
                    code=ErrorCode.NOT_FOUND,
                    provider=request.provider_id,
                )
            if not provider.is_enabled:
                raise ConfigurationError(
                    message=f"provider '{request.provider_id}' is disabled",
                    provider=request.provider_id,
                )
            return self._target(provider, request, None)

        route = self.task_route(request.task_name) if request.task_name else None
        if route is not None and route.provider_id:
            provider = self._store.get_provider_config(route.provider_id)
            if provider is None:
                raise ConfigurationError(
                    message=f"task '{route.task_name}' routes to missing provider '{route.provider_id}'",
                    code=ErrorCode.NOT_FOUND,
                    provider=route.provider_id,
                )
            return self._target(provider, request, route)

        return self._target(self._default_provider(), request, route)

    def _default_provider(self) -> ProviderConfig:
        provider = self._store.get_default_provider_config()
        if provider is not None:
            return provider
        for candidate in self._store.list_provider_configs():
            if candidate.is_enabled:
                return candidate
        raise ConfigurationError(message="no enabled provider is configured", code=ErrorCode.NOT_FOUND)

    @staticmethod
    def _target(provider: ProviderConfig, request: CallRequest, route: Optional[TaskRoute]) -> ResolvedTarget:
        model = request.model or (route.model if route else None) or provider.first_model
        if not model:
            raise ConfigurationError(
                message=f"provider '{provider.provider_id}' has no model configured",
                provider=provider.provider_id,
            )
        return ResolvedTarget(
            provider=provider,
            model=model,
            parameters=merge_parameters(
                provider.parameters,
                route.parameters if route else None,
                request.parameters,
            ),
        )

    def fallback_candidates(self, request: CallRequest, failed_provider_id: str) -> List[ResolvedTarget]:
        """Enabled providers other than ``failed_provider_id``, in priority order.

        Each candidate uses the request's model (else its first catalog model)
        and its own parameters overlaid with the request's. Providers with no
        usable model are skipped.
        """
        candidates: List[ResolvedTarget] = []
        for provider in self._store.list_provider_configs():
            if not provider.is_enabled or provider.provider_id == failed_provider_id:
                continue
            model = request.model or provider.first_model
            if not model:
                continue
            candidates.append(
                ResolvedTarget(
                    provider=provider,
                    model=model,
                    parameters=merge_parameters(provider.parameters, request.parameters),
                )
            )
        candidates.sort(key=lambda t: t.provider.sort_order)
        return candidates


__all__ = ["ConfigResolver", "merge_parameters"]
