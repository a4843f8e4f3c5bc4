from __future__ import annotations

import pytest

from llm_dispatch.base.errors import ConfigurationError, ErrorCode
from llm_dispatch.base.models import CallRequest
from llm_dispatch.dispatch import AdapterRegistry, Dispatcher

from ..fakes import MemoryStore, make_provider, user


def _dispatcher(store, script, cipher=None) -> Dispatcher:
    return Dispatcher(store, store, registry=AdapterRegistry(store, cipher, factory=script.factory()))


@pytest.mark.asyncio
async def test_check_availability_unknown_provider(script):
    with pytest.raises(ConfigurationError) as ei:
        await _dispatcher(MemoryStore(), script).check_availability("ghost")
    assert ei.value.code is ErrorCode.NOT_FOUND  # nosec B101


@pytest.mark.asyncio
async def test_check_availability_uses_uncached_adapter(script):
    store = MemoryStore(providers=[make_provider("a")])
    script.catalog["a"] = ["m-1", "m-2"]
    dispatcher = _dispatcher(store, script)
    result = await dispatcher.check_availability("a", "m-1")
    assert result.success and result.available_models == ["m-1", "m-2"]  # nosec B101
    assert len(dispatcher.registry) == 0  # nosec B101


@pytest.mark.asyncio
async def test_check_availability_reports_unreadable_credentials(script, cipher):
    store = MemoryStore(providers=[make_provider("a", api_key="garbage-not-ciphertext")])
    result = await _dispatcher(store, script, cipher).check_availability("a")
    assert result.success is False  # nosec B101
    assert "garbage" not in result.message  # nosec B101


@pytest.mark.asyncio
async def test_sync_models_persists_non_empty_catalog(script):
    store = MemoryStore(providers=[make_provider("a", models=("old",))])
    script.catalog["a"] = ["new-1", "new-2"]
    dispatcher = _dispatcher(store, script)
    dispatcher.registry.get("a")

    assert await dispatcher.sync_models("a") == ["new-1", "new-2"]  # nosec B101
    assert store.providers["a"].models == ["new-1", "new-2"]  # nosec B101
    assert "a" not in dispatcher.registry  # nosec B101


@pytest.mark.asyncio
async def test_sync_models_keeps_list_when_catalog_empty(script):
    store = MemoryStore(providers=[make_provider("a", models=("keep",))])
    assert await _dispatcher(store, script).sync_models("a") == []  # nosec B101
    assert store.providers["a"].models == ["keep"]  # nosec B101


@pytest.mark.asyncio
async def test_clear_cache_drops_adapters_and_routes(script):
    store = MemoryStore(providers=[make_provider("a", is_default=True)])
    dispatcher = _dispatcher(store, script)
    await dispatcher.call(CallRequest(messages=user(), task_name="resume_analysis"))
    assert len(dispatcher.registry) == 1 and store.route_reads == 1  # nosec B101

    dispatcher.clear_cache()
    assert len(dispatcher.registry) == 0  # nosec B101
    await dispatcher.call(CallRequest(messages=user(), task_name="resume_analysis"))
    assert store.route_reads == 2  # nosec B101
