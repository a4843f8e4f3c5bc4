from __future__ import annotations

import httpx
import pytest

from llm_dispatch import build_container
from llm_dispatch.base.models import CallRequest, VendorKind
from llm_dispatch.config import get_dispatch_settings

from ..fakes import RequestLog, mock_client_factory, user


def test_container_wires_settings(tmp_path):
    settings = get_dispatch_settings(
        {"db_path": str(tmp_path / "c.db"), "secret": "container-secret", "retry_count": 5, "short_circuit_auth": True}
    )
    container = build_container(settings)

    assert container.store() is container.store()  # nosec B101
    assert container.store().db_path == str(tmp_path / "c.db")  # nosec B101
    assert container.cipher() is not None  # nosec B101
    dispatcher = container.dispatcher()
    assert dispatcher is container.dispatcher()  # nosec B101
    assert (dispatcher.retry_config.max_attempts, dispatcher.retry_config.short_circuit_auth) == (5, True)  # nosec B101
    assert container.settings_service() is container.settings_service()  # nosec B101


def test_container_without_secret_has_no_cipher(tmp_path):
    container = build_container(get_dispatch_settings({"db_path": str(tmp_path / "c.db")}))
    assert container.cipher() is None  # nosec B101


def test_container_reads_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("LLM_DISPATCH_DB_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("LLM_DISPATCH_RETRY_DELAY_SECONDS", "0.25")
    container = build_container()
    assert container.settings.db_path == str(tmp_path / "env.db")  # nosec B101
    assert container.retry_config().delay_seconds == 0.25  # nosec B101


@pytest.mark.asyncio
async def test_container_round_trip_through_settings_service(tmp_path):
    log = RequestLog(httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": "wired"}}]}))
    container = build_container(
        get_dispatch_settings({"db_path": str(tmp_path / "c.db"), "secret": "container-secret"}),
        http_client_factory=mock_client_factory(log),
    )
    container.settings_service().create_provider(
        VendorKind.OPENAI,
        base_url="https://wired.example.test/v1",
        api_key="sk-wired-key-00000000",
        models=["wired-model"],
        is_default=True,
    )
    result = await container.dispatcher().call(CallRequest(messages=user()))
    assert result.content == "wired"  # nosec B101
    assert log.last.headers["Authorization"] == "Bearer sk-wired-key-00000000"  # nosec B101
