from __future__ import annotations

import json

import httpx
import pytest

from llm_dispatch.adapters import AzureOpenAIAdapter
from llm_dispatch.adapters.azure import deployment_from_url, endpoint_root
from llm_dispatch.base.errors import AuthenticationError
from llm_dispatch.base.models import VendorKind
from llm_dispatch.config.defaults import AZURE_DEFAULT_API_VERSION

from ..fakes import RequestLog, make_provider, mock_client_factory, user


def _adapter(handler, base_url="https://res.openai.azure.com", **kw) -> AzureOpenAIAdapter:
    config = make_provider("az", vendor=VendorKind.AZURE, base_url=base_url, models=("gpt4-prod",), **kw)
    return AzureOpenAIAdapter(config, "az-key-0123456789", http_client_factory=mock_client_factory(handler))


@pytest.mark.parametrize(
    "url",
    [
        "https://res.openai.azure.com",
        "https://res.openai.azure.com/",
        "https://res.openai.azure.com/openai/deployments/gpt4-prod/chat/completions?api-version=2024-02-15-preview",
        "https://res.openai.azure.com/openai/deployments",
        "https://res.openai.azure.com/chat/completions",
        "https://res.openai.azure.com/openai",
        "https://res.openai.azure.com/openai/",
    ],
)
def test_endpoint_root_strips_deployment_paths(url):
    assert endpoint_root(url) == "https://res.openai.azure.com"  # nosec B101


def test_endpoint_root_keeps_hosts_named_openai():
    assert endpoint_root("https://openai.example.test") == "https://openai.example.test"  # nosec B101


@pytest.mark.asyncio
async def test_trailing_openai_segment_is_not_duplicated():
    log = RequestLog(httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]}))
    await _adapter(log, base_url="https://res.openai.azure.com/openai").call(user(), "gpt4-prod")
    assert log.last.url.path == "/openai/deployments/gpt4-prod/chat/completions"  # nosec B101


def test_deployment_from_url():
    assert deployment_from_url("https://r.openai.azure.com/openai/deployments/dep-1/chat/completions") == "dep-1"  # nosec B101
    assert deployment_from_url("https://r.openai.azure.com") is None  # nosec B101


@pytest.mark.asyncio
async def test_call_uses_deployment_url_and_api_key_header():
    log = RequestLog(httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]}))
    adapter = _adapter(log, base_url="https://res.openai.azure.com/openai/deployments/old/chat/completions")
    result = await adapter.call(user(), "gpt4-prod", {"api_version": "2024-06-01", "max_tokens": 20})

    req = log.last
    assert req.url.path == "/openai/deployments/gpt4-prod/chat/completions"  # nosec B101
    assert req.url.params["api-version"] == "2024-06-01"  # nosec B101
    assert req.headers["api-key"] == "az-key-0123456789"  # nosec B101
    assert "Authorization" not in req.headers  # nosec B101
    assert json.loads(req.content)["max_tokens"] == 20  # nosec B101
    assert result.content == "ok"  # nosec B101


def test_empty_model_falls_back_to_deployment_in_url():
    adapter = _adapter(RequestLog(httpx.Response(200)), base_url="https://r.openai.azure.com/openai/deployments/dep-9")
    url = adapter.chat_url("", {})
    assert url == f"https://r.openai.azure.com/openai/deployments/dep-9/chat/completions?api-version={AZURE_DEFAULT_API_VERSION}"  # nosec B101


@pytest.mark.asyncio
async def test_list_models_reads_deployments():
    log = RequestLog(httpx.Response(200, json={"data": [{"id": "gpt4-prod"}, {"model": "gpt35"}, {}]}))
    assert await _adapter(log).list_models() == ["gpt4-prod", "gpt35"]  # nosec B101
    assert log.last.url.path == "/openai/deployments"  # nosec B101


@pytest.mark.asyncio
async def test_list_models_non_auth_failure_is_empty():
    assert await _adapter(RequestLog(httpx.Response(404, json={}))).list_models() == []  # nosec B101


@pytest.mark.asyncio
async def test_list_models_auth_failure_raises():
    with pytest.raises(AuthenticationError):
        await _adapter(RequestLog(httpx.Response(401, json={}))).list_models()
