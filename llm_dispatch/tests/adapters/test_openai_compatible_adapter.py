"""OpenAI-compatible adapter against ``httpx.MockTransport``."""
from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from llm_dispatch.adapters import OpenAICompatibleAdapter
from llm_dispatch.base.errors import AuthenticationError, ErrorCode, ProtocolError, TransportError
from llm_dispatch.base.models import VendorKind

from ..fakes import RequestLog, make_provider, mock_client_factory, user

_OK = {
    "model": "gpt-4o-mini",
    "choices": [{"message": {"role": "assistant", "content": "Hi there"}}],
    "usage": {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5},
}


def _adapter(handler, *, base_url="https://gw.example.test/v1", api_key="sk-test-123456789", **kw):
    config = make_provider("p1", vendor=VendorKind.CUSTOM, base_url=base_url, **kw)
    return OpenAICompatibleAdapter(config, api_key, http_client_factory=mock_client_factory(handler))


@pytest.mark.asyncio
async def test_call_sends_envelope_and_parses_usage():
    log = RequestLog(httpx.Response(200, json=_OK))
    adapter = _adapter(log, parameters={"temperature": 0.1, "timeout_ms": 5000})
    result = await adapter.call(user("hello"), "gpt-4o-mini", {"temperature": 0.5, "stop": ["\n"]})

    req = log.last
    body = json.loads(req.content)
    assert str(req.url) == "https://gw.example.test/v1/chat/completions"  # nosec B101
    assert req.headers["Authorization"] == "Bearer sk-test-123456789"  # nosec B101
    assert body["model"] == "gpt-4o-mini" and body["messages"] == [{"role": "user", "content": "hello"}]  # nosec B101
    assert body["temperature"] == 0.5 and body["stop"] == ["\n"]  # nosec B101
    assert "timeout_ms" not in body and "stream" not in body  # nosec B101
    assert result.content == "Hi there" and result.provider_id == "p1"  # nosec B101
    assert (result.usage.prompt_tokens, result.usage.completion_tokens, result.usage.total_tokens) == (3, 2, 5)  # nosec B101


@pytest.mark.asyncio
async def test_no_key_means_no_authorization_header():
    log = RequestLog(httpx.Response(200, json=_OK))
    await _adapter(log, api_key="").call(user(), "m")
    assert "Authorization" not in log.last.headers  # nosec B101


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response,kind,code,message",
    [
        (httpx.Response(401, json={"error": {"message": "bad key"}}), AuthenticationError, ErrorCode.AUTH, "bad key"),
        (httpx.Response(429, json={"error": "slow down"}), TransportError, ErrorCode.RATE_LIMIT, "slow down"),
        (httpx.Response(503, json={"message": "maintenance"}), TransportError, ErrorCode.UNAVAILABLE, "maintenance"),
        (httpx.Response(500, text="<html>oops</html>"), TransportError, ErrorCode.SERVER_ERROR, "request failed (500)"),
    ],
)
async def test_error_responses_are_classified(response, kind, code, message):
    adapter = _adapter(RequestLog(response))
    with pytest.raises(kind) as ei:
        await adapter.call(user(), "m")
    assert ei.value.code is code and ei.value.message == message  # nosec B101
    assert ei.value.provider == "p1" and ei.value.model == "m"  # nosec B101


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"choices": []}),
        httpx.Response(200, json={"model": "m"}),
    ],
)
async def test_malformed_bodies_raise_protocol_error(response):
    with pytest.raises(ProtocolError):
        await _adapter(RequestLog(response)).call(user(), "m")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "choice",
    [
        {"message": {"role": "assistant", "content": None}, "finish_reason": "length"},
        {"message": {}},
    ],
)
async def test_empty_message_content_is_a_single_successful_call(choice):
    log = RequestLog(httpx.Response(200, json={"choices": [choice]}))
    result = await _adapter(log).call(user(), "m")
    assert result.content == ""  # nosec B101
    assert len(log.requests) == 1  # nosec B101


@pytest.mark.asyncio
async def test_deadline_expiry_raises_timeout():
    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, json=_OK)

    adapter = _adapter(slow, parameters={"timeout_ms": 50})
    with pytest.raises(TransportError) as ei:
        await adapter.call(user(), "m")
    assert ei.value.code is ErrorCode.TIMEOUT  # nosec B101
    assert ei.value.message == "request timed out (50ms)"  # nosec B101


@pytest.mark.asyncio
async def test_connect_failure_is_transport_error():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as ei:
        await _adapter(refuse).call(user(), "m")
    assert ei.value.code is ErrorCode.UNAVAILABLE and ei.value.retryable  # nosec B101


@pytest.mark.asyncio
async def test_stream_call_yields_deltas():
    sse = (
        b'data: {"choices": [{"delta": {"role": "assistant"}}]}\n\n'
        b'data: {"choices": [{"delta": {"content": "Hel"}}]}\n\n'
        b'data: {"choices": [{"delta": {"content": "lo"}}]}\n\n'
        b"data: [DONE]\n\n"
    )
    log = RequestLog(httpx.Response(200, content=sse, headers={"content-type": "text/event-stream"}))
    deltas = [d async for d in _adapter(log).stream_call(user(), "m")]
    assert deltas == ["Hel", "lo"]  # nosec B101
    assert json.loads(log.last.content)["stream"] is True  # nosec B101


@pytest.mark.asyncio
async def test_stream_call_error_status_raises_before_output():
    log = RequestLog(httpx.Response(401, json={"error": {"message": "expired"}}))
    with pytest.raises(AuthenticationError) as ei:
        async for _ in _adapter(log).stream_call(user(), "m"):
            pass
    assert ei.value.message == "expired"  # nosec B101


@pytest.mark.asyncio
async def test_in_band_stream_error_names_provider_and_model():
    sse = (
        b'data: {"choices": [{"delta": {"content": "Hel"}}]}\n\n'
        b'data: {"error": {"message": "upstream reset"}}\n\n'
    )
    log = RequestLog(httpx.Response(200, content=sse, headers={"content-type": "text/event-stream"}))
    deltas = []
    with pytest.raises(TransportError) as ei:
        async for delta in _adapter(log).stream_call(user(), "m"):
            deltas.append(delta)
    assert deltas == ["Hel"]  # nosec B101
    assert ei.value.message == "upstream reset"  # nosec B101
    assert (ei.value.provider, ei.value.model) == ("p1", "m")  # nosec B101


@pytest.mark.asyncio
async def test_list_models_on_official_host():
    log = RequestLog(httpx.Response(200, json={"data": [{"id": "gpt-4o"}, {"id": "gpt-4o-mini"}, {"x": 1}]}))
    adapter = _adapter(log, base_url="https://api.openai.com/v1")
    assert await adapter.list_models() == ["gpt-4o", "gpt-4o-mini"]  # nosec B101
    assert log.last.method == "GET" and log.last.url.path == "/v1/models"  # nosec B101


@pytest.mark.asyncio
async def test_list_models_probes_compatible_hosts():
    log = RequestLog(httpx.Response(400, json={"error": "bad model"}))
    adapter = _adapter(log, models=("qwen2",))
    assert await adapter.list_models() == []  # nosec B101
    probe = json.loads(log.last.content)
    assert probe["max_tokens"] == 1 and probe["model"] == "qwen2"  # nosec B101


@pytest.mark.asyncio
async def test_probe_rejection_is_authentication_error():
    adapter = _adapter(RequestLog(httpx.Response(403, json={})))
    with pytest.raises(AuthenticationError):
        await adapter.list_models()


@pytest.mark.asyncio
async def test_check_availability_reports_missing_model():
    log = RequestLog(httpx.Response(200, json={"data": [{"id": "gpt-4o"}]}))
    adapter = _adapter(log, base_url="https://api.openai.com/v1")

    ok = await adapter.check_availability("gpt-4o")
    assert ok.success and ok.available_models == ["gpt-4o"] and ok.latency_ms is not None  # nosec B101

    missing = await adapter.check_availability("gpt-5")
    assert not missing.success and "gpt-5" in missing.message  # nosec B101


@pytest.mark.asyncio
async def test_check_availability_failure_is_a_result():
    adapter = _adapter(RequestLog(httpx.Response(401, json={})))
    result = await adapter.check_availability()
    assert not result.success and result.message.startswith("connection failed")  # nosec B101


def test_repr_does_not_leak_key():
    adapter = _adapter(RequestLog(httpx.Response(200, json=_OK)))
    assert "sk-test" not in repr(adapter)  # nosec B101
