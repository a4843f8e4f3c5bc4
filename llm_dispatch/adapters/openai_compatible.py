"""Adapter for the OpenAI chat-completions wire format.

Shared by every vendor kind speaking the same protocol (OpenAI, GLM,
Ollama's ``/v1`` endpoint and custom compatible gateways):

- ``Authorization: Bearer <key>`` (omitted when no key is configured);
- ``POST {base_url}/chat/completions`` with ``model``, ``messages`` and the
  flattened optional parameters;
- response text at ``choices[0].message.content``; usage from
  ``prompt_tokens``/``completion_tokens``/``total_tokens``;
- stream deltas at ``choices[0].delta.content`` terminated by ``[DONE]``.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..base.errors import AuthenticationError, ProtocolError
from ..base.logging import get_logger
from ..base.models import CallResult, Message, Usage, VendorKind
from ..base.streaming import choice_delta_content
from ..base.timeouts import attempt_timeout_seconds
from ..config.defaults import OPENAI_OFFICIAL_HOST
from .base import ProviderAdapter

_logger = get_logger("llm_dispatch.adapters.openai")

OPTIONAL_BODY_PARAMS = (
    "temperature",
    "max_tokens",
    "top_p",
    "frequency_penalty",
    "presence_penalty",
    "stop",
)


def _int_or_none(value: Any) -> Optional[int]:
    return value if isinstance(value, int) and not isinstance(value, bool) else None


class OpenAICompatibleAdapter(ProviderAdapter):
    vendors = (VendorKind.OPENAI, VendorKind.GLM, VendorKind.OLLAMA, VendorKind.CUSTOM)
    stream_extractor = staticmethod(choice_delta_content)

    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def chat_url(self, model: str, parameters: Mapping[str, Any]) -> str:
        return f"{self.base_url}/chat/completions"

    def build_body(
        self,
        messages: Sequence[Message],
        model: str,
        parameters: Mapping[str, Any],
        *,
        stream: bool,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        for key in OPTIONAL_BODY_PARAMS:
            if parameters.get(key) is not None:
                body[key] = parameters[key]
        if stream:
            body["stream"] = True
        return body

    def parse_response(self, data: Any, model: str) -> CallResult:
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices or not isinstance(choices, list):
            raise ProtocolError(message="response has no choices", provider=self.provider_id, model=model)
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            content = ""
        usage = data.get("usage")
        return CallResult(
            content=content,
            model=str(data.get("model") or model),
            provider_id=self.provider_id,
            usage=Usage(
                prompt_tokens=_int_or_none(usage.get("prompt_tokens")),
                completion_tokens=_int_or_none(usage.get("completion_tokens")),
                total_tokens=_int_or_none(usage.get("total_tokens")),
            )
            if isinstance(usage, dict)
            else None,
        )

    @property
    def is_official_host(self) -> bool:
        return OPENAI_OFFICIAL_HOST in self.base_url

    async def list_models(self) -> List[str]:
        """List ``/models`` on the official host; probe compatible hosts.

        Compatible gateways rarely expose a catalog, so a minimal completion
        probe proves reachability and an empty list is returned. A 401/403
        from the probe still surfaces as :class:`AuthenticationError`.
        """
        timeout = attempt_timeout_seconds(self.config.parameters)
        if self.is_official_host:
            data = await self.request_json("GET", f"{self.base_url}/models", timeout=timeout)
            items = data.get("data") if isinstance(data, dict) else None
            return [str(m["id"]) for m in items or [] if isinstance(m, dict) and m.get("id")]
        probe = {
            "model": self.config.first_model or "test",
            "messages": [{"role": "user", "content": "ping"}],
            "max_tokens": 1,
        }
        status = await self.request_status("POST", self.chat_url("", {}), timeout=timeout, body=probe)
        if status in (401, 403):
            raise AuthenticationError(
                message=f"request failed ({status})",
                provider=self.provider_id,
            )
        _logger.debug("compatible host %s probed with status %s", self.provider_id, status)
        return []


__all__ = ["OpenAICompatibleAdapter", "OPTIONAL_BODY_PARAMS"]
