"""Adapter for the Anthropic messages API.

Differences from the chat-completions format:

- ``x-api-key`` and ``anthropic-version`` headers;
- system messages are lifted out of ``messages`` into a ``system`` field;
- ``max_tokens`` is mandatory (default 2000) and ``stop`` maps to
  ``stop_sequences``;
- response text is ``content[0].text`` with ``input_tokens``/``output_tokens``;
- stream deltas arrive in ``content_block_delta`` events.

There is no public listing endpoint; :meth:`list_models` returns a fixed
catalog and :meth:`check_availability` performs a real 10-token call.
"""
from __future__ import annotations

import time
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..base.errors import DispatchError, ProtocolError
from ..base.models import AvailabilityResult, CallResult, Message, Usage, VendorKind
from ..base.streaming import content_block_delta_text
from ..config.defaults import (
    ANTHROPIC_API_VERSION,
    ANTHROPIC_DEFAULT_MAX_TOKENS,
    ANTHROPIC_MODELS,
    ANTHROPIC_PROBE_MAX_TOKENS,
)
from .base import ProviderAdapter

_PASSTHROUGH = ("temperature", "top_p", "top_k")


class AnthropicAdapter(ProviderAdapter):
    vendors = (VendorKind.ANTHROPIC,)
    stream_extractor = staticmethod(content_block_delta_text)

    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_API_VERSION,
        }

    def chat_url(self, model: str, parameters: Mapping[str, Any]) -> str:
        return f"{self.base_url}/messages"

    def build_body(
        self,
        messages: Sequence[Message],
        model: str,
        parameters: Mapping[str, Any],
        *,
        stream: bool,
    ) -> Dict[str, Any]:
        system = "\n\n".join(m.content for m in messages if m.role == "system")
        body: Dict[str, Any] = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages if m.role != "system"],
            "max_tokens": parameters.get("max_tokens") or ANTHROPIC_DEFAULT_MAX_TOKENS,
        }
        if system:
            body["system"] = system
        for key in _PASSTHROUGH:
            if parameters.get(key) is not None:
                body[key] = parameters[key]
        stop = parameters.get("stop")
        if stop:
            body["stop_sequences"] = [stop] if isinstance(stop, str) else list(stop)
        if stream:
            body["stream"] = True
        return body

    def parse_response(self, data: Any, model: str) -> CallResult:
        blocks = data.get("content") if isinstance(data, dict) else None
        if not isinstance(blocks, list):
            raise ProtocolError(message="response has no content list", provider=self.provider_id, model=model)
        # Empty or text-less completions yield empty content.
        first = blocks[0] if blocks and isinstance(blocks[0], dict) else {}
        text = first.get("text")
        if not isinstance(text, str):
            text = ""
        usage = data.get("usage") if isinstance(data.get("usage"), dict) else None
        result_usage: Optional[Usage] = None
        if usage is not None:
            prompt = usage.get("input_tokens")
            completion = usage.get("output_tokens")
            total = prompt + completion if isinstance(prompt, int) and isinstance(completion, int) else None
            result_usage = Usage(prompt_tokens=prompt, completion_tokens=completion, total_tokens=total)
        return CallResult(
            content=text,
            model=str(data.get("model") or model),
            provider_id=self.provider_id,
            usage=result_usage,
        )

    async def list_models(self) -> List[str]:
        return list(ANTHROPIC_MODELS)

    async def check_availability(self, model: Optional[str] = None) -> AvailabilityResult:
        target = model or self.config.first_model or ANTHROPIC_MODELS[-1]
        started = time.monotonic()
        try:
            await self.call(
                [Message(role="user", content="Hi")],
                target,
                {"max_tokens": ANTHROPIC_PROBE_MAX_TOKENS},
            )
        except DispatchError as exc:
            return AvailabilityResult(
                success=False,
                message=f"connection failed: {exc.message}",
                latency_ms=int((time.monotonic() - started) * 1000),
            )
        return AvailabilityResult(
            success=True,
            message="connection ok",
            latency_ms=int((time.monotonic() - started) * 1000),
            available_models=list(ANTHROPIC_MODELS),
        )


__all__ = ["AnthropicAdapter"]
