"""Line-delimited event stream decoder.

Turns the raw byte chunks of a streaming HTTP response into text deltas.
Framing rules:

- bytes are decoded incrementally as UTF-8 (multi-byte characters split
  across chunks are preserved) and split on line boundaries;
- blank lines, ``:`` comment lines and non-``data:`` fields (``event:``,
  ``id:``, ``retry:``) are ignored;
- ``data: [DONE]`` ends the stream;
- any other ``data:`` payload is parsed as JSON and handed to a
  vendor-specific :data:`DeltaExtractor`.

A malformed line is logged at debug level and skipped; it never aborts the
stream. An in-band error envelope (``{"error": ...}`` or
``{"type": "error"}``) raises :class:`~llm_dispatch.base.errors.TransportError`.

Decoders are cheap and hold only the pending partial line; build one per
response.
"""
from __future__ import annotations

import codecs
import json
from typing import Any, AsyncIterator, Callable, List, Optional

from ...config.defaults import SSE_DATA_PREFIX, SSE_DONE_SENTINEL
from ..errors import TransportError
from ..logging import get_logger

DeltaExtractor = Callable[[Any], Optional[str]]

_logger = get_logger("llm_dispatch.streaming")


def choice_delta_content(payload: Any) -> Optional[str]:
    """Extract ``choices[0].delta.content`` (OpenAI-style envelopes)."""
    choices = payload.get("choices") if isinstance(payload, dict) else None
    if not choices:
        return None
    delta = choices[0].get("delta") or {}
    content = delta.get("content")
    return content if isinstance(content, str) else None


def content_block_delta_text(payload: Any) -> Optional[str]:
    """Extract ``delta.text`` from ``content_block_delta`` events (Anthropic-style)."""
    if not isinstance(payload, dict) or payload.get("type") != "content_block_delta":
        return None
    text = (payload.get("delta") or {}).get("text")
    return text if isinstance(text, str) else None


def _inband_error(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    err = payload.get("error")
    if payload.get("type") == "error" or err:
        if isinstance(err, dict):
            return str(err.get("message") or err)
        return str(err or "stream error")
    return None


class StreamDecoder:
    """Incremental decoder for one streaming response."""

    def __init__(self, extractor: DeltaExtractor) -> None:
        self._extractor = extractor
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.finished = False

    def feed(self, chunk: bytes) -> List[str]:
        """Consume ``chunk`` and return the deltas completed by it."""
        if self.finished:
            return []
        self._buffer += self._utf8.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return self._process(lines)

    def flush(self) -> List[str]:
        """Process whatever remains once the transport closed."""
        if self.finished:
            return []
        self._buffer += self._utf8.decode(b"", final=True)
        remaining, self._buffer = self._buffer, ""
        return self._process([remaining]) if remaining else []

    def _process(self, lines: List[str]) -> List[str]:
        deltas: List[str] = []
        for raw in lines:
            if self.finished:
                break
            text = self._handle_line(raw.rstrip("\r"))
            if text:
                deltas.append(text)
        return deltas

    def _handle_line(self, line: str) -> Optional[str]:
        stripped = line.strip()
        if not stripped or stripped.startswith(":"):
            return None
        if not stripped.startswith(SSE_DATA_PREFIX):
            return None
        data = stripped[len(SSE_DATA_PREFIX):].strip()
        if data == SSE_DONE_SENTINEL:
            self.finished = True
            return None
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            _logger.debug("skipping malformed stream line: %.200s", data)
            return None
        message = _inband_error(payload)
        if message is not None:
            raise TransportError(message=message)
        try:
            return self._extractor(payload)
        except (AttributeError, IndexError, KeyError, TypeError):
            _logger.debug("skipping stream event with unexpected shape: %.200s", data)
            return None


async def decode_stream(chunks: AsyncIterator[bytes], extractor: DeltaExtractor) -> AsyncIterator[str]:
    """Yield text deltas from an async iterator of raw byte chunks."""
    decoder = StreamDecoder(extractor)
    async for chunk in chunks:
        for delta in decoder.feed(chunk):
            yield delta
        if decoder.finished:
            return
    for delta in decoder.flush():
        yield delta


__all__ = [
    "DeltaExtractor",
    "StreamDecoder",
    "decode_stream",
    "choice_delta_content",
    "content_block_delta_text",
]
