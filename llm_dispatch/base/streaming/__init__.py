"""Streaming decoder public surface."""

from .decoder import (
    DeltaExtractor,
    StreamDecoder,
    choice_delta_content,
    content_block_delta_text,
    decode_stream,
)

__all__ = [
    "DeltaExtractor",
    "StreamDecoder",
    "decode_stream",
    "choice_delta_content",
    "content_block_delta_text",
]
