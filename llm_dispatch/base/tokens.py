"""Rough token estimation used when a vendor reports no usage.

CJK unified ideographs count as 4 tokens each, every other character as 0.3
(rounded up). Intended for outcome-log bookkeeping only.
"""
from __future__ import annotations

import math
import re
from typing import Iterable

_CJK = re.compile(r"[\u4e00-\u9fa5]")


def estimate_tokens(text: str) -> int:
    if not text:
        return 0
    cjk = len(_CJK.findall(text))
    return cjk * 4 + math.ceil((len(text) - cjk) * 0.3)


def estimate_message_tokens(contents: Iterable[str]) -> int:
    """Sum :func:`estimate_tokens` over message contents."""
    return sum(estimate_tokens(c) for c in contents)


__all__ = ["estimate_tokens", "estimate_message_tokens"]
