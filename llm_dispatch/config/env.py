"""Environment variable names used by the dispatch layer.

Seed keys (``SEED_KEY_ENV``) are only read when the provider store is empty,
to create initial providers; they are never logged.
"""
from __future__ import annotations

import os
from typing import Dict, Optional

ENV_DB_PATH = "LLM_DISPATCH_DB_PATH"
ENV_SECRET = "LLM_DISPATCH_SECRET"  # pragma: allowlist secret - env var name
ENV_CONFIG_FILE = "LLM_DISPATCH_CONFIG_FILE"
ENV_RETRY_COUNT = "LLM_DISPATCH_RETRY_COUNT"
ENV_RETRY_DELAY = "LLM_DISPATCH_RETRY_DELAY_SECONDS"
ENV_SHORT_CIRCUIT_AUTH = "LLM_DISPATCH_SHORT_CIRCUIT_AUTH"
ENV_OUTCOME_RETENTION_DAYS = "LLM_DISPATCH_OUTCOME_RETENTION_DAYS"

# Vendor kind -> env var holding a key used to seed a default provider.
SEED_KEY_ENV: Dict[str, str] = {
    "glm": "GLM_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

_PLACEHOLDER_MARKERS = ("placeholder", "changeme", "example", "your_", "xxx")


def is_placeholder(val: Optional[str]) -> bool:
    """Return True if ``val`` is empty or looks like a template value."""
    if val is None:
        return True
    v = val.strip().lower()
    if not v:
        return True
    return v.startswith("test_") or any(m in v for m in _PLACEHOLDER_MARKERS)


def get_seed_key(vendor: str) -> Optional[str]:
    """Return the seed API key for ``vendor`` from the environment, if usable."""
    name = SEED_KEY_ENV.get(vendor)
    if not name:
        return None
    val = os.getenv(name)
    return None if is_placeholder(val) else val.strip()


def env_flag(name: str) -> Optional[bool]:
    """Parse a boolean env var (1/true/yes/on). ``None`` when unset."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip().lower() in ("1", "true", "yes", "on")


__all__ = [
    "ENV_DB_PATH",
    "ENV_SECRET",
    "ENV_CONFIG_FILE",
    "ENV_RETRY_COUNT",
    "ENV_RETRY_DELAY",
    "ENV_SHORT_CIRCUIT_AUTH",
    "ENV_OUTCOME_RETENTION_DAYS",
    "SEED_KEY_ENV",
    "is_placeholder",
    "get_seed_key",
    "env_flag",
]
