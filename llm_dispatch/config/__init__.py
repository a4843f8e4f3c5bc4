"""Unified configuration layer for the dispatcher.

Sources are merged in a predictable order (later wins):
    1. Built-in defaults (``config.defaults``)
    2. Environment variables (``config.env``)
    3. Optional JSON or YAML file pointed to by ``LLM_DISPATCH_CONFIG_FILE``
    4. In-code overrides passed to :func:`get_dispatch_settings`

File structure example (keys may also sit under a top-level ``dispatch``)::

    retry_count: 3
    retry_delay_seconds: 1.0
    short_circuit_auth: false
    db_path: ~/.llm_dispatch/dispatch.db

Public API
----------
* get_dispatch_settings(overrides: dict | None = None) -> DispatchSettings
* reset_settings_cache() -> None
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from .defaults import (
    DEFAULT_DB_PATH,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY_SECONDS,
    MIN_RETRY_DELAY_SECONDS,
    OUTCOME_RETENTION_DAYS,
)
from .env import (
    ENV_CONFIG_FILE,
    ENV_DB_PATH,
    ENV_OUTCOME_RETENTION_DAYS,
    ENV_RETRY_COUNT,
    ENV_RETRY_DELAY,
    ENV_SECRET,
    ENV_SHORT_CIRCUIT_AUTH,
    env_flag,
    is_placeholder,
)


class DispatchSettings(BaseModel):
    """Validated runtime settings.

    ``secret`` is the passphrase for the credential cipher; it is excluded
    from ``repr`` so settings objects can be logged safely.
    """

    model_config = ConfigDict(frozen=True)

    db_path: str = str(DEFAULT_DB_PATH)
    secret: Optional[str] = Field(default=None, repr=False)
    retry_count: int = Field(default=DEFAULT_RETRY_COUNT, ge=1)
    retry_delay_seconds: float = Field(default=DEFAULT_RETRY_DELAY_SECONDS, ge=MIN_RETRY_DELAY_SECONDS)
    short_circuit_auth: bool = False
    outcome_retention_days: int = Field(default=OUTCOME_RETENTION_DAYS, ge=1)


_FILE_CACHE: Optional[Dict[str, Any]] = None
_SETTINGS_CACHE: Optional[DispatchSettings] = None


def _load_external_config() -> Dict[str, Any]:
    """Load the optional config file once (JSON first, then YAML)."""
    global _FILE_CACHE  # noqa: PLW0603 - documented module cache
    if _FILE_CACHE is not None:
        return _FILE_CACHE
    path = os.getenv(ENV_CONFIG_FILE)
    if not path or not Path(path).expanduser().is_file():
        _FILE_CACHE = {}
        return _FILE_CACHE
    text = Path(path).expanduser().read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        data = {}
    section = data.get("dispatch")
    _FILE_CACHE = dict(section) if isinstance(section, dict) else data
    return _FILE_CACHE


def _env_values() -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if db_path := os.getenv(ENV_DB_PATH):
        values["db_path"] = db_path
    secret = os.getenv(ENV_SECRET)
    if not is_placeholder(secret):
        values["secret"] = secret
    if count := os.getenv(ENV_RETRY_COUNT):
        values["retry_count"] = count
    if delay := os.getenv(ENV_RETRY_DELAY):
        values["retry_delay_seconds"] = delay
    if (flag := env_flag(ENV_SHORT_CIRCUIT_AUTH)) is not None:
        values["short_circuit_auth"] = flag
    if days := os.getenv(ENV_OUTCOME_RETENTION_DAYS):
        values["outcome_retention_days"] = days
    return values


def get_dispatch_settings(overrides: Optional[Dict[str, Any]] = None) -> DispatchSettings:
    """Return merged settings; cached unless ``overrides`` are supplied.

    Raises:
        pydantic.ValidationError: when a merged value is out of range.
    """
    global _SETTINGS_CACHE  # noqa: PLW0603 - documented module cache
    if overrides is None and _SETTINGS_CACHE is not None:
        return _SETTINGS_CACHE
    merged: Dict[str, Any] = {}
    merged.update(_env_values())
    merged.update({k: v for k, v in _load_external_config().items() if k in DispatchSettings.model_fields})
    if overrides:
        merged.update(overrides)
    if "db_path" in merged:
        merged["db_path"] = str(Path(str(merged["db_path"])).expanduser())
    settings = DispatchSettings(**merged)
    if overrides is None:
        _SETTINGS_CACHE = settings
    return settings


def reset_settings_cache() -> None:
    """Forget cached file contents and settings (used by tests)."""
    global _FILE_CACHE, _SETTINGS_CACHE  # noqa: PLW0603
    _FILE_CACHE = None
    _SETTINGS_CACHE = None


__all__ = ["DispatchSettings", "get_dispatch_settings", "reset_settings_cache"]
