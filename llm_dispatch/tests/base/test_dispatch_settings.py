"""Settings merge order: defaults, env, config file, overrides."""
from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from llm_dispatch.config import get_dispatch_settings, reset_settings_cache
from llm_dispatch.config.env import get_seed_key, is_placeholder


def test_defaults_without_env():
    settings = get_dispatch_settings()
    assert settings.retry_count == 3  # nosec B101
    assert settings.retry_delay_seconds == 1.0  # nosec B101
    assert settings.secret is None and settings.short_circuit_auth is False  # nosec B101
    assert settings.db_path.endswith("dispatch.db")  # nosec B101


def test_env_values_are_applied(monkeypatch, tmp_path):
    monkeypatch.setenv("LLM_DISPATCH_RETRY_COUNT", "5")
    monkeypatch.setenv("LLM_DISPATCH_RETRY_DELAY_SECONDS", "0.25")
    monkeypatch.setenv("LLM_DISPATCH_SHORT_CIRCUIT_AUTH", "yes")
    monkeypatch.setenv("LLM_DISPATCH_DB_PATH", str(tmp_path / "x.db"))
    monkeypatch.setenv("LLM_DISPATCH_SECRET", "real-passphrase")
    settings = get_dispatch_settings()
    assert settings.retry_count == 5 and settings.retry_delay_seconds == 0.25  # nosec B101
    assert settings.short_circuit_auth is True  # nosec B101
    assert settings.db_path == str(tmp_path / "x.db")  # nosec B101
    assert "real-passphrase" not in repr(settings)  # nosec B101


def test_placeholder_secret_ignored(monkeypatch):
    monkeypatch.setenv("LLM_DISPATCH_SECRET", "changeme")
    assert get_dispatch_settings().secret is None  # nosec B101


def test_yaml_file_overrides_env(monkeypatch, tmp_path):
    path = tmp_path / "dispatch.yaml"
    path.write_text("dispatch:\n  retry_count: 7\n  unknown_key: 1\n", encoding="utf-8")
    monkeypatch.setenv("LLM_DISPATCH_CONFIG_FILE", str(path))
    monkeypatch.setenv("LLM_DISPATCH_RETRY_COUNT", "2")
    assert get_dispatch_settings().retry_count == 7  # nosec B101


def test_json_file_and_overrides(monkeypatch, tmp_path):
    path = tmp_path / "dispatch.json"
    path.write_text(json.dumps({"retry_delay_seconds": 2.0}), encoding="utf-8")
    monkeypatch.setenv("LLM_DISPATCH_CONFIG_FILE", str(path))
    assert get_dispatch_settings().retry_delay_seconds == 2.0  # nosec B101
    assert get_dispatch_settings({"retry_delay_seconds": 0.5}).retry_delay_seconds == 0.5  # nosec B101


def test_settings_are_cached_until_reset(monkeypatch):
    first = get_dispatch_settings()
    monkeypatch.setenv("LLM_DISPATCH_RETRY_COUNT", "9")
    assert get_dispatch_settings() is first  # nosec B101
    reset_settings_cache()
    assert get_dispatch_settings().retry_count == 9  # nosec B101


def test_out_of_range_values_rejected():
    with pytest.raises(ValidationError):
        get_dispatch_settings({"retry_count": 0})
    with pytest.raises(ValidationError):
        get_dispatch_settings({"retry_delay_seconds": 0.01})


def test_seed_keys_skip_placeholders(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-real-looking")
    monkeypatch.setenv("GLM_API_KEY", "your_key_here")
    assert get_seed_key("openai") == "sk-real-looking"  # nosec B101
    assert get_seed_key("glm") is None  # nosec B101
    assert get_seed_key("azure") is None  # nosec B101
    assert is_placeholder("  ")  # nosec B101
