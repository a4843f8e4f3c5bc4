"""Shared fixtures for the dispatch test suite.

Every test gets fresh settings and timeout caches; SQLite tests use a
per-test database under ``tmp_path``.
"""
from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Iterator

import pytest

from llm_dispatch import config as dispatch_config
from llm_dispatch.base import timeouts
from llm_dispatch.credentials import CredentialCipher
from llm_dispatch.persistence.sqlite import SqliteDispatchStore, create_connection, init_schema

from .fakes import ProviderScript, RecordingSleeper


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Clear dispatch env vars and module caches around each test."""
    for name in (
        "LLM_DISPATCH_DB_PATH",
        "LLM_DISPATCH_SECRET",
        "LLM_DISPATCH_CONFIG_FILE",
        "LLM_DISPATCH_RETRY_COUNT",
        "LLM_DISPATCH_RETRY_DELAY_SECONDS",
        "LLM_DISPATCH_SHORT_CIRCUIT_AUTH",
        "LLM_DISPATCH_OUTCOME_RETENTION_DAYS",
        "GLM_API_KEY",
        "OPENAI_API_KEY",
        "ANTHROPIC_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    dispatch_config.reset_settings_cache()
    monkeypatch.setattr(timeouts, "_CACHED", None)
    yield
    dispatch_config.reset_settings_cache()


@pytest.fixture()
def conn(tmp_path: Path) -> Iterator[sqlite3.Connection]:
    """Fresh SQLite connection with schema initialized."""
    connection = create_connection(str(tmp_path / "dispatch.db"))
    init_schema(connection)
    try:
        yield connection
    finally:
        connection.close()


@pytest.fixture()
def sqlite_store(tmp_path: Path) -> SqliteDispatchStore:
    return SqliteDispatchStore(str(tmp_path / "store.db"))


@pytest.fixture(scope="session")
def cipher() -> CredentialCipher:
    return CredentialCipher("unit-test-passphrase")


@pytest.fixture()
def script() -> ProviderScript:
    return ProviderScript()


@pytest.fixture()
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()
