"""SQLite engine helpers for the persistence layer.

Opens connections with WAL journaling, NORMAL synchronous mode, a busy
timeout from ``config.defaults`` and foreign keys enabled, and creates the
schema on demand. Standard library only; no side effects at import time.
"""
from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

from ...config.defaults import (
    DEFAULT_DB_PATH,
    SQLITE_BUSY_TIMEOUT_MS,
    SQLITE_JOURNAL_MODE,
    SQLITE_SYNCHRONOUS,
)


def get_db_path(db_path: Optional[str] = None) -> Path:
    """Return a concrete database file path (``~`` expanded)."""
    return Path(db_path).expanduser() if db_path else DEFAULT_DB_PATH


def create_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    """Open a SQLite connection with pragmas applied.

    ``row_factory`` is ``sqlite3.Row``; timestamps are kept as ISO8601 text
    and parsed by the repositories.
    """
    path = get_db_path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute(f"PRAGMA journal_mode={SQLITE_JOURNAL_MODE};")
    conn.execute(f"PRAGMA synchronous={SQLITE_SYNCHRONOUS};")
    conn.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS};")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    """Create tables and indexes if missing, then commit.

    Schema overview
    ---------------
    - ``providers``: provider configuration; a partial unique index allows at
      most one row with ``is_default = 1``.
    - ``task_routes``: task name -> optional provider/model/parameters.
    - ``call_outcomes``: append-only attempt log.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS providers (
            provider_id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            vendor TEXT NOT NULL CHECK (vendor IN ('openai', 'glm', 'ollama', 'anthropic', 'azure', 'custom')),
            base_url TEXT NOT NULL,
            api_key TEXT NOT NULL DEFAULT '',
            models_json TEXT NOT NULL DEFAULT '[]',
            parameters_json TEXT NOT NULL DEFAULT '{}',
            is_enabled INTEGER NOT NULL DEFAULT 1,
            is_default INTEGER NOT NULL DEFAULT 0,
            sort_order INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        """
    )
    conn.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS ux_providers_single_default "
        "ON providers(is_default) WHERE is_default = 1;"
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS task_routes (
            task_name TEXT PRIMARY KEY,
            provider_id TEXT REFERENCES providers(provider_id) ON DELETE SET NULL,
            model TEXT,
            parameters_json TEXT NOT NULL DEFAULT '{}',
            updated_at TEXT NOT NULL
        );
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS call_outcomes (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            provider_id TEXT NOT NULL,
            model TEXT NOT NULL,
            task_name TEXT,
            request_tokens INTEGER,
            response_tokens INTEGER,
            status TEXT NOT NULL CHECK (status IN ('success', 'failed')),
            error_message TEXT,
            error_code TEXT,
            duration_ms INTEGER NOT NULL,
            created_at TEXT NOT NULL
        );
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS ix_call_outcomes_created ON call_outcomes(created_at);")
    conn.execute("CREATE INDEX IF NOT EXISTS ix_call_outcomes_provider ON call_outcomes(provider_id);")
    conn.commit()
