"""SQLite-backed implementation of ``IOutcomeRepo``.

Rows are only ever inserted or removed by retention cleanup, never updated.
"""
from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from ...base.models import CallOutcome
from ...config.defaults import OUTCOME_RETENTION_DAYS
from ..interfaces.repos import IOutcomeRepo, OutcomeStats
from .helpers import _outcome_from_row, _to_iso

_COLUMNS = (
    "id, provider_id, model, task_name, request_tokens, response_tokens, status, "
    "error_message, error_code, duration_ms, created_at"
)


class OutcomeRepoSqlite(IOutcomeRepo):
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def append(self, outcome: CallOutcome) -> int:
        """Insert ``outcome`` and return its row id."""
        cur = self.conn.execute(
            """
            INSERT INTO call_outcomes(provider_id, model, task_name, request_tokens, response_tokens,
                status, error_message, error_code, duration_ms, created_at)
            VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                outcome.provider_id,
                outcome.model,
                outcome.task_name,
                outcome.request_tokens,
                outcome.response_tokens,
                outcome.status.value,
                outcome.error_message,
                outcome.error_code,
                outcome.duration_ms,
                _to_iso(outcome.created_at),
            ),
        )
        return int(cur.lastrowid or 0)

    def list_recent(self, limit: int = 50, provider_id: Optional[str] = None) -> List[CallOutcome]:
        """Return up to ``limit`` records, newest first."""
        if provider_id:
            rows = self.conn.execute(
                f"SELECT {_COLUMNS} FROM call_outcomes WHERE provider_id = ? ORDER BY id DESC LIMIT ?",
                (provider_id, limit),
            ).fetchall()
        else:
            rows = self.conn.execute(
                f"SELECT {_COLUMNS} FROM call_outcomes ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [_outcome_from_row(r) for r in rows]

    def stats(self, provider_id: Optional[str] = None) -> OutcomeStats:
        query = (
            "SELECT COUNT(*), "
            "COALESCE(SUM(CASE WHEN status = 'success' THEN 1 ELSE 0 END), 0), "
            "COALESCE(AVG(duration_ms), 0) FROM call_outcomes"
        )
        if provider_id:
            row = self.conn.execute(query + " WHERE provider_id = ?", (provider_id,)).fetchone()
        else:
            row = self.conn.execute(query).fetchone()
        total, successes, avg = int(row[0]), int(row[1]), float(row[2])
        return OutcomeStats(
            total=total,
            successes=successes,
            failures=total - successes,
            avg_duration_ms=int(round(avg)),
        )

    def cleanup(self, days: int = OUTCOME_RETENTION_DAYS, now: Optional[datetime] = None) -> int:
        """Delete records older than ``days``; return the number removed."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        cur = self.conn.execute("DELETE FROM call_outcomes WHERE created_at < ?", (_to_iso(cutoff),))
        return cur.rowcount
