"""SQLite-backed implementation of ``IProviderRepo``.

Ordering is ``sort_order`` ascending with ties broken by insertion order
(``rowid``). No implicit commits; the Unit of Work governs transactions.
"""
from __future__ import annotations

import sqlite3
from typing import List, Optional, Sequence

from ...base.models import ProviderConfig
from ..interfaces.repos import IProviderRepo
from .helpers import _dump_json, _provider_from_row, _to_iso, _utcnow

_COLUMNS = (
    "provider_id, name, vendor, base_url, api_key, models_json, parameters_json, "
    "is_enabled, is_default, sort_order, created_at, updated_at"
)
_ORDER = "ORDER BY sort_order ASC, rowid ASC"


class ProviderRepoSqlite(IProviderRepo):
    """Provider configuration rows with the single-default invariant."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def get(self, provider_id: str) -> Optional[ProviderConfig]:
        row = self.conn.execute(
            f"SELECT {_COLUMNS} FROM providers WHERE provider_id = ?",
            (provider_id,),
        ).fetchone()
        return _provider_from_row(row) if row else None

    def list(self, enabled_only: bool = False) -> List[ProviderConfig]:
        where = "WHERE is_enabled = 1 " if enabled_only else ""
        rows = self.conn.execute(f"SELECT {_COLUMNS} FROM providers {where}{_ORDER}").fetchall()
        return [_provider_from_row(r) for r in rows]

    def get_default(self) -> Optional[ProviderConfig]:
        """Return the enabled provider flagged default, if any."""
        row = self.conn.execute(
            f"SELECT {_COLUMNS} FROM providers WHERE is_default = 1 AND is_enabled = 1 {_ORDER} LIMIT 1"
        ).fetchone()
        return _provider_from_row(row) if row else None

    def next_sort_order(self) -> int:
        row = self.conn.execute("SELECT MAX(sort_order) FROM providers").fetchone()
        return 0 if row is None or row[0] is None else int(row[0]) + 1

    def _clear_default(self, except_id: Optional[str] = None) -> None:
        if except_id is None:
            self.conn.execute("UPDATE providers SET is_default = 0 WHERE is_default = 1")
        else:
            self.conn.execute(
                "UPDATE providers SET is_default = 0 WHERE is_default = 1 AND provider_id != ?",
                (except_id,),
            )

    def add(self, config: ProviderConfig) -> ProviderConfig:
        """Insert ``config``; clears other defaults first when it is default.

        Raises:
            sqlite3.IntegrityError: duplicate id or unknown vendor kind.
        """
        if config.is_default:
            self._clear_default()
        now = _utcnow()
        created = config.created_at or now
        self.conn.execute(
            f"INSERT INTO providers({_COLUMNS}) VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                config.provider_id,
                config.name,
                config.vendor.value,
                config.base_url,
                config.api_key,
                _dump_json(list(config.models)),
                _dump_json(dict(config.parameters)),
                1 if config.is_enabled else 0,
                1 if config.is_default else 0,
                config.sort_order,
                _to_iso(created),
                _to_iso(now),
            ),
        )
        stored = self.get(config.provider_id)
        if stored is None:  # pragma: no cover - row written above
            raise KeyError(config.provider_id)
        return stored

    def update(self, config: ProviderConfig) -> ProviderConfig:
        """Replace the stored row for ``config.provider_id``.

        Raises:
            KeyError: when the provider does not exist.
        """
        if config.is_default:
            self._clear_default(except_id=config.provider_id)
        cur = self.conn.execute(
            """
            UPDATE providers SET name = ?, vendor = ?, base_url = ?, api_key = ?, models_json = ?,
                parameters_json = ?, is_enabled = ?, is_default = ?, sort_order = ?, updated_at = ?
            WHERE provider_id = ?
            """,
            (
                config.name,
                config.vendor.value,
                config.base_url,
                config.api_key,
                _dump_json(list(config.models)),
                _dump_json(dict(config.parameters)),
                1 if config.is_enabled else 0,
                1 if config.is_default else 0,
                config.sort_order,
                _to_iso(None),
                config.provider_id,
            ),
        )
        if cur.rowcount == 0:
            raise KeyError(config.provider_id)
        stored = self.get(config.provider_id)
        if stored is None:  # pragma: no cover - row written above
            raise KeyError(config.provider_id)
        return stored

    def delete(self, provider_id: str) -> bool:
        cur = self.conn.execute("DELETE FROM providers WHERE provider_id = ?", (provider_id,))
        return cur.rowcount > 0

    def set_default(self, provider_id: str) -> bool:
        if self.get(provider_id) is None:
            return False
        self._clear_default(except_id=provider_id)
        self.conn.execute(
            "UPDATE providers SET is_default = 1, updated_at = ? WHERE provider_id = ?",
            (_to_iso(None), provider_id),
        )
        return True

    def update_models(self, provider_id: str, models: Sequence[str]) -> bool:
        cur = self.conn.execute(
            "UPDATE providers SET models_json = ?, updated_at = ? WHERE provider_id = ?",
            (_dump_json(list(models)), _to_iso(None), provider_id),
        )
        return cur.rowcount > 0

    def reorder(self, provider_ids: Sequence[str]) -> None:
        """Assign ``sort_order`` by position in ``provider_ids``."""
        now = _to_iso(None)
        self.conn.executemany(
            "UPDATE providers SET sort_order = ?, updated_at = ? WHERE provider_id = ?",
            [(index, now, pid) for index, pid in enumerate(provider_ids)],
        )
