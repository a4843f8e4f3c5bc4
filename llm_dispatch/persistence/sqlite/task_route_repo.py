"""SQLite-backed implementation of ``ITaskRouteRepo``."""
from __future__ import annotations

import sqlite3
from typing import List, Optional

from ...base.models import TaskRoute
from ..interfaces.repos import ITaskRouteRepo
from .helpers import _dump_json, _route_from_row, _to_iso


class TaskRouteRepoSqlite(ITaskRouteRepo):
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def get(self, task_name: str) -> Optional[TaskRoute]:
        row = self.conn.execute(
            "SELECT task_name, provider_id, model, parameters_json FROM task_routes WHERE task_name = ?",
            (task_name,),
        ).fetchone()
        return _route_from_row(row) if row else None

    def list(self) -> List[TaskRoute]:
        rows = self.conn.execute(
            "SELECT task_name, provider_id, model, parameters_json FROM task_routes ORDER BY task_name"
        ).fetchall()
        return [_route_from_row(r) for r in rows]

    def upsert(self, route: TaskRoute) -> TaskRoute:
        self.conn.execute(
            """
            INSERT INTO task_routes(task_name, provider_id, model, parameters_json, updated_at)
            VALUES(?, ?, ?, ?, ?)
            ON CONFLICT(task_name) DO UPDATE SET
                provider_id = excluded.provider_id,
                model = excluded.model,
                parameters_json = excluded.parameters_json,
                updated_at = excluded.updated_at
            """,
            (
                route.task_name,
                route.provider_id,
                route.model,
                _dump_json(dict(route.parameters)),
                _to_iso(None),
            ),
        )
        return route

    def delete(self, task_name: str) -> bool:
        cur = self.conn.execute("DELETE FROM task_routes WHERE task_name = ?", (task_name,))
        return cur.rowcount > 0
