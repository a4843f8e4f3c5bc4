"""SQLite-backed Unit of Work aggregating the dispatch repositories.

Commits when the context exits cleanly, rolls back otherwise. Repositories
never commit on their own.
"""
from __future__ import annotations

import sqlite3

from ..interfaces.repos import IUnitOfWork
from .outcome_repo import OutcomeRepoSqlite
from .provider_repo import ProviderRepoSqlite
from .task_route_repo import TaskRouteRepoSqlite


class UnitOfWorkSqlite(IUnitOfWork):
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self.providers = ProviderRepoSqlite(conn)
        self.routes = TaskRouteRepoSqlite(conn)
        self.outcomes = OutcomeRepoSqlite(conn)
        self._active = False

    def __enter__(self) -> "UnitOfWorkSqlite":
        self._active = True
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self._active = False

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()
