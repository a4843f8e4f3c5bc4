"""Persistence layer: contracts and SQLite implementations."""

from .interfaces import IConfigStore, IOutcomeLog, OutcomeStats
from .sqlite import SqliteDispatchStore, UnitOfWorkSqlite

__all__ = ["IConfigStore", "IOutcomeLog", "OutcomeStats", "SqliteDispatchStore", "UnitOfWorkSqlite"]
