"""SQLite persistence adapters."""

from .engine import create_connection, get_db_path, init_schema
from .outcome_repo import OutcomeRepoSqlite
from .provider_repo import ProviderRepoSqlite
from .store import SqliteDispatchStore
from .task_route_repo import TaskRouteRepoSqlite
from .unit_of_work import UnitOfWorkSqlite

__all__ = [
    "create_connection",
    "get_db_path",
    "init_schema",
    "ProviderRepoSqlite",
    "TaskRouteRepoSqlite",
    "OutcomeRepoSqlite",
    "UnitOfWorkSqlite",
    "SqliteDispatchStore",
]
