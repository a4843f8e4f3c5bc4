"""SQLite implementation of the dispatcher-facing store protocols.

Each operation opens a short-lived connection and Unit of Work, so every
read returns a fresh snapshot and no connection is shared between
concurrent requests.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

from ...base.models import CallOutcome, ProviderConfig, TaskRoute
from ..interfaces.repos import IConfigStore, IOutcomeLog
from .engine import create_connection, get_db_path, init_schema
from .unit_of_work import UnitOfWorkSqlite


class SqliteDispatchStore(IConfigStore, IOutcomeLog):
    """Configuration reads and outcome appends against one database file."""

    def __init__(self, db_path: Optional[str] = None) -> None:
        self.db_path = str(get_db_path(db_path))
        conn = create_connection(self.db_path)
        try:
            init_schema(conn)
        finally:
            conn.close()

    @contextmanager
    def unit_of_work(self) -> Iterator[UnitOfWorkSqlite]:
        """Yield a Unit of Work on a fresh connection; closes it afterwards."""
        conn = create_connection(self.db_path)
        try:
            with UnitOfWorkSqlite(conn) as uow:
                yield uow
        finally:
            conn.close()

    def get_provider_config(self, provider_id: str) -> Optional[ProviderConfig]:
        with self.unit_of_work() as uow:
            return uow.providers.get(provider_id)

    def list_provider_configs(self) -> List[ProviderConfig]:
        with self.unit_of_work() as uow:
            return uow.providers.list()

    def get_default_provider_config(self) -> Optional[ProviderConfig]:
        with self.unit_of_work() as uow:
            return uow.providers.get_default()

    def get_task_route(self, task_name: str) -> Optional[TaskRoute]:
        with self.unit_of_work() as uow:
            return uow.routes.get(task_name)

    def update_provider_models(self, provider_id: str, models: Sequence[str]) -> bool:
        with self.unit_of_work() as uow:
            return uow.providers.update_models(provider_id, models)

    def append_call_outcome(self, record: CallOutcome) -> None:
        with self.unit_of_work() as uow:
            uow.outcomes.append(record)
