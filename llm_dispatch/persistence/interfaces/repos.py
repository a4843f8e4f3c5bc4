"""Repository, store and Unit of Work protocols for dispatch persistence.

Two views of the same storage exist:

- the repository protocols (``IProviderRepo``, ``ITaskRouteRepo``,
  ``IOutcomeRepo``) used by configuration management, grouped by an
  ``IUnitOfWork`` that owns the transaction;
- the narrow read/append protocols the dispatcher consumes
  (``IConfigStore`` and ``IOutcomeLog``).

Design Principles:
- No concrete behavior; pure structural typing via ``Protocol``.
- Repositories never commit; the Unit of Work commits on clean exit and
  rolls back on error.
- Values returned from reads are immutable snapshots; a later write never
  changes an object already handed out.

Concrete SQLite implementations live under ``persistence/sqlite/``.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from ...base.models import CallOutcome, ProviderConfig, TaskRoute


@dataclass(frozen=True)
class OutcomeStats:
    """Aggregate over outcome records.

    Attributes
    ----------
    total: Number of attempts recorded.
    successes: Attempts with status ``success``.
    failures: Attempts with status ``failed``.
    avg_duration_ms: Mean duration across all attempts (0 when empty).
    """

    total: int
    successes: int
    failures: int
    avg_duration_ms: int


# ---------- Repository Protocols ----------


class IProviderRepo(Protocol):
    """Provider configuration storage.

    At most one provider may carry ``is_default``; ``add``, ``update`` and
    ``set_default`` clear the flag elsewhere before setting it.
    """

    def get(self, provider_id: str) -> Optional[ProviderConfig]: ...

    def list(self, enabled_only: bool = False) -> List[ProviderConfig]: ...

    def get_default(self) -> Optional[ProviderConfig]: ...

    def next_sort_order(self) -> int: ...

    def add(self, config: ProviderConfig) -> ProviderConfig: ...

    def update(self, config: ProviderConfig) -> ProviderConfig: ...

    def delete(self, provider_id: str) -> bool: ...

    def set_default(self, provider_id: str) -> bool: ...

    def update_models(self, provider_id: str, models: Sequence[str]) -> bool: ...

    def reorder(self, provider_ids: Sequence[str]) -> None: ...


class ITaskRouteRepo(Protocol):
    def get(self, task_name: str) -> Optional[TaskRoute]: ...

    def list(self) -> List[TaskRoute]: ...

    def upsert(self, route: TaskRoute) -> TaskRoute: ...

    def delete(self, task_name: str) -> bool: ...


class IOutcomeRepo(Protocol):
    """Append-only outcome log with retention cleanup."""

    def append(self, outcome: CallOutcome) -> int: ...

    def list_recent(self, limit: int = 50, provider_id: Optional[str] = None) -> List[CallOutcome]: ...

    def stats(self, provider_id: Optional[str] = None) -> OutcomeStats: ...

    def cleanup(self, days: int = 30, now: Optional[datetime] = None) -> int: ...


class IUnitOfWork(Protocol):
    """Transaction boundary exposing the repositories."""

    providers: IProviderRepo
    routes: ITaskRouteRepo
    outcomes: IOutcomeRepo

    def __enter__(self) -> "IUnitOfWork": ...

    def __exit__(self, exc_type, exc, tb) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


# ---------- Dispatcher-facing Protocols ----------


class IConfigStore(Protocol):
    """Read side consumed by the resolver and dispatcher."""

    def get_provider_config(self, provider_id: str) -> Optional[ProviderConfig]: ...

    def list_provider_configs(self) -> List[ProviderConfig]: ...

    def get_default_provider_config(self) -> Optional[ProviderConfig]: ...

    def get_task_route(self, task_name: str) -> Optional[TaskRoute]: ...

    def update_provider_models(self, provider_id: str, models: Sequence[str]) -> bool: ...


class IOutcomeLog(Protocol):
    """Write side consumed by the dispatcher."""

    def append_call_outcome(self, record: CallOutcome) -> None: ...


__all__ = [
    "OutcomeStats",
    "IProviderRepo",
    "ITaskRouteRepo",
    "IOutcomeRepo",
    "IUnitOfWork",
    "IConfigStore",
    "IOutcomeLog",
]
