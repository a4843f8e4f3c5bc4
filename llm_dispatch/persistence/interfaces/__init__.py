"""Persistence contracts."""

from .repos import (
    IConfigStore,
    IOutcomeLog,
    IOutcomeRepo,
    IProviderRepo,
    ITaskRouteRepo,
    IUnitOfWork,
    OutcomeStats,
)

__all__ = [
    "OutcomeStats",
    "IProviderRepo",
    "ITaskRouteRepo",
    "IOutcomeRepo",
    "IUnitOfWork",
    "IConfigStore",
    "IOutcomeLog",
]
