"""Resolution, adapter caching and the resilient dispatcher."""

from .dispatcher import Dispatcher
from .registry import AdapterRegistry
from .resolver import ConfigResolver, merge_parameters
from .state import TERMINAL_STATES, DispatchRun, DispatchState, InvalidTransition

__all__ = [
    "Dispatcher",
    "AdapterRegistry",
    "ConfigResolver",
    "merge_parameters",
    "DispatchRun",
    "DispatchState",
    "InvalidTransition",
    "TERMINAL_STATES",
]
