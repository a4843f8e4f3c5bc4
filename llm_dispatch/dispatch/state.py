"""Explicit state machine for one logical dispatch.

::

    RESOLVING -> ATTEMPTING_PRIMARY -> SUCCEEDED
                                    -> RETRYING_PRIMARY -> ATTEMPTING_PRIMARY
                                    -> FAILING_OVER -> ATTEMPTING_FALLBACK -> SUCCEEDED
                                                                           -> FAILING_OVER
                                                    -> EXHAUSTED

``FAILED`` is reachable from resolving and from any attempting state for
errors that must reach the caller directly (configuration errors, streams
interrupted after output began). Terminal states have no outgoing edges.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from ..base.errors import DispatchError
from ..base.resilience import RetryConfig


class DispatchState(str, Enum):
    RESOLVING = "resolving"
    ATTEMPTING_PRIMARY = "attempting_primary"
    RETRYING_PRIMARY = "retrying_primary"
    FAILING_OVER = "failing_over"
    ATTEMPTING_FALLBACK = "attempting_fallback"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


_TRANSITIONS: Dict[DispatchState, FrozenSet[DispatchState]] = {
    DispatchState.RESOLVING: frozenset({DispatchState.ATTEMPTING_PRIMARY, DispatchState.FAILED}),
    DispatchState.ATTEMPTING_PRIMARY: frozenset(
        {
            DispatchState.SUCCEEDED,
            DispatchState.RETRYING_PRIMARY,
            DispatchState.FAILING_OVER,
            DispatchState.FAILED,
        }
    ),
    DispatchState.RETRYING_PRIMARY: frozenset({DispatchState.ATTEMPTING_PRIMARY}),
    DispatchState.FAILING_OVER: frozenset({DispatchState.ATTEMPTING_FALLBACK, DispatchState.EXHAUSTED}),
    DispatchState.ATTEMPTING_FALLBACK: frozenset(
        {DispatchState.SUCCEEDED, DispatchState.FAILING_OVER, DispatchState.FAILED}
    ),
    DispatchState.SUCCEEDED: frozenset(),
    DispatchState.EXHAUSTED: frozenset(),
    DispatchState.FAILED: frozenset(),
}

TERMINAL_STATES = frozenset(s for s, nxt in _TRANSITIONS.items() if not nxt)


class InvalidTransition(RuntimeError):
    pass


@dataclass
class DispatchRun:
    """Mutable bookkeeping for one request's walk through the state machine.

    Attributes:
        request_id: Correlation id used in log events.
        state: Current state.
        history: Every state entered, in order.
        primary_attempts: Attempts made against the primary target.
        attempts: Total attempts (primary and fallback).
        attempted: Provider ids tried, each listed once, in order.
        last_error: Most recent attempt failure.
        primary_error: Last failure of the primary target.
    """

    request_id: str
    state: DispatchState = DispatchState.RESOLVING
    history: List[DispatchState] = field(default_factory=lambda: [DispatchState.RESOLVING])
    primary_attempts: int = 0
    attempts: int = 0
    attempted: List[str] = field(default_factory=list)
    last_error: Optional[DispatchError] = None
    primary_error: Optional[DispatchError] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, target: DispatchState) -> DispatchState:
        """Move to ``target``.

        Raises:
            InvalidTransition: ``target`` is not reachable from the current state.
        """
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.state.value} -> {target.value}")
        self.state = target
        self.history.append(target)
        return target

    def begin_attempt(self, provider_id: str) -> int:
        """Count an attempt in the current attempting state; return its 1-based number."""
        self.attempts += 1
        if self.state is DispatchState.ATTEMPTING_PRIMARY:
            self.primary_attempts += 1
        if provider_id not in self.attempted:
            self.attempted.append(provider_id)
        return self.attempts

    def record_failure(self, error: DispatchError) -> None:
        self.last_error = error
        if self.state is DispatchState.ATTEMPTING_PRIMARY:
            self.primary_error = error

    def after_primary_failure(self, policy: RetryConfig) -> DispatchState:
        """Choose between another primary attempt and failover."""
        if self.last_error is not None and policy.should_retry(self.last_error, self.primary_attempts):
            return self.transition(DispatchState.RETRYING_PRIMARY)
        return self.transition(DispatchState.FAILING_OVER)


__all__ = ["DispatchState", "DispatchRun", "InvalidTransition", "TERMINAL_STATES"]
