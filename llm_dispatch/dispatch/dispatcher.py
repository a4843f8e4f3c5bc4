"""Resilience dispatcher.

Orchestrates the resolver and adapter registry for one logical request:

- the resolved primary target is attempted up to ``RetryConfig.max_attempts``
  times with linear backoff, always with the same provider/model;
- on exhaustion every other enabled provider is tried once, in priority
  order, until one succeeds;
- if all fail, :class:`AllProvidersExhausted` wraps the last error.

Every attempt writes one :class:`CallOutcome` before the next state is
entered. Outcome-log failures are reported at debug level and never replace
the call's own result or error.

Streaming follows the same plan, but only failures before the first chunk
are retried or failed over; a failure after output began ends the stream
with :class:`StreamInterrupted`.
"""
from __future__ import annotations

import inspect
import logging
import time
import uuid
from contextlib import aclosing
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Union

from ..adapters import ProviderAdapter
from ..base.errors import (
    AllProvidersExhausted,
    AuthenticationError,
    ConfigurationError,
    DispatchError,
    ErrorCode,
    StreamInterrupted,
    wrap_exception,
)
from ..base.http import ClientFactory
from ..base.logging import LogContext, get_logger, log_event, normalized_log_event
from ..base.models import (
    AvailabilityResult,
    CallOutcome,
    CallRequest,
    CallResult,
    OutcomeStatus,
    ResolvedTarget,
    StreamEvent,
)
from ..base.resilience import DEFAULT_RETRY_CONFIG, RetryConfig, Sleeper, backoff
from ..base.tokens import estimate_message_tokens, estimate_tokens
from ..credentials import CredentialCipher
from ..persistence.interfaces import IConfigStore, IOutcomeLog
from .registry import AdapterRegistry
from .resolver import ConfigResolver
from .state import DispatchRun, DispatchState

_logger = get_logger("llm_dispatch.dispatcher")

ChunkCallback = Callable[[str], Union[None, Awaitable[None]]]
DoneCallback = Callable[[str], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[DispatchError], Union[None, Awaitable[None]]]


async def _invoke(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class Dispatcher:
    """Entry point for buffered and streaming calls."""

    def __init__(
        self,
        store: IConfigStore,
        outcome_log: Optional[IOutcomeLog] = None,
        *,
        cipher: Optional[CredentialCipher] = None,
        registry: Optional[AdapterRegistry] = None,
        resolver: Optional[ConfigResolver] = None,
        retry_config: RetryConfig = DEFAULT_RETRY_CONFIG,
        sleeper: Optional[Sleeper] = None,
        http_client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self._store = store
        self._outcome_log = outcome_log
        self.registry = registry or AdapterRegistry(store, cipher, http_client_factory=http_client_factory)
        self.resolver = resolver or ConfigResolver(store)
        self._retry = retry_config
        self._sleeper = sleeper

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    @property
    def retry_config(self) -> RetryConfig:
        return self._retry

    def set_retry_config(self, count: int, delay_seconds: float) -> RetryConfig:
        """Replace the retry ceiling and base delay.

        Raises:
            ConfigurationError: ``count < 1`` or delay below the minimum.
        """
        self._retry = RetryConfig(
            max_attempts=count,
            delay_seconds=delay_seconds,
            short_circuit_auth=self._retry.short_circuit_auth,
        )
        return self._retry

    def clear_cache(self) -> None:
        self.registry.invalidate_all()
        self.resolver.clear_task_cache()

    def clear_provider_cache(self, provider_id: str) -> None:
        self.registry.invalidate(provider_id)

    def clear_task_cache(self, task_name: Optional[str] = None) -> None:
        self.resolver.clear_task_cache(task_name)

    # ------------------------------------------------------------------
    # Shared machinery
    # ------------------------------------------------------------------
    def _resolve(self, run: DispatchRun, request: CallRequest) -> ResolvedTarget:
        try:
            target = self.resolver.resolve(request)
        except ConfigurationError as exc:
            run.transition(DispatchState.FAILED)
            log_event(
                _logger,
                "dispatch.resolve",
                LogContext(request_id=run.request_id, task=request.task_name),
                level=logging.WARNING,
                error_code=exc.code.value,
                error=exc.message,
            )
            raise
        run.transition(DispatchState.ATTEMPTING_PRIMARY)
        log_event(
            _logger,
            "dispatch.resolve",
            LogContext(provider=target.provider_id, model=target.model, request_id=run.request_id, task=request.task_name),
        )
        return target

    def _record(self, outcome: CallOutcome) -> None:
        """Append ``outcome``; failures are logged at debug level and swallowed."""
        if self._outcome_log is None:
            return
        try:
            self._outcome_log.append_call_outcome(outcome)
        except Exception as exc:  # noqa: BLE001 - outcome logging must never mask the call result
            log_event(
                _logger,
                "dispatch.outcome_log_failed",
                LogContext(provider=outcome.provider_id, model=outcome.model),
                level=logging.DEBUG,
                error=str(exc),
            )

    def _record_success(
        self,
        run: DispatchRun,
        request: CallRequest,
        target: ResolvedTarget,
        result: CallResult,
        started: float,
    ) -> None:
        usage = result.usage
        self._record(
            CallOutcome(
                provider_id=target.provider_id,
                model=target.model,
                task_name=request.task_name,
                status=OutcomeStatus.SUCCESS,
                duration_ms=_elapsed_ms(started),
                request_tokens=(usage.prompt_tokens if usage and usage.prompt_tokens is not None
                                else estimate_message_tokens(m.content for m in request.messages)),
                response_tokens=(usage.completion_tokens if usage and usage.completion_tokens is not None
                                 else estimate_tokens(result.content)),
            )
        )
        normalized_log_event(
            _logger,
            "dispatch.attempt",
            LogContext(provider=target.provider_id, model=target.model, request_id=run.request_id),
            phase="finalize",
            attempt=run.attempts,
            emitted=True,
            tokens={"prompt": usage.prompt_tokens, "completion": usage.completion_tokens} if usage else None,
            duration_ms=_elapsed_ms(started),
            state=run.state.value,
        )

    def _record_failure(
        self,
        run: DispatchRun,
        request: CallRequest,
        target: ResolvedTarget,
        error: DispatchError,
        started: float,
        *,
        emitted: bool = False,
    ) -> None:
        run.record_failure(error)
        self._record(
            CallOutcome(
                provider_id=target.provider_id,
                model=target.model,
                task_name=request.task_name,
                status=OutcomeStatus.FAILED,
                duration_ms=_elapsed_ms(started),
                error_message=error.message,
                error_code=error.code.value,
            )
        )
        normalized_log_event(
            _logger,
            "dispatch.attempt",
            LogContext(provider=target.provider_id, model=target.model, request_id=run.request_id),
            phase="finalize",
            attempt=run.attempts,
            error_code=error.code.value,
            emitted=emitted,
            level=logging.WARNING,
            error=error.message,
            state=run.state.value,
        )

    def _adapter(self, target: ResolvedTarget) -> ProviderAdapter:
        return self.registry.get_for(target.provider)

    def _shares_failed_credentials(self, run: DispatchRun, primary: ResolvedTarget, candidate: ResolvedTarget) -> bool:
        """True when the primary was rejected for auth and ``candidate`` uses the same endpoint and key."""
        if not isinstance(run.primary_error, AuthenticationError):
            return False
        try:
            return self._adapter(primary).credential_scope == self._adapter(candidate).credential_scope
        except DispatchError:
            return False

    async def _targets(
        self,
        run: DispatchRun,
        request: CallRequest,
        primary: ResolvedTarget,
        policy: RetryConfig,
    ) -> AsyncIterator[ResolvedTarget]:
        """Yield targets in attempt order.

        The consumer records each failure on ``run`` before asking for the
        next target and stops iterating on success or on a terminal error.
        """
        while True:
            yield primary
            if run.after_primary_failure(policy) is not DispatchState.RETRYING_PRIMARY:
                break
            await backoff(policy.delay_after(run.primary_attempts), self._sleeper)
            run.transition(DispatchState.ATTEMPTING_PRIMARY)

        for candidate in self.resolver.fallback_candidates(request, primary.provider_id):
            if self._shares_failed_credentials(run, primary, candidate):
                log_event(
                    _logger,
                    "dispatch.failover",
                    LogContext(provider=candidate.provider_id, request_id=run.request_id),
                    skipped=True,
                    reason="shared credential scope",
                )
                continue
            run.transition(DispatchState.ATTEMPTING_FALLBACK)
            log_event(
                _logger,
                "dispatch.failover",
                LogContext(provider=candidate.provider_id, model=candidate.model, request_id=run.request_id),
                from_provider=primary.provider_id,
            )
            yield candidate
            run.transition(DispatchState.FAILING_OVER)

    def _exhausted(self, run: DispatchRun) -> AllProvidersExhausted:
        run.transition(DispatchState.EXHAUSTED)
        last = run.last_error
        error = AllProvidersExhausted(
            message=f"all providers failed; last error: {last.message if last else 'unknown'}",
            last_error=last,
            attempted=list(run.attempted),
        )
        log_event(
            _logger,
            "dispatch.exhausted",
            LogContext(request_id=run.request_id),
            level=logging.ERROR,
            attempts=run.attempts,
            attempted=run.attempted,
            error_code=error.code.value,
        )
        return error

    def _start(self, run: DispatchRun, target: ResolvedTarget) -> float:
        attempt = run.begin_attempt(target.provider_id)
        normalized_log_event(
            _logger,
            "dispatch.attempt",
            LogContext(provider=target.provider_id, model=target.model, request_id=run.request_id),
            phase="start",
            attempt=attempt,
            level=logging.DEBUG,
            state=run.state.value,
        )
        return time.monotonic()

    # ------------------------------------------------------------------
    # Buffered calls
    # ------------------------------------------------------------------
    async def call(self, request: CallRequest) -> CallResult:
        """Return exactly one result for ``request``.

        Raises:
            ConfigurationError: nothing resolvable.
            AllProvidersExhausted: primary retries and all fallbacks failed.
        """
        run = DispatchRun(request_id=uuid.uuid4().hex[:12])
        primary = self._resolve(run, request)
        policy = self._retry

        async with aclosing(self._targets(run, request, primary, policy)) as targets:
            async for target in targets:
                started = self._start(run, target)
                try:
                    adapter = self._adapter(target)
                    result = await adapter.call(request.messages, target.model, target.parameters)
                except Exception as exc:  # noqa: BLE001 - every failure becomes a DispatchError
                    error = wrap_exception(exc, provider=target.provider_id, model=target.model)
                    self._record_failure(run, request, target, error, started)
                    continue
                run.transition(DispatchState.SUCCEEDED)
                self._record_success(run, request, target, result, started)
                return result
        raise self._exhausted(run)

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------
    async def stream(self, request: CallRequest) -> AsyncIterator[StreamEvent]:
        """Yield deltas followed by exactly one terminal event.

        Errors never escape the iterator; they arrive as a terminal
        ``StreamEvent(error=...)``.
        """
        run = DispatchRun(request_id=uuid.uuid4().hex[:12])
        try:
            primary = self._resolve(run, request)
        except ConfigurationError as exc:
            yield StreamEvent(error=exc)
            return
        policy = self._retry

        async with aclosing(self._targets(run, request, primary, policy)) as targets:
            async for target in targets:
                started = self._start(run, target)
                parts: List[str] = []
                try:
                    adapter = self._adapter(target)
                    async with aclosing(adapter.stream_call(request.messages, target.model, target.parameters)) as deltas:
                        async for delta in deltas:
                            if not delta:
                                continue
                            parts.append(delta)
                            yield StreamEvent(delta=delta)
                except Exception as exc:  # noqa: BLE001 - every failure becomes a DispatchError
                    error = wrap_exception(exc, provider=target.provider_id, model=target.model)
                    self._record_failure(run, request, target, error, started, emitted=bool(parts))
                    if not parts:
                        continue
                    run.transition(DispatchState.FAILED)
                    yield StreamEvent(
                        error=StreamInterrupted(
                            message=f"stream interrupted after output began: {error.message}",
                            code=error.code if error.code is not ErrorCode.UNKNOWN else ErrorCode.TRANSIENT,
                            provider=target.provider_id,
                            model=target.model,
                            raw=error,
                        )
                    )
                    return
                run.transition(DispatchState.SUCCEEDED)
                result = CallResult(content="".join(parts), model=target.model, provider_id=target.provider_id)
                self._record_success(run, request, target, result, started)
                yield StreamEvent(done=True, result=result)
                return
        yield StreamEvent(error=self._exhausted(run))

    async def stream_call(
        self,
        request: CallRequest,
        on_chunk: ChunkCallback,
        on_done: Optional[DoneCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> Optional[CallResult]:
        """Callback form of :meth:`stream`.

        ``on_chunk`` receives each delta, ``on_done`` the full text. Without
        ``on_error`` a terminal error is raised instead of delivered.
        Callbacks may be plain functions or coroutines.
        """
        async with aclosing(self.stream(request)) as events:
            async for event in events:
                if event.delta is not None:
                    await _invoke(on_chunk, event.delta)
                elif event.done and event.result is not None:
                    await _invoke(on_done, event.result.content)
                    return event.result
                elif event.error is not None:
                    error = event.error
                    if not isinstance(error, DispatchError):  # pragma: no cover - stream() only yields DispatchErrors
                        error = wrap_exception(error)
                    if on_error is None:
                        raise error
                    await _invoke(on_error, error)
                    return None
        return None

    # ------------------------------------------------------------------
    # Provider management helpers
    # ------------------------------------------------------------------
    async def check_availability(self, provider_id: str, model: Optional[str] = None) -> AvailabilityResult:
        """Test connectivity with a freshly built, uncached adapter.

        Raises:
            ConfigurationError: the provider does not exist.
        """
        config = self._store.get_provider_config(provider_id)
        if config is None:
            raise ConfigurationError(
                message=f"provider '{provider_id}' does not exist",
                code=ErrorCode.NOT_FOUND,
                provider=provider_id,
            )
        try:
            adapter = self.registry.build(config)
        except DispatchError as exc:
            return AvailabilityResult(success=False, message=f"connection failed: {exc.message}")
        result = await adapter.check_availability(model)
        log_event(
            _logger,
            "dispatch.check_availability",
            LogContext(provider=provider_id, model=model),
            success=result.success,
            latency_ms=result.latency_ms,
        )
        return result

    async def sync_models(self, provider_id: str) -> List[str]:
        """Fetch the vendor catalog and persist it when non-empty.

        Raises:
            ConfigurationError: the provider does not exist.
            DispatchError: the listing call failed.
        """
        config = self._store.get_provider_config(provider_id)
        if config is None:
            raise ConfigurationError(
                message=f"provider '{provider_id}' does not exist",
                code=ErrorCode.NOT_FOUND,
                provider=provider_id,
            )
        models = await self.registry.build(config).list_models()
        if models:
            self._store.update_provider_models(provider_id, models)
            self.registry.invalidate(provider_id)
        log_event(_logger, "dispatch.sync_models", LogContext(provider=provider_id), count=len(models))
        return models


__all__ = ["Dispatcher"]
