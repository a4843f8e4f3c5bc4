from __future__ import annotations

import pytest

from llm_dispatch.base.errors import (
    AuthenticationError,
    ConfigurationError,
    ErrorCode,
    ProtocolError,
    StreamInterrupted,
    TransportError,
)
from llm_dispatch.base.resilience import DEFAULT_RETRY_CONFIG, RetryConfig, backoff

from ..fakes import RecordingSleeper


def test_defaults_match_documented_policy():
    assert DEFAULT_RETRY_CONFIG.max_attempts == 3  # nosec B101
    assert DEFAULT_RETRY_CONFIG.delay_seconds == 1.0  # nosec B101
    assert DEFAULT_RETRY_CONFIG.short_circuit_auth is False  # nosec B101


def test_linear_backoff_schedule():
    cfg = RetryConfig(max_attempts=4, delay_seconds=0.5)
    assert list(cfg.delays()) == [0.5, 1.0, 1.5]  # nosec B101
    assert cfg.delay_after(2) == 1.0  # nosec B101


@pytest.mark.parametrize("count,delay", [(0, 1.0), (-1, 1.0), (3, 0.05)])
def test_invalid_values_rejected(count, delay):
    with pytest.raises(ConfigurationError):
        RetryConfig(max_attempts=count, delay_seconds=delay)


def test_should_retry_rules():
    cfg = RetryConfig(max_attempts=3, delay_seconds=0.1)
    transient = TransportError(message="x", code=ErrorCode.TRANSIENT)
    assert cfg.should_retry(transient, 1)  # nosec B101
    assert cfg.should_retry(ProtocolError(message="bad body"), 2)  # nosec B101
    assert not cfg.should_retry(transient, 3)  # nosec B101
    assert not cfg.should_retry(ConfigurationError(message="cfg"), 1)  # nosec B101
    assert not cfg.should_retry(StreamInterrupted(message="cut"), 1)  # nosec B101
    assert cfg.should_retry(AuthenticationError(message="401"), 1)  # nosec B101


def test_short_circuit_auth_stops_auth_retries():
    cfg = RetryConfig(max_attempts=3, delay_seconds=0.1, short_circuit_auth=True)
    assert not cfg.should_retry(AuthenticationError(message="401"), 1)  # nosec B101
    assert cfg.should_retry(TransportError(message="x"), 1)  # nosec B101


@pytest.mark.asyncio
async def test_backoff_uses_injected_sleeper():
    sleeper = RecordingSleeper()
    await backoff(0.3, sleeper)
    assert sleeper.delays == [0.3]  # nosec B101
