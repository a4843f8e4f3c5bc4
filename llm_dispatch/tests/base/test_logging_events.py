"""Structured logging helpers: level parsing, event payloads, JSON formatting."""
from __future__ import annotations

import json
import logging

from llm_dispatch.base.log_support import JsonFormatter, LogContext
from llm_dispatch.base.logging import (
    REQUIRED_NORMALIZED_KEYS,
    _parse_level,  # type: ignore[attr-defined]
    configure_logger,
    get_logger,
    log_event,
    normalized_log_event,
)


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())


def _capture(name: str) -> tuple[logging.Logger, _ListHandler]:
    logger = get_logger(name)
    handler = _ListHandler()
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG)
    return logger, handler


def test_parse_level_variants():
    assert _parse_level(None) == logging.INFO  # nosec B101
    assert _parse_level("debug") == logging.DEBUG  # nosec B101
    assert _parse_level("WARN") == logging.WARNING  # nosec B101
    assert _parse_level("bogus", default=logging.ERROR) == logging.ERROR  # nosec B101


def test_get_logger_prefixes_children():
    assert get_logger("tests.child").name == "llm_dispatch.tests.child"  # nosec B101
    assert get_logger("llm_dispatch.x").name == "llm_dispatch.x"  # nosec B101
    assert get_logger().name == "llm_dispatch"  # nosec B101


def test_log_event_drops_none_and_merges_context():
    logger, handler = _capture("tests.log_event")
    log_event(logger, "unit.event", LogContext(provider="p", extra={"k": 1}), value=None, count=2)
    payload = json.loads(handler.messages[-1])
    assert payload == {"event": "unit.event", "provider": "p", "k": 1, "count": 2}  # nosec B101


def test_normalized_log_event_keeps_required_keys():
    logger, handler = _capture("tests.normalized")
    normalized_log_event(
        logger,
        "dispatch.attempt",
        LogContext(provider="p", model="m"),
        phase="start",
        attempt=1,
        phase_alias="ignored",
        emitted=None,
    )
    payload = json.loads(handler.messages[-1])
    for key in REQUIRED_NORMALIZED_KEYS:
        assert key in payload  # nosec B101
    assert payload["phase"] == "start" and payload["attempt"] == 1  # nosec B101
    assert payload["error_code"] is None and payload["tokens"] is None  # nosec B101
    assert payload["phase_alias"] == "ignored"  # nosec B101


def test_json_formatter_hoists_json_messages():
    record = logging.LogRecord("llm_dispatch.x", logging.INFO, __file__, 1, '{"event": "e", "n": 3}', None, None)
    out = json.loads(JsonFormatter().format(record))
    assert out["event"] == "e" and out["n"] == 3  # nosec B101
    assert out["level"] == "INFO" and out["logger"] == "llm_dispatch.x"  # nosec B101
    assert "msg" not in out  # nosec B101


def test_configure_logger_file_handler_roundtrip(tmp_path):
    path = tmp_path / "logs" / "dispatch.log"
    logger = configure_logger(level="DEBUG", file_path=str(path))
    try:
        assert any(getattr(h, "baseFilename", None) == str(path) for h in logger.handlers)  # nosec B101
        assert path.parent.is_dir()  # nosec B101
    finally:
        logger = configure_logger(level=logging.INFO, file_path=None)
    assert not any(getattr(h, "baseFilename", None) == str(path) for h in logger.handlers)  # nosec B101
