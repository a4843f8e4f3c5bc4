"""Row conversion helpers shared by the SQLite repositories.

Timestamps are stored as ISO8601 text and returned as timezone-aware UTC
``datetime`` objects.
"""
from __future__ import annotations

import json
from contextlib import suppress
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ...base.models import CallOutcome, OutcomeStatus, ProviderConfig, TaskRoute, VendorKind


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_iso(value: Optional[datetime]) -> str:
    """Serialize ``value`` (naive treated as UTC); ``None`` means now."""
    value = value or _utcnow()
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _parse_ts(raw: Any) -> datetime:
    """Parse a stored timestamp into an aware UTC ``datetime`` (epoch on garbage)."""
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=timezone.utc)
    if isinstance(raw, str):
        with suppress(ValueError, TypeError):
            dt = datetime.fromisoformat(raw)
            return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return datetime.fromtimestamp(0, tz=timezone.utc)


def _load_json(raw: Any, default: Any) -> Any:
    if not raw:
        return default
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return default
    return value if isinstance(value, type(default)) else default


def _dump_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True)


def _provider_from_row(r: Any) -> ProviderConfig:
    models: List[str] = _load_json(r["models_json"], [])
    parameters: Dict[str, Any] = _load_json(r["parameters_json"], {})
    return ProviderConfig(
        provider_id=r["provider_id"],
        name=r["name"],
        vendor=VendorKind(r["vendor"]),
        base_url=r["base_url"],
        api_key=r["api_key"] or "",
        models=[str(m) for m in models],
        parameters=parameters,
        is_enabled=bool(r["is_enabled"]),
        is_default=bool(r["is_default"]),
        sort_order=int(r["sort_order"]),
        created_at=_parse_ts(r["created_at"]),
        updated_at=_parse_ts(r["updated_at"]),
    )


def _route_from_row(r: Any) -> TaskRoute:
    return TaskRoute(
        task_name=r["task_name"],
        provider_id=r["provider_id"],
        model=r["model"],
        parameters=_load_json(r["parameters_json"], {}),
    )


def _outcome_from_row(r: Any) -> CallOutcome:
    return CallOutcome(
        id=int(r["id"]),
        provider_id=r["provider_id"],
        model=r["model"],
        task_name=r["task_name"],
        request_tokens=r["request_tokens"],
        response_tokens=r["response_tokens"],
        status=OutcomeStatus(r["status"]),
        error_message=r["error_message"],
        error_code=r["error_code"],
        duration_ms=int(r["duration_ms"]),
        created_at=_parse_ts(r["created_at"]),
    )
