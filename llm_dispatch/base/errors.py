"""
Normalized error taxonomy for the dispatch layer.

Every failure that crosses the dispatcher boundary is one of the
``DispatchError`` kinds below, each carrying a normalized :class:`ErrorCode`
so callers can tell "fix your configuration" apart from "try again later"
without inspecting transport-specific exceptions.

Kinds
-----
ConfigurationError
    No resolvable provider/model. Never retried, never failed over.
AuthenticationError
    Bad or expired credential (HTTP 401/403).
TransportError
    Connection failures, timeouts and non-2xx statuses other than auth.
ProtocolError
    Malformed or unexpected response bodies. Retried like transport errors.
StreamInterrupted
    Transport failure after at least one chunk was delivered; surfaced as-is.
AllProvidersExhausted
    Wraps the last concrete error once every candidate provider failed.
CredentialError
    Stored credential could not be decrypted.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import httpx


class ErrorCode(str, Enum):
    """Enumerated normalized error codes representing failure categories."""

    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    TRANSIENT = "transient"
    UNSUPPORTED = "unsupported"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVER_ERROR = "server_error"
    INTERNAL = "internal"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


@dataclass(eq=False)
class DispatchError(Exception):
    """Structured dispatch failure with a normalized error code.

    Attributes:
        message: Human-readable error message suitable for logging.
        code: Normalized :class:`ErrorCode` classification.
        provider: Provider id where the error originated, when known.
        model: Model name associated with the failure, when known.
        retryable: Hint for the retry policy.
        raw: Optional original exception for diagnostics.
    """

    message: str
    code: ErrorCode = ErrorCode.UNKNOWN
    provider: Optional[str] = None
    model: Optional[str] = None
    retryable: bool = False
    raw: Optional[BaseException] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.provider or '-'}:{self.model or '-'} {self.code.value}: {self.message}"


@dataclass(eq=False)
class ConfigurationError(DispatchError):
    code: ErrorCode = ErrorCode.VALIDATION


@dataclass(eq=False)
class AuthenticationError(DispatchError):
    code: ErrorCode = ErrorCode.AUTH
    retryable: bool = True


@dataclass(eq=False)
class TransportError(DispatchError):
    code: ErrorCode = ErrorCode.TRANSIENT
    retryable: bool = True


@dataclass(eq=False)
class ProtocolError(DispatchError):
    code: ErrorCode = ErrorCode.VALIDATION
    retryable: bool = True


@dataclass(eq=False)
class StreamInterrupted(TransportError):
    """Failure after streaming began; must reach the caller unretried."""

    retryable: bool = False


@dataclass(eq=False)
class CredentialError(DispatchError):
    code: ErrorCode = ErrorCode.AUTH


@dataclass(eq=False)
class AllProvidersExhausted(DispatchError):
    """Raised once the primary and every fallback candidate failed.

    ``last_error`` is the most recent concrete failure; ``attempted`` lists
    provider ids in the order they were tried (primary retries count once).
    """

    last_error: Optional[DispatchError] = None
    attempted: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.last_error is not None:
            self.code = self.last_error.code
            self.provider = self.provider or self.last_error.provider
            self.model = self.model or self.last_error.model
            self.raw = self.last_error


_HTTP_STATUS_MAP: Dict[int, ErrorCode] = {
    400: ErrorCode.VALIDATION,
    401: ErrorCode.AUTH,
    403: ErrorCode.AUTH,
    404: ErrorCode.NOT_FOUND,
    408: ErrorCode.TIMEOUT,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION,
    429: ErrorCode.RATE_LIMIT,
    500: ErrorCode.SERVER_ERROR,
    502: ErrorCode.TRANSIENT,
    503: ErrorCode.UNAVAILABLE,
    504: ErrorCode.TIMEOUT,
}


def _extract_status(exc: BaseException) -> Optional[int]:
    """Return an HTTP status from ``exc.status_code``/``exc.status``/``exc.response``."""
    for attr in ("status_code", "status"):
        val = getattr(exc, attr, None)
        if isinstance(val, int) and 100 <= val < 600:
            return val
    resp = getattr(exc, "response", None)
    if resp is not None:
        sc = getattr(resp, "status_code", None)
        if isinstance(sc, int) and 100 <= sc < 600:
            return sc
    return None


def _heuristic_from_message(msg: str) -> Optional[ErrorCode]:  # pragma: no cover - simple mapping
    """Substring heuristic mapping for exceptions without a status."""
    if "rate" in msg and "limit" in msg:
        return ErrorCode.RATE_LIMIT
    pattern_groups = (
        (ErrorCode.TIMEOUT, ("timeout", "timed out")),
        (ErrorCode.AUTH, ("auth", "api key", "unauthorized", "forbidden")),
        (ErrorCode.UNSUPPORTED, ("unsupported", "not supported")),
        (ErrorCode.NOT_FOUND, ("not found", "does not exist")),
        (ErrorCode.UNAVAILABLE, ("unavailable", "connection refused")),
        (ErrorCode.VALIDATION, ("invalid", "malformed")),
        (ErrorCode.SERVER_ERROR, ("server error", "internal error")),
    )
    for code, patterns in pattern_groups:
        if any(p in msg for p in patterns):
            return code
    return None


def classify_exception(exc: BaseException) -> ErrorCode:
    """Classify an exception into a normalized :class:`ErrorCode`.

    Precedence:
        1. DispatchError passthrough.
        2. Timeout exceptions (asyncio and httpx).
        3. HTTP status mapping.
        4. Substring heuristics.
        5. ``UNKNOWN`` fallback.
    """
    if isinstance(exc, DispatchError):
        return exc.code
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError, httpx.TimeoutException)):
        return ErrorCode.TIMEOUT
    if isinstance(exc, httpx.ConnectError):
        return ErrorCode.UNAVAILABLE
    status = _extract_status(exc)
    if status is not None:
        if status in _HTTP_STATUS_MAP:
            return _HTTP_STATUS_MAP[status]
        if status >= 500:
            return ErrorCode.SERVER_ERROR
    code = _heuristic_from_message(str(exc).lower())
    return code if code is not None else ErrorCode.UNKNOWN


def error_for_status(
    status: int,
    message: str,
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
) -> DispatchError:
    """Build the most specific error kind for a non-2xx HTTP response."""
    code = _HTTP_STATUS_MAP.get(status, ErrorCode.SERVER_ERROR if status >= 500 else ErrorCode.UNKNOWN)
    if code is ErrorCode.AUTH:
        return AuthenticationError(message=message, provider=provider, model=model)
    return TransportError(message=message, code=code, provider=provider, model=model)


def wrap_exception(
    exc: BaseException,
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
) -> DispatchError:
    """Convert an arbitrary exception into a :class:`DispatchError`.

    DispatchErrors pass through untouched (provider/model filled when missing).
    """
    if isinstance(exc, DispatchError):
        if exc.provider is None:
            exc.provider = provider
        if exc.model is None:
            exc.model = model
        return exc
    code = classify_exception(exc)
    message = str(exc) or exc.__class__.__name__
    if code is ErrorCode.AUTH:
        return AuthenticationError(message=message, provider=provider, model=model, raw=exc)
    return TransportError(message=message, code=code, provider=provider, model=model, raw=exc)


__all__ = [
    "ErrorCode",
    "DispatchError",
    "ConfigurationError",
    "AuthenticationError",
    "TransportError",
    "ProtocolError",
    "StreamInterrupted",
    "CredentialError",
    "AllProvidersExhausted",
    "classify_exception",
    "error_for_status",
    "wrap_exception",
]
