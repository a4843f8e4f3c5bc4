"""Base layer: error taxonomy, data model, logging, timeouts and streaming."""

from .errors import (
    AllProvidersExhausted,
    AuthenticationError,
    ConfigurationError,
    CredentialError,
    DispatchError,
    ErrorCode,
    ProtocolError,
    StreamInterrupted,
    TransportError,
    classify_exception,
)
from .models import (
    AvailabilityResult,
    CallOutcome,
    CallRequest,
    CallResult,
    Message,
    OutcomeStatus,
    ProviderConfig,
    ResolvedTarget,
    StreamEvent,
    TaskRoute,
    Usage,
    VendorKind,
)

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
    "VendorKind",
    "Message",
    "ProviderConfig",
    "TaskRoute",
    "CallRequest",
    "ResolvedTarget",
    "Usage",
    "CallResult",
    "OutcomeStatus",
    "CallOutcome",
    "AvailabilityResult",
    "StreamEvent",
]
