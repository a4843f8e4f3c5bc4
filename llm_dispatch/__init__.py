"""llm_dispatch package

Resilient multi-provider dispatch for text-generation requests.

A request is resolved to one configured provider (explicit id, task route,
then default), sent through that provider's wire adapter, retried on the
primary with linear backoff and failed over to the remaining enabled
providers in priority order. Buffered and streamed responses share the
same policy; every attempt leaves one outcome record.

Public API (re-exported):
    - Composition: :func:`build_container`, :class:`DispatchContainer`
    - Dispatch: :class:`Dispatcher`, :class:`CallRequest`, :class:`Message`
    - Results: :class:`CallResult`, :class:`StreamEvent`, :class:`AvailabilityResult`
    - Errors: :class:`DispatchError` and its kinds, :class:`ErrorCode`
    - Administration: :class:`ProviderSettingsService`
"""

from .base.errors import (
    AllProvidersExhausted,
    AuthenticationError,
    ConfigurationError,
    CredentialError,
    DispatchError,
    ErrorCode,
    ProtocolError,
    StreamInterrupted,
    TransportError,
)
from .base.models import (
    AvailabilityResult,
    CallOutcome,
    CallRequest,
    CallResult,
    Message,
    ProviderConfig,
    StreamEvent,
    TaskRoute,
    VendorKind,
)
from .config import DispatchSettings, get_dispatch_settings
from .di import DispatchContainer, build_container
from .dispatch import Dispatcher
from .service import ProviderSettingsService

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ErrorCode",
    "DispatchError",
    "ConfigurationError",
    "AuthenticationError",
    "TransportError",
    "ProtocolError",
    "StreamInterrupted",
    "CredentialError",
    "AllProvidersExhausted",
    "VendorKind",
    "Message",
    "ProviderConfig",
    "TaskRoute",
    "CallRequest",
    "CallResult",
    "CallOutcome",
    "AvailabilityResult",
    "StreamEvent",
    "DispatchSettings",
    "get_dispatch_settings",
    "DispatchContainer",
    "build_container",
    "Dispatcher",
    "ProviderSettingsService",
]
