"""
Data model shared by the resolver, adapters and dispatcher.

Configuration snapshots (``ProviderConfig``, ``TaskRoute``) and inbound
requests (``CallRequest``) are frozen Pydantic models: they are validated on
construction and cannot be mutated while a request is in flight. Results and
outcome records are plain dataclasses produced by this package.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Role = Literal["system", "user", "assistant"]


class VendorKind(str, Enum):
    """Closed set of provider wire formats."""

    OPENAI = "openai"
    GLM = "glm"
    OLLAMA = "ollama"
    CUSTOM = "custom"
    ANTHROPIC = "anthropic"
    AZURE = "azure"

    @property
    def is_openai_compatible(self) -> bool:
        return self in (VendorKind.OPENAI, VendorKind.GLM, VendorKind.OLLAMA, VendorKind.CUSTOM)


class Message(BaseModel):
    """A role-tagged chat message with non-empty text content."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str = Field(..., min_length=1)


class ProviderConfig(BaseModel):
    """Snapshot of one configured provider.

    ``api_key`` is the opaque (encrypted) credential reference as stored;
    only the adapter registry decrypts it.
    """

    model_config = ConfigDict(frozen=True)

    provider_id: str = Field(..., min_length=1)
    name: str = ""
    vendor: VendorKind
    base_url: str = ""
    api_key: str = Field(default="", repr=False)
    models: List[str] = Field(default_factory=list)
    parameters: Dict[str, Any] = Field(default_factory=dict)
    is_enabled: bool = True
    is_default: bool = False
    sort_order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @property
    def first_model(self) -> Optional[str]:
        return self.models[0] if self.models else None


class TaskRoute(BaseModel):
    """Binding from a logical task name to a preferred provider/model/parameters."""

    model_config = ConfigDict(frozen=True)

    task_name: str = Field(..., min_length=1)
    provider_id: Optional[str] = None
    model: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)


class CallRequest(BaseModel):
    """One logical generate-text request.

    Raises:
        pydantic.ValidationError: when ``messages`` is empty or malformed.
    """

    model_config = ConfigDict(frozen=True)

    messages: List[Message] = Field(..., min_length=1)
    provider_id: Optional[str] = None
    task_name: Optional[str] = None
    model: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    stream: bool = False


@dataclass(frozen=True)
class ResolvedTarget:
    """Concrete (provider, model, parameters) chosen by the resolver."""

    provider: ProviderConfig
    model: str
    parameters: Dict[str, Any]

    @property
    def provider_id(self) -> str:
        return self.provider.provider_id


@dataclass(frozen=True)
class Usage:
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


@dataclass(frozen=True)
class CallResult:
    """Successful buffered (or fully streamed) response."""

    content: str
    model: str
    provider_id: str
    usage: Optional[Usage] = None


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class CallOutcome:
    """Append-only record of one attempt.

    Attributes
    ----------
    provider_id: Provider the attempt targeted.
    model: Model used for the attempt.
    status: ``success`` or ``failed``.
    duration_ms: Wall-clock attempt duration.
    task_name: Logical task, when the request carried one.
    request_tokens / response_tokens: Usage counts (estimated when absent).
    error_message: Failure description; ``None`` on success.
    error_code: Normalized error code on failure.
    created_at: UTC timestamp of the record.
    id: Row id once persisted.
    """

    provider_id: str
    model: str
    status: OutcomeStatus
    duration_ms: int
    task_name: Optional[str] = None
    request_tokens: Optional[int] = None
    response_tokens: Optional[int] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: Optional[int] = None


@dataclass(frozen=True)
class AvailabilityResult:
    """Outcome of a connection test against one provider."""

    success: bool
    message: str
    latency_ms: Optional[int] = None
    available_models: Optional[List[str]] = None


@dataclass(frozen=True)
class StreamEvent:
    """Element of a streamed response.

    Exactly one of the following shapes:
    - ``delta`` set: incremental text chunk.
    - ``done`` True: terminal event; ``result`` holds the full text.
    - ``error`` set: terminal failure.
    """

    delta: Optional[str] = None
    done: bool = False
    result: Optional[CallResult] = None
    error: Optional[BaseException] = None

    @property
    def is_terminal(self) -> bool:
        return self.done or self.error is not None


__all__ = [
    "Role",
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
