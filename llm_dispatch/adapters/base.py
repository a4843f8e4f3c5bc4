"""
Provider adapter base contract.

Each adapter translates the uniform capability set

- ``check_availability(model=None) -> AvailabilityResult``
- ``list_models() -> list[str]``
- ``call(messages, model, parameters) -> CallResult``
- ``stream_call(messages, model, parameters) -> AsyncIterator[str]``

into one vendor wire format. Vendor subclasses only supply the envelope
hooks (headers, URLs, request body, response parsing, stream extractor);
the base owns deadline enforcement, error classification and parameter
merging.

Timeouts
--------
Every HTTP exchange runs under ``asyncio.wait_for`` with the deadline from
``attempt_timeout_seconds(parameters)``. Expiry raises ``TransportError``
with code ``timeout``. For streams the deadline covers the request up to
response headers; chunk reads are bounded by the client's idle timeout.

Secrets
-------
The decrypted API key lives only in ``self._api_key``. It is sent in
headers and never logged or included in error messages.
"""
from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Awaitable, ClassVar, Dict, List, Mapping, Optional, Sequence, TypeVar

import httpx

from ..base.errors import (
    DispatchError,
    ErrorCode,
    ProtocolError,
    TransportError,
    error_for_status,
    wrap_exception,
)
from ..base.http import ClientFactory, client_factory
from ..base.logging import LogContext, get_logger, log_event
from ..base.models import AvailabilityResult, CallResult, Message, ProviderConfig, VendorKind
from ..base.streaming import DeltaExtractor, decode_stream
from ..base.timeouts import attempt_timeout_seconds

T = TypeVar("T")

_logger = get_logger("llm_dispatch.adapters")


class ProviderAdapter(ABC):
    """Shared behavior for all vendor adapters."""

    vendors: ClassVar[tuple[VendorKind, ...]] = ()
    stream_extractor: ClassVar[DeltaExtractor]

    def __init__(
        self,
        config: ProviderConfig,
        api_key: str,
        *,
        http_client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.config = config
        self._api_key = api_key
        self._client_factory = http_client_factory or client_factory()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(provider_id={self.provider_id!r}, base_url={self.base_url!r})"

    @property
    def provider_id(self) -> str:
        return self.config.provider_id

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def credential_scope(self) -> str:
        """Opaque digest identifying the endpoint and key this adapter uses."""
        raw = f"{self.base_url}|{self._api_key}".encode("utf-8")
        return hashlib.sha256(raw).hexdigest()

    # ------------------------------------------------------------------
    # Vendor hooks
    # ------------------------------------------------------------------
    @abstractmethod
    def headers(self) -> Dict[str, str]:
        """Authentication and content headers for every request."""

    @abstractmethod
    def chat_url(self, model: str, parameters: Mapping[str, Any]) -> str:
        """Absolute URL of the completion endpoint."""

    @abstractmethod
    def build_body(
        self,
        messages: Sequence[Message],
        model: str,
        parameters: Mapping[str, Any],
        *,
        stream: bool,
    ) -> Dict[str, Any]:
        """JSON request body for a completion."""

    @abstractmethod
    def parse_response(self, data: Any, model: str) -> CallResult:
        """Map a decoded response body to a :class:`CallResult`."""

    @abstractmethod
    async def list_models(self) -> List[str]:
        """Vendor catalog retrieval."""

    # ------------------------------------------------------------------
    # Shared behavior
    # ------------------------------------------------------------------
    def merge_parameters(self, overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Return ``provider defaults`` overlaid with ``overrides`` (overrides win)."""
        merged = dict(self.config.parameters)
        if overrides:
            merged.update(overrides)
        return merged

    def _error(self, exc: BaseException, model: Optional[str] = None) -> DispatchError:
        return wrap_exception(exc, provider=self.provider_id, model=model)

    async def _with_deadline(self, awaitable: Awaitable[T], timeout: float, model: Optional[str] = None) -> T:
        """Await ``awaitable`` under a per-attempt deadline.

        Raises:
            TransportError: on deadline expiry or transport failure.
        """
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError as exc:
            raise TransportError(
                message=f"request timed out ({int(timeout * 1000)}ms)",
                code=ErrorCode.TIMEOUT,
                provider=self.provider_id,
                model=model,
                raw=exc,
            ) from exc
        except httpx.HTTPError as exc:
            raise self._error(exc, model) from exc

    @staticmethod
    def error_message(response: httpx.Response) -> str:
        """Extract a vendor error message from a non-2xx response."""
        fallback = f"request failed ({response.status_code})"
        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError):
            return fallback
        if not isinstance(data, dict):
            return fallback
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
        if data.get("message"):
            return str(data["message"])
        return fallback

    def raise_for_status(self, response: httpx.Response, model: Optional[str] = None) -> None:
        if response.is_success:
            return
        raise error_for_status(
            response.status_code,
            self.error_message(response),
            provider=self.provider_id,
            model=model,
        )

    def decode_json(self, response: httpx.Response, model: Optional[str] = None) -> Any:
        """Return the decoded body of a 2xx response, else raise."""
        self.raise_for_status(response, model)
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as exc:
            raise ProtocolError(
                message="response body is not valid JSON",
                provider=self.provider_id,
                model=model,
                raw=exc,
            ) from exc

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        timeout: float,
        body: Optional[Dict[str, Any]] = None,
        model: Optional[str] = None,
    ) -> Any:
        """Perform one JSON exchange under a deadline and decode the reply."""

        async def _exchange() -> Any:
            async with self._client_factory() as client:
                response = await client.request(method, url, json=body, headers=self.headers())
                return self.decode_json(response, model)

        return await self._with_deadline(_exchange(), timeout, model)

    async def request_status(self, method: str, url: str, *, timeout: float, body: Optional[Dict[str, Any]] = None) -> int:
        """Perform one exchange under a deadline and return only the status code."""

        async def _exchange() -> int:
            async with self._client_factory() as client:
                response = await client.request(method, url, json=body, headers=self.headers())
                return response.status_code

        return await self._with_deadline(_exchange(), timeout)

    async def call(
        self,
        messages: Sequence[Message],
        model: str,
        parameters: Optional[Mapping[str, Any]] = None,
    ) -> CallResult:
        """Single buffered request/response."""
        params = self.merge_parameters(parameters)
        body = self.build_body(messages, model, params, stream=False)
        log_event(
            _logger,
            "adapter.call",
            LogContext(provider=self.provider_id, model=model),
            level=logging.DEBUG,
            vendor=self.config.vendor.value,
        )
        data = await self.request_json(
            "POST",
            self.chat_url(model, params),
            timeout=attempt_timeout_seconds(params),
            body=body,
            model=model,
        )
        return self.parse_response(data, model)

    async def stream_call(
        self,
        messages: Sequence[Message],
        model: str,
        parameters: Optional[Mapping[str, Any]] = None,
    ) -> AsyncIterator[str]:
        """Yield text deltas; returns once the transport signals completion."""
        params = self.merge_parameters(parameters)
        body = self.build_body(messages, model, params, stream=True)
        timeout = attempt_timeout_seconds(params)
        async with self._client_factory() as client:
            request = client.build_request("POST", self.chat_url(model, params), json=body, headers=self.headers())
            response = await self._with_deadline(client.send(request, stream=True), timeout, model)
            try:
                if not response.is_success:
                    await response.aread()
                    self.raise_for_status(response, model)
                async for delta in decode_stream(response.aiter_bytes(), self.stream_extractor):
                    yield delta
            except httpx.HTTPError as exc:
                raise self._error(exc, model) from exc
            except DispatchError as exc:
                raise self._error(exc, model) from None
            finally:
                await response.aclose()

    async def check_availability(self, model: Optional[str] = None) -> AvailabilityResult:
        """Prove reachability and credential validity via the model listing."""
        started = time.monotonic()
        try:
            models = await self.list_models()
        except DispatchError as exc:
            return AvailabilityResult(
                success=False,
                message=f"connection failed: {exc.message}",
                latency_ms=_elapsed_ms(started),
            )
        latency = _elapsed_ms(started)
        if model and models and model not in models:
            return AvailabilityResult(
                success=False,
                message=f"model {model} is not available",
                latency_ms=latency,
                available_models=models,
            )
        return AvailabilityResult(
            success=True,
            message="connection ok",
            latency_ms=latency,
            available_models=models,
        )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


__all__ = ["ProviderAdapter"]
