"""Adapter for Azure OpenAI deployments.

Same request and response envelopes as the chat-completions format; only
authentication (``api-key`` header) and URL layout differ::

    {root}/openai/deployments/{deployment}/chat/completions?api-version=...

The configured base URL may be the resource root or a full deployment URL;
everything from ``/openai/deployments``, ``/deployments/`` or
``/chat/completions`` onward, and a trailing ``/openai`` path segment, is
stripped to obtain the root. The model name is the deployment name; when
empty, the deployment embedded in the base URL is used. ``api_version``
may be overridden through provider parameters.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlsplit

from ..base.errors import AuthenticationError, DispatchError
from ..base.logging import get_logger
from ..base.models import VendorKind
from ..base.timeouts import attempt_timeout_seconds
from ..config.defaults import AZURE_DEFAULT_API_VERSION
from .openai_compatible import OpenAICompatibleAdapter

_DEPLOYMENT_RE = re.compile(r"/deployments/([^/?]+)")
_ROOT_MARKERS = ("/openai/deployments", "/deployments/", "/chat/completions")
_ROOT_SUFFIX = "/openai"

_logger = get_logger("llm_dispatch.adapters.azure")


def endpoint_root(base_url: str) -> str:
    root = base_url
    for marker in _ROOT_MARKERS:
        if marker in root:
            root = root.split(marker, 1)[0]
    root = root.rstrip("/")
    if root.endswith(_ROOT_SUFFIX) and urlsplit(root).path.endswith(_ROOT_SUFFIX):
        root = root[: -len(_ROOT_SUFFIX)]
    return root.rstrip("/")


def deployment_from_url(base_url: str) -> Optional[str]:
    match = _DEPLOYMENT_RE.search(base_url)
    return match.group(1) if match else None


class AzureOpenAIAdapter(OpenAICompatibleAdapter):
    vendors = (VendorKind.AZURE,)

    @property
    def root(self) -> str:
        return endpoint_root(self.base_url)

    @property
    def deployment_name(self) -> Optional[str]:
        return deployment_from_url(self.base_url)

    def api_version(self, parameters: Optional[Mapping[str, Any]] = None) -> str:
        params = parameters if parameters is not None else self.config.parameters
        return str(params.get("api_version") or AZURE_DEFAULT_API_VERSION)

    def headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", "api-key": self._api_key}

    def chat_url(self, model: str, parameters: Mapping[str, Any]) -> str:
        deployment = model or self.deployment_name or ""
        return (
            f"{self.root}/openai/deployments/{deployment}/chat/completions"
            f"?api-version={self.api_version(parameters)}"
        )

    async def list_models(self) -> List[str]:
        """List deployments; non-auth failures yield an empty catalog."""
        url = f"{self.root}/openai/deployments?api-version={self.api_version()}"
        try:
            data = await self.request_json("GET", url, timeout=attempt_timeout_seconds(self.config.parameters))
        except AuthenticationError:
            raise
        except DispatchError as exc:
            _logger.debug("azure deployment listing failed for %s: %s", self.provider_id, exc.message)
            return []
        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return []
        names = (d.get("id") or d.get("model") or d.get("name") for d in items if isinstance(d, dict))
        return [str(n) for n in names if n]


__all__ = ["AzureOpenAIAdapter", "endpoint_root", "deployment_from_url"]
