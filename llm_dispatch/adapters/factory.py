"""Adapter factory.

Maps the closed :class:`VendorKind` set to adapter classes. Every
OpenAI-compatible vendor kind resolves to the same
:class:`OpenAICompatibleAdapter`; there is no dynamic lookup, so an unknown
kind is a configuration error rather than an import failure.
"""
from __future__ import annotations

from typing import Dict, Optional, Tuple, Type

from ..base.errors import ConfigurationError
from ..base.http import ClientFactory
from ..base.models import ProviderConfig, VendorKind
from .anthropic import AnthropicAdapter
from .azure import AzureOpenAIAdapter
from .base import ProviderAdapter
from .openai_compatible import OpenAICompatibleAdapter


class AdapterFactory:
    """Create adapters from a provider snapshot and its decrypted key."""

    _ADAPTERS: Dict[VendorKind, Type[ProviderAdapter]] = {
        kind: klass
        for klass in (OpenAICompatibleAdapter, AnthropicAdapter, AzureOpenAIAdapter)
        for kind in klass.vendors
    }

    @classmethod
    def adapter_class(cls, vendor: VendorKind) -> Type[ProviderAdapter]:
        """Return the adapter class for ``vendor``.

        Raises:
            ConfigurationError: if the vendor kind has no adapter.
        """
        klass = cls._ADAPTERS.get(vendor)
        if klass is None:
            raise ConfigurationError(message=f"no adapter for vendor kind '{vendor}'")
        return klass

    @classmethod
    def create(
        cls,
        config: ProviderConfig,
        api_key: str,
        *,
        http_client_factory: Optional[ClientFactory] = None,
    ) -> ProviderAdapter:
        if not config.base_url:
            raise ConfigurationError(
                message="provider has no base URL",
                provider=config.provider_id,
            )
        klass = cls.adapter_class(config.vendor)
        return klass(config, api_key, http_client_factory=http_client_factory)

    @classmethod
    def supported(cls) -> Tuple[VendorKind, ...]:
        return tuple(cls._ADAPTERS.keys())


__all__ = ["AdapterFactory"]
