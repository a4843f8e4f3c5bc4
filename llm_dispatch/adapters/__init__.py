"""Provider adapters (one implementation per wire format)."""

from .anthropic import AnthropicAdapter
from .azure import AzureOpenAIAdapter
from .base import ProviderAdapter
from .factory import AdapterFactory
from .openai_compatible import OpenAICompatibleAdapter

__all__ = [
    "ProviderAdapter",
    "OpenAICompatibleAdapter",
    "AnthropicAdapter",
    "AzureOpenAIAdapter",
    "AdapterFactory",
]
