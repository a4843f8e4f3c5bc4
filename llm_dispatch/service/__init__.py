"""Administrative services built on the configuration store."""

from .settings import ProviderSettingsService

__all__ = ["ProviderSettingsService"]
