"""Credential boundary."""

from .cipher import CredentialCipher, mask_secret

__all__ = ["CredentialCipher", "mask_secret"]
