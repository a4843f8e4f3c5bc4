"""Credential boundary: encrypt, decrypt and mask provider secrets.

Opaque format: base64 of ``salt(64) || nonce(12) || ciphertext+tag``. The
AES-256-GCM key is derived per value with PBKDF2-HMAC-SHA256 (100000
iterations) from the cipher's passphrase, so two encryptions of the same
secret never produce the same opaque string.

Decryption failures always raise :class:`CredentialError`; an empty string
is never returned in place of a credential.
"""
from __future__ import annotations

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..base.errors import ConfigurationError, CredentialError

SALT_LENGTH = 64
NONCE_LENGTH = 12
TAG_LENGTH = 16
KEY_LENGTH = 32
PBKDF2_ITERATIONS = 100_000

MASK_VISIBLE = 4
MASK_MAX_FILL = 8


class CredentialCipher:
    """Symmetric cipher bound to one passphrase."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ConfigurationError(message="credential secret must be non-empty")
        self._secret = secret.encode("utf-8")

    def __repr__(self) -> str:
        return "CredentialCipher(<redacted>)"

    def _derive_key(self, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=salt,
            iterations=PBKDF2_ITERATIONS,
        )
        return kdf.derive(self._secret)

    def encrypt(self, plaintext: str) -> str:
        """Return the opaque encrypted form of ``plaintext``."""
        if not plaintext:
            raise CredentialError(message="refusing to encrypt an empty credential")
        salt = os.urandom(SALT_LENGTH)
        nonce = os.urandom(NONCE_LENGTH)
        sealed = AESGCM(self._derive_key(salt)).encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(salt + nonce + sealed).decode("ascii")

    def decrypt(self, opaque: str) -> str:
        """Return the plaintext for ``opaque``.

        Raises:
            CredentialError: malformed input, wrong passphrase, tampering, or
                an empty result.
        """
        try:
            blob = base64.b64decode(opaque.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError, AttributeError) as exc:
            raise CredentialError(message="credential is not valid base64", raw=exc) from exc
        if len(blob) < SALT_LENGTH + NONCE_LENGTH + TAG_LENGTH:
            raise CredentialError(message="credential payload is truncated")
        salt = blob[:SALT_LENGTH]
        nonce = blob[SALT_LENGTH:SALT_LENGTH + NONCE_LENGTH]
        sealed = blob[SALT_LENGTH + NONCE_LENGTH:]
        try:
            plain = AESGCM(self._derive_key(salt)).decrypt(nonce, sealed, None)
        except InvalidTag as exc:
            raise CredentialError(message="credential failed authentication", raw=exc) from exc
        try:
            text = plain.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CredentialError(message="credential is not valid UTF-8", raw=exc) from exc
        if not text:
            raise CredentialError(message="credential decrypted to an empty value")
        return text

    def is_encrypted(self, value: str) -> bool:
        """Return True when ``value`` decrypts under this cipher."""
        try:
            self.decrypt(value)
        except CredentialError:
            return False
        return True


def mask_secret(value: str) -> str:
    """Return a display form revealing only the first and last 4 characters.

    Values of 8 characters or fewer are fully hidden.
    """
    if not value:
        return ""
    if len(value) <= MASK_VISIBLE * 2:
        return "*" * MASK_VISIBLE
    fill = "*" * min(len(value) - MASK_VISIBLE * 2, MASK_MAX_FILL)
    return f"{value[:MASK_VISIBLE]}{fill}{value[-MASK_VISIBLE:]}"


__all__ = ["CredentialCipher", "mask_secret"]
