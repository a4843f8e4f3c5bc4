"""Credential boundary: encryption round trip, failure modes and masking."""
from __future__ import annotations

import base64

import pytest

from llm_dispatch.base.errors import ConfigurationError, CredentialError
from llm_dispatch.credentials import CredentialCipher, mask_secret


def test_encrypt_is_randomized_and_reversible(cipher):
    a = cipher.encrypt("sk-live-123456789")
    b = cipher.encrypt("sk-live-123456789")
    assert a != b  # nosec B101
    assert "sk-live" not in a  # nosec B101
    assert cipher.decrypt(a) == "sk-live-123456789"  # nosec B101
    assert cipher.is_encrypted(a)  # nosec B101


def test_wrong_passphrase_fails(cipher):
    opaque = cipher.encrypt("secret-value")
    with pytest.raises(CredentialError):
        CredentialCipher("another-passphrase").decrypt(opaque)


def test_tampered_payload_fails(cipher):
    blob = bytearray(base64.b64decode(cipher.encrypt("secret-value")))
    blob[-1] ^= 0x01
    with pytest.raises(CredentialError):
        cipher.decrypt(base64.b64encode(bytes(blob)).decode())


@pytest.mark.parametrize("value", ["not base64!!", base64.b64encode(b"short").decode(), "plain-key"])
def test_malformed_inputs_fail(cipher, value):
    with pytest.raises(CredentialError):
        cipher.decrypt(value)
    assert not cipher.is_encrypted(value)  # nosec B101


def test_empty_secret_and_plaintext_rejected(cipher):
    with pytest.raises(ConfigurationError):
        CredentialCipher("")
    with pytest.raises(CredentialError):
        cipher.encrypt("")


def test_repr_hides_passphrase(cipher):
    assert "unit-test-passphrase" not in repr(cipher)  # nosec B101


@pytest.mark.parametrize(
    "value,expected",
    [
        ("", ""),
        ("abc", "****"),
        ("12345678", "****"),
        ("123456789", "1234*6789"),
        ("sk-abcdefghijklmnopqrstuvwxyz", "sk-a********wxyz"),
    ],
)
def test_mask_secret(value, expected):
    assert mask_secret(value) == expected  # nosec B101
