"""Tests for chat key wrapping and message encryption."""

import os

import pytest

from yakka_chat.core.errors import CryptoError
from yakka_chat.services.crypto import (
    DATA_KEY_BYTES,
    KeyVault,
    MessageCipher,
    legacy_cbc_encrypt,
)

MASTER_KEY = bytes(range(32))


@pytest.fixture
def vault() -> KeyVault:
    return KeyVault(MASTER_KEY)


@pytest.mark.parametrize("plaintext", ["hello", "", "kia ora 👋", "x" * 5000])
def test_message_round_trip(plaintext: str) -> None:
    key = os.urandom(DATA_KEY_BYTES)
    assert MessageCipher.decrypt(MessageCipher.encrypt(plaintext, key), key) == plaintext


def test_encrypting_same_text_twice_differs() -> None:
    key = os.urandom(DATA_KEY_BYTES)
    first = MessageCipher.encrypt("same words", key)
    second = MessageCipher.encrypt("same words", key)
    assert first != second
    assert first.startswith("v2:")
    assert "same words" not in first


def test_wrapped_key_round_trip(vault: KeyVault) -> None:
    raw = os.urandom(DATA_KEY_BYTES)
    first = vault.wrap(raw)
    second = vault.wrap(raw)

    assert first != second
    assert vault.unwrap(first) == raw
    assert vault.unwrap(second) == raw


def test_create_wrapped_key_yields_fresh_keys(vault: KeyVault) -> None:
    first = vault.unwrap(vault.create_wrapped_key())
    second = vault.unwrap(vault.create_wrapped_key())
    assert len(first) == DATA_KEY_BYTES
    assert first != second


def test_unwrap_with_wrong_master_key_fails(vault: KeyVault) -> None:
    wrapped = vault.create_wrapped_key()
    with pytest.raises(CryptoError):
        KeyVault(os.urandom(32)).unwrap(wrapped)


@pytest.mark.parametrize(
    "wrapped",
    ["", "no-colon", "v2:abcd", "v2:zz:00", "v2:00:00", "abcd:00112233", "00" * 16 + ":" + "00" * 15],
)
def test_unwrap_rejects_malformed_encodings(vault: KeyVault, wrapped: str) -> None:
    with pytest.raises(CryptoError):
        vault.unwrap(wrapped)


def test_tampered_ciphertext_is_rejected() -> None:
    key = os.urandom(DATA_KEY_BYTES)
    tag, nonce, body = MessageCipher.encrypt("meet at 7", key).split(":")
    flipped = f"{int(body[:2], 16) ^ 0x01:02x}{body[2:]}"
    with pytest.raises(CryptoError):
        MessageCipher.decrypt(f"{tag}:{nonce}:{flipped}", key)


def test_wrapped_key_cannot_be_read_as_message(vault: KeyVault) -> None:
    wrapped = vault.create_wrapped_key()
    with pytest.raises(CryptoError):
        MessageCipher.decrypt(wrapped, MASTER_KEY)


def test_legacy_cbc_payloads_still_decrypt(vault: KeyVault) -> None:
    raw = os.urandom(DATA_KEY_BYTES)
    legacy_wrapped = legacy_cbc_encrypt(MASTER_KEY, raw)
    assert not legacy_wrapped.startswith("v2:")
    assert vault.unwrap(legacy_wrapped) == raw

    legacy_message = legacy_cbc_encrypt(raw, "hello".encode())
    assert MessageCipher.decrypt(legacy_message, raw) == "hello"


def test_key_vault_repr_hides_master_key(vault: KeyVault) -> None:
    assert MASTER_KEY.hex() not in repr(vault)


def test_short_keys_are_rejected() -> None:
    with pytest.raises(CryptoError):
        KeyVault(b"short")
    with pytest.raises(CryptoError):
        MessageCipher.encrypt("hi", b"short")
