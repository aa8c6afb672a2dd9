# src/yakka_chat/services/crypto.py
"""Envelope encryption for chat content.

Every chat owns a random 256-bit data key. The data key is stored wrapped
under the process-wide master key and only ever unwrapped in memory for the
duration of a socket session or a moderation sweep.

Two encodings are understood:

* ``v2:<nonce hex>:<ciphertext+tag hex>`` - AES-256-GCM, written for all new
  wraps and messages.
* ``<iv hex>:<ciphertext hex>`` - legacy AES-256-CBC with PKCS7 padding and no
  integrity check. Only read, never written.
"""

from __future__ import annotations

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from yakka_chat.core.errors import CryptoError

DATA_KEY_BYTES = 32
GCM_NONCE_BYTES = 12
CBC_IV_BYTES = 16
VERSION_TAG = "v2"

# Binds wrapped keys and message payloads to their purpose so one cannot be
# substituted for the other.
_WRAP_AAD = b"yakka-chat:data-key"
_MESSAGE_AAD = b"yakka-chat:message"


def _decode_hex(data: str) -> bytes:
    try:
        return bytes.fromhex(data)
    except ValueError as err:
        raise CryptoError(f"Invalid hex encoding: {err}") from err


def _check_key(key: bytes, name: str) -> None:
    if len(key) != DATA_KEY_BYTES:
        raise CryptoError(f"{name} must be {DATA_KEY_BYTES} bytes")


def _seal(key: bytes, data: bytes, aad: bytes) -> str:
    nonce = os.urandom(GCM_NONCE_BYTES)
    sealed = AESGCM(key).encrypt(nonce, data, aad)
    return f"{VERSION_TAG}:{nonce.hex()}:{sealed.hex()}"


def _open(key: bytes, token: str, aad: bytes) -> bytes:
    """Decrypt either encoding, raising ``CryptoError`` on any failure."""
    if not isinstance(token, str) or ":" not in token:
        raise CryptoError("Malformed ciphertext encoding")

    parts = token.split(":")
    if parts[0] == VERSION_TAG:
        if len(parts) != 3:
            raise CryptoError("Malformed v2 ciphertext encoding")
        nonce = _decode_hex(parts[1])
        sealed = _decode_hex(parts[2])
        if len(nonce) != GCM_NONCE_BYTES:
            raise CryptoError("Invalid nonce length")
        try:
            return AESGCM(key).decrypt(nonce, sealed, aad)
        except InvalidTag as err:
            raise CryptoError("Ciphertext failed authentication") from err

    return _open_legacy(key, parts[0], ":".join(parts[1:]))


def _open_legacy(key: bytes, iv_hex: str, body_hex: str) -> bytes:
    iv = _decode_hex(iv_hex)
    body = _decode_hex(body_hex)
    if len(iv) != CBC_IV_BYTES:
        raise CryptoError("Invalid IV length")
    if not body or len(body) % CBC_IV_BYTES:
        raise CryptoError("Ciphertext is not a whole number of blocks")

    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(body) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as err:
        raise CryptoError("Invalid padding; wrong key or corrupted data") from err


def legacy_cbc_encrypt(key: bytes, data: bytes) -> str:
    """Produce a legacy ``iv:ciphertext`` CBC payload.

    Kept for migration tooling and compatibility tests; new data is always
    written with the v2 encoding.
    """
    _check_key(key, "Key")
    iv = os.urandom(CBC_IV_BYTES)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(data) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    body = encryptor.update(padded) + encryptor.finalize()
    return f"{iv.hex()}:{body.hex()}"


class KeyVault:
    """Creates and unwraps per-chat data keys under the master key."""

    def __init__(self, master_key: bytes) -> None:
        _check_key(master_key, "Master key")
        self._master_key = master_key

    def __repr__(self) -> str:
        return "KeyVault(master_key=<redacted>)"

    def create_wrapped_key(self) -> str:
        """Generate a fresh data key and return its wrapped form."""
        return self.wrap(os.urandom(DATA_KEY_BYTES))

    def wrap(self, raw_key: bytes) -> str:
        """Wrap an existing raw data key with a freshly generated nonce."""
        _check_key(raw_key, "Data key")
        return _seal(self._master_key, raw_key, _WRAP_AAD)

    def unwrap(self, wrapped_key: str) -> bytes:
        """Return the raw data key for a wrapped key.

        Raises:
            CryptoError: If the encoding is malformed or decryption fails.
        """
        raw_key = _open(self._master_key, wrapped_key, _WRAP_AAD)
        if len(raw_key) != DATA_KEY_BYTES:
            raise CryptoError("Unwrapped key has an unexpected length")
        return raw_key


class MessageCipher:
    """Encrypts and decrypts TEXT message payloads with a chat data key."""

    @staticmethod
    def encrypt(plaintext: str, key: bytes) -> str:
        """Encrypt ``plaintext`` under ``key`` using a fresh random nonce."""
        _check_key(key, "Data key")
        return _seal(key, plaintext.encode("utf-8"), _MESSAGE_AAD)

    @staticmethod
    def decrypt(ciphertext: str, key: bytes) -> str:
        """Decrypt a stored payload produced by :meth:`encrypt` or the legacy scheme.

        Raises:
            CryptoError: On malformed input, key mismatch or tampering.
        """
        _check_key(key, "Data key")
        data = _open(key, ciphertext, _MESSAGE_AAD)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as err:
            raise CryptoError("Decrypted payload is not valid UTF-8") from err
