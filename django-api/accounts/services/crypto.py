"""Authenticated encryption for provider OAuth tokens stored at rest.

Ciphertexts are serialized as ``iv:tag:ciphertext`` (hex), AES-256-GCM.
"""

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from django.conf import settings

IV_BYTES = 16
TAG_BYTES = 16


class TokenCipher:
    def __init__(self, key_hex: str) -> None:
        key = bytes.fromhex(key_hex)
        if len(key) != 32:
            raise ValueError("Encryption key must be 32 bytes (64 hex characters)")
        self._aead = AESGCM(key)

    @classmethod
    def from_settings(cls) -> "TokenCipher":
        return cls(settings.ENCRYPTION_KEY)

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_BYTES)
        sealed = self._aead.encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]
        return f"{iv.hex()}:{tag.hex()}:{ciphertext.hex()}"

    def decrypt(self, data: str) -> str:
        """Return the plaintext.

        Raises:
            ValueError: If the data is malformed or fails authentication.
        """
        parts = data.split(":")
        if len(parts) != 3:
            raise ValueError("Invalid encrypted data format")
        iv_hex, tag_hex, ciphertext_hex = parts
        try:
            plaintext = self._aead.decrypt(
                bytes.fromhex(iv_hex),
                bytes.fromhex(ciphertext_hex) + bytes.fromhex(tag_hex),
                None,
            )
        except InvalidTag as exc:
            raise ValueError("Decryption failed") from exc
        return plaintext.decode("utf-8")
