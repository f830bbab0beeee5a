from __future__ import annotations

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from tradebook.contexts.encryption.application.ports.field_cipher import FieldCipher
from tradebook.contexts.encryption.domain.errors import (
    AuthenticationError,
    EncryptionError,
    FormatError,
)

NONCE_LENGTH = 12
KEY_LENGTH = 32


class AesGcmFieldCipher(FieldCipher):
    """
    AesGcmFieldCipher — AES-256-GCM authenticated cipher for single column values.

    Blob layout: `nonce(12) || ciphertext || tag(16)`, no associated data.

    Related:
      - src/tradebook/contexts/encryption/application/ports/field_cipher.py
      - src/tradebook/contexts/encryption/application/services/field_codec.py
      - apps/api/wiring/modules/journal.py
    """

    def __init__(self, *, key: bytes) -> None:
        """
        Initialize cipher from raw 256-bit key.

        Args:
            key: Raw key bytes.
        Returns:
            None.
        Assumptions:
            Key is kept in process memory only and never logged.
        Raises:
            ValueError: If key is not exactly 32 bytes.
        Side Effects:
            None.
        """
        key_bytes = bytes(key)
        if len(key_bytes) != KEY_LENGTH:
            raise ValueError(f"AesGcmFieldCipher key must be {KEY_LENGTH} bytes")
        self._aead = AESGCM(key_bytes)

    @classmethod
    def from_base64(cls, key_b64: str) -> AesGcmFieldCipher:
        """
        Build cipher from base64 key text (`TRADEBOOK_DB_KEY_B64`).

        Args:
            key_b64: Base64-encoded 32-byte key.
        Returns:
            AesGcmFieldCipher: Ready cipher.
        Assumptions:
            Standard alphabet with padding.
        Raises:
            ValueError: If text is blank, malformed, or decodes to the wrong length.
        Side Effects:
            None.
        """
        normalized = key_b64.strip()
        if not normalized:
            raise ValueError("AesGcmFieldCipher requires non-empty key_b64")
        try:
            key_bytes = base64.b64decode(normalized, validate=True)
        except binascii.Error as error:
            raise ValueError("TRADEBOOK_DB_KEY_B64 must be valid base64") from error
        if len(key_bytes) != KEY_LENGTH:
            raise ValueError(f"TRADEBOOK_DB_KEY_B64 must decode to {KEY_LENGTH} bytes")
        return cls(key=key_bytes)

    def encrypt(self, *, plaintext: bytes) -> bytes:
        """
        Seal plaintext with a fresh random nonce.

        Args:
            plaintext: Bytes to protect.
        Returns:
            bytes: `nonce || ciphertext || tag`.
        Assumptions:
            Nonce collisions are negligible for random 96-bit nonces.
        Raises:
            EncryptionError: If randomness is unavailable or AES-GCM rejects the input.
        Side Effects:
            Reads OS CSPRNG.
        """
        try:
            nonce = os.urandom(NONCE_LENGTH)
        except (OSError, NotImplementedError) as error:
            raise EncryptionError("failed to source nonce randomness") from error
        try:
            sealed = self._aead.encrypt(nonce, bytes(plaintext), None)
        except (OverflowError, ValueError) as error:
            raise EncryptionError("failed to seal field value") from error
        return nonce + sealed

    def decrypt(self, *, blob: bytes) -> bytes:
        """
        Split nonce, authenticate and open the sealed payload.

        Args:
            blob: `nonce || ciphertext || tag` from storage.
        Returns:
            bytes: Plaintext.
        Assumptions:
            Blob was produced by `encrypt` with the same key.
        Raises:
            FormatError: If blob is shorter than the nonce.
            AuthenticationError: If tag verification fails.
        Side Effects:
            None.
        """
        data = bytes(blob)
        if len(data) < NONCE_LENGTH:
            raise FormatError("ciphertext too short")
        nonce, sealed = data[:NONCE_LENGTH], data[NONCE_LENGTH:]
        try:
            return self._aead.decrypt(nonce, sealed, None)
        except InvalidTag as error:
            raise AuthenticationError("ciphertext authentication failed") from error


__all__ = ["AesGcmFieldCipher", "KEY_LENGTH", "NONCE_LENGTH"]
