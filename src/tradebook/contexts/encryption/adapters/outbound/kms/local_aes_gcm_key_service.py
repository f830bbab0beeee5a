from __future__ import annotations

import base64
import binascii
import os
import struct

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from tradebook.contexts.encryption.application.ports.key_service import KeyService
from tradebook.contexts.encryption.domain.errors import KeyServiceError

_BLOB_VERSION_V1 = 1
_NONCE_LENGTH = 12
_HEADER_STRUCT = struct.Struct(">BB")
_AAD_NAMESPACE_PREFIX = "tradebook.encryption.dek.v1|"
_SUPPORTED_KEK_LENGTHS = {16, 24, 32}


class LocalAesGcmKeyService(KeyService):
    """
    LocalAesGcmKeyService — dev/test key service wrapping DEKs with a local AES-GCM KEK.

    Blob layout: `version(1) || nonce_len(1) || nonce || sealed`; the key name is bound
    as associated data so a blob wrapped under one name does not unwrap under another.

    Related:
      - src/tradebook/contexts/encryption/application/ports/key_service.py
      - apps/api/wiring/modules/journal.py
    """

    def __init__(self, *, kek_b64: str) -> None:
        """
        Initialize key service from base64 KEK (`TRADEBOOK_LOCAL_KEK_B64`).

        Args:
            kek_b64: Base64-encoded KEK bytes.
        Returns:
            None.
        Assumptions:
            KEK length must be valid AES key size (16/24/32 bytes).
        Raises:
            ValueError: If KEK is blank, malformed, or unsupported length.
        Side Effects:
            None.
        """
        normalized_kek_b64 = kek_b64.strip()
        if not normalized_kek_b64:
            raise ValueError("LocalAesGcmKeyService requires non-empty kek_b64")
        try:
            kek_bytes = base64.b64decode(normalized_kek_b64, validate=True)
        except binascii.Error as error:
            raise ValueError("TRADEBOOK_LOCAL_KEK_B64 must be valid base64") from error
        if len(kek_bytes) not in _SUPPORTED_KEK_LENGTHS:
            raise ValueError("TRADEBOOK_LOCAL_KEK_B64 must decode to 16, 24, or 32 bytes")
        self._aead = AESGCM(kek_bytes)

    def encrypt(self, *, key_name: str, plaintext: bytes) -> bytes:
        aad = _normalize_aad(key_name=key_name)
        try:
            nonce = os.urandom(_NONCE_LENGTH)
        except (OSError, NotImplementedError) as error:
            raise KeyServiceError("failed to source KEK nonce randomness") from error
        sealed = self._aead.encrypt(nonce, bytes(plaintext), aad)
        return _HEADER_STRUCT.pack(_BLOB_VERSION_V1, len(nonce)) + nonce + sealed

    def decrypt(self, *, key_name: str, ciphertext: bytes) -> bytes:
        """
        Unwrap a DEK blob produced by `encrypt` under the same key name.

        Args:
            key_name: Local master key name bound as associated data.
            ciphertext: Versioned wrapped blob.
        Returns:
            bytes: Plaintext DEK.
        Assumptions:
            Only blob version 1 exists.
        Raises:
            KeyServiceError: If blob is malformed or authentication fails.
        Side Effects:
            None.
        """
        aad = _normalize_aad(key_name=key_name)
        blob = bytes(ciphertext)
        if len(blob) < _HEADER_STRUCT.size:
            raise KeyServiceError("wrapped DEK blob is too short")
        version, nonce_length = _HEADER_STRUCT.unpack_from(blob)
        if version != _BLOB_VERSION_V1:
            raise KeyServiceError("unsupported wrapped DEK blob version")
        if nonce_length != _NONCE_LENGTH:
            raise KeyServiceError("wrapped DEK blob contains invalid nonce length")
        payload = blob[_HEADER_STRUCT.size :]
        nonce, sealed = payload[:nonce_length], payload[nonce_length:]
        try:
            return self._aead.decrypt(nonce, sealed, aad)
        except InvalidTag as error:
            raise KeyServiceError("wrapped DEK authentication failed") from error


def _normalize_aad(*, key_name: str) -> bytes:
    normalized = key_name.strip()
    if not normalized:
        raise KeyServiceError("key_name must be non-empty")
    return f"{_AAD_NAMESPACE_PREFIX}{normalized}".encode("utf-8")


__all__ = ["LocalAesGcmKeyService"]
