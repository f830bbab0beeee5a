from __future__ import annotations

from typing import Protocol


class KeyService(Protocol):
    """
    KeyService — remote key-management port that wraps and unwraps data encryption keys.

    Related:
      - src/tradebook/contexts/encryption/adapters/outbound/kms/boto3_kms_key_service.py
      - src/tradebook/contexts/encryption/adapters/outbound/kms/local_aes_gcm_key_service.py
      - src/tradebook/contexts/encryption/application/services/envelope_key_manager.py
    """

    def encrypt(self, *, key_name: str, plaintext: bytes) -> bytes:
        """
        Wrap plaintext key material under the named master key.

        Args:
            key_name: Master key identifier (ARN, alias or local name).
            plaintext: Raw key material.
        Returns:
            bytes: Opaque wrapped key.
        Assumptions:
            Call may block on network I/O.
        Raises:
            KeyServiceError: On any remote failure.
        Side Effects:
            One remote call.
        """
        ...

    def decrypt(self, *, key_name: str, ciphertext: bytes) -> bytes:
        """
        Unwrap key material previously wrapped under the named master key.

        Args:
            key_name: Master key identifier.
            ciphertext: Opaque wrapped key.
        Returns:
            bytes: Raw key material.
        Assumptions:
            Call may block on network I/O.
        Raises:
            KeyServiceError: On any remote failure.
        Side Effects:
            One remote call.
        """
        ...
