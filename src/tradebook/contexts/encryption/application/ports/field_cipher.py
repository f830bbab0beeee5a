from __future__ import annotations

from typing import Protocol


class FieldCipher(Protocol):
    """
    FieldCipher — authenticated symmetric cipher port for single column values.

    Related:
      - src/tradebook/contexts/encryption/adapters/outbound/crypto/aes_gcm_field_cipher.py
      - src/tradebook/contexts/encryption/application/services/field_codec.py
    """

    def encrypt(self, *, plaintext: bytes) -> bytes:
        """
        Seal plaintext into a self-describing opaque blob.

        Args:
            plaintext: Bytes to protect; may be empty.
        Returns:
            bytes: `nonce || ciphertext || tag` blob.
        Assumptions:
            Every call uses a fresh random nonce.
        Raises:
            EncryptionError: If randomness cannot be sourced or sealing fails.
        Side Effects:
            Reads OS CSPRNG.
        """
        ...

    def decrypt(self, *, blob: bytes) -> bytes:
        """
        Authenticate and open a blob produced by `encrypt`.

        Args:
            blob: Opaque blob from storage.
        Returns:
            bytes: Original plaintext.
        Assumptions:
            Partial plaintext is never returned.
        Raises:
            FormatError: If blob is shorter than the nonce.
            AuthenticationError: If the tag does not verify.
        Side Effects:
            None.
        """
        ...
