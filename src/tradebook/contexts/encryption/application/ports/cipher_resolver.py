from __future__ import annotations

from typing import Protocol

from .field_cipher import FieldCipher


class TradebookCipherResolver(Protocol):
    """
    TradebookCipherResolver — selects the field cipher protecting one tradebook's columns.

    Two strategies satisfy this contract: one process-wide master key, or one envelope
    DEK per tradebook stored wrapped on the tradebook row.

    Related:
      - src/tradebook/contexts/encryption/adapters/outbound/crypto/cipher_resolvers.py
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/unit_of_work.py
    """

    def issue(self) -> tuple[bytes | None, FieldCipher]:
        """
        Create key material for a new tradebook.

        Args:
            None.
        Returns:
            tuple[bytes | None, FieldCipher]: Wrapped DEK to persist (`None` when no per-row
                key is used) and the cipher it unlocks.
        Assumptions:
            Called once per tradebook creation.
        Raises:
            KeyServiceError: If the key service cannot wrap a fresh DEK.
        Side Effects:
            May call the remote key service.
        """
        ...

    def resolve(self, *, wrapped_key: bytes | None) -> FieldCipher:
        """
        Return cipher for a tradebook given its persisted wrapped key.

        Args:
            wrapped_key: Value of `tradebooks.wrapped_dek` (may be `None`).
        Returns:
            FieldCipher: Cipher for the tradebook's encrypted columns.
        Assumptions:
            Repeated resolution of the same key is served from cache.
        Raises:
            FormatError: If a required wrapped key is missing or malformed.
            KeyServiceError: If the key service cannot unwrap the key.
        Side Effects:
            May call the remote key service on cache miss.
        """
        ...
