from __future__ import annotations

from datetime import datetime
from typing import Protocol


class DekCacheClock(Protocol):
    """DekCacheClock — time source used for DEK cache expiry."""

    def now(self) -> datetime:
        ...


class DekCache(Protocol):
    """
    DekCache — bounded map from wrapped DEK bytes to decrypted DEK bytes.

    Related:
      - src/tradebook/contexts/encryption/adapters/outbound/cache/expiring_dek_cache.py
      - src/tradebook/contexts/encryption/application/services/envelope_key_manager.py
    """

    def get(self, *, ciphertext: bytes) -> bytes | None:
        """
        Return cached plaintext DEK, or `None` when absent or expired.

        Args:
            ciphertext: Exact wrapped DEK bytes.
        Returns:
            bytes | None: Plaintext DEK on hit.
        Assumptions:
            Reads never extend entry lifetime.
        Raises:
            None.
        Side Effects:
            May purge expired entries.
        """
        ...

    def put(self, *, ciphertext: bytes, plaintext: bytes) -> None:
        """
        Insert or replace one entry, evicting the oldest entry when full.

        Args:
            ciphertext: Exact wrapped DEK bytes.
            plaintext: Decrypted DEK bytes.
        Returns:
            None.
        Assumptions:
            Entry expires a fixed TTL after this write.
        Raises:
            None.
        Side Effects:
            Mutates cache state under lock.
        """
        ...
