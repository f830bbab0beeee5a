from __future__ import annotations

import threading
from collections import OrderedDict
from datetime import datetime, timedelta

from tradebook.contexts.encryption.application.ports.dek_cache import DekCache, DekCacheClock

DEFAULT_MAX_ENTRIES = 1000
DEFAULT_TTL = timedelta(minutes=5)


class ExpiringDekCache(DekCache):
    """
    ExpiringDekCache — thread-safe bounded in-process DEK cache with expire-after-write TTL.

    Entries are keyed by exact wrapped DEK bytes. Reads never extend lifetime; when full,
    expired entries are purged first and then the oldest insertion is evicted.

    Related:
      - src/tradebook/contexts/encryption/application/ports/dek_cache.py
      - src/tradebook/contexts/encryption/application/services/envelope_key_manager.py
      - src/tradebook/platform/config/journal_storage.py
    """

    def __init__(
        self,
        *,
        clock: DekCacheClock,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl: timedelta = DEFAULT_TTL,
    ) -> None:
        """
        Initialize empty cache.

        Args:
            clock: Time source for expiry decisions.
            max_entries: Maximum number of live entries.
            ttl: Lifetime of one entry measured from its write.
        Returns:
            None.
        Assumptions:
            Clock returns timezone-aware datetimes.
        Raises:
            ValueError: If bounds are not positive or clock is missing.
        Side Effects:
            None.
        """
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("ExpiringDekCache requires clock")
        if max_entries <= 0:
            raise ValueError(f"ExpiringDekCache max_entries must be > 0, got {max_entries}")
        if ttl <= timedelta(0):
            raise ValueError("ExpiringDekCache ttl must be positive")
        self._clock = clock
        self._max_entries = max_entries
        self._ttl = ttl
        self._entries: OrderedDict[bytes, tuple[bytes, datetime]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, *, ciphertext: bytes) -> bytes | None:
        key = bytes(ciphertext)
        now = self._clock.now()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            plaintext, expires_at = entry
            if now >= expires_at:
                del self._entries[key]
                return None
            return plaintext

    def put(self, *, ciphertext: bytes, plaintext: bytes) -> None:
        key = bytes(ciphertext)
        now = self._clock.now()
        with self._lock:
            self._entries.pop(key, None)
            if len(self._entries) >= self._max_entries:
                self._purge_expired(now=now)
            while len(self._entries) >= self._max_entries:
                self._entries.popitem(last=False)
            self._entries[key] = (bytes(plaintext), now + self._ttl)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _purge_expired(self, *, now: datetime) -> None:
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]


__all__ = ["DEFAULT_MAX_ENTRIES", "DEFAULT_TTL", "ExpiringDekCache"]
