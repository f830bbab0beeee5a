from __future__ import annotations

from enum import Enum


class StoreErrorKind(str, Enum):
    """
    StoreErrorKind — closed classification of storage failures surfaced to use-cases.

    Related:
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/store_errors.py
      - src/tradebook/contexts/journal/application/use_cases/errors.py
    """

    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    OTHER = "other"


class JournalStoreError(ValueError):
    """
    JournalStoreError — storage failure already classified into `StoreErrorKind`.

    Messages are internal diagnostics; use-cases never forward them to clients.
    """

    def __init__(self, message: str, *, kind: StoreErrorKind = StoreErrorKind.OTHER) -> None:
        super().__init__(message)
        self.kind = kind


class SecurityContextError(JournalStoreError):
    """Binding `app.current_user_id` for the transaction failed; nothing was executed."""


class StoreUnavailableError(JournalStoreError):
    """Connection checkout or transaction start failed."""


__all__ = [
    "JournalStoreError",
    "SecurityContextError",
    "StoreErrorKind",
    "StoreUnavailableError",
]
