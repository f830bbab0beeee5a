from __future__ import annotations

from tradebook.contexts.journal.application.ports.store_errors import (
    JournalStoreError,
    StoreErrorKind,
)

_CONFLICT_SQLSTATES = frozenset(
    {
        "23505",  # unique_violation
        "23P01",  # exclusion_violation
    }
)
_NOT_FOUND_SQLSTATES = frozenset(
    {
        "23503",  # foreign_key_violation
        "42501",  # insufficient_privilege (row-level security WITH CHECK)
        "P0002",  # no_data_found
        "02000",  # no_data
    }
)


def classify_store_error(error: BaseException) -> StoreErrorKind:
    """
    Classify driver exception into closed `StoreErrorKind` set.

    Args:
        error: Caught driver exception.
    Returns:
        StoreErrorKind: `CONFLICT`, `NOT_FOUND` or `OTHER`.
    Assumptions:
        psycopg errors expose Postgres SQLSTATE via `sqlstate`.
    Raises:
        None.
    Side Effects:
        None.
    """
    sql_state = getattr(error, "sqlstate", None)
    if sql_state in _CONFLICT_SQLSTATES:
        return StoreErrorKind.CONFLICT
    if sql_state in _NOT_FOUND_SQLSTATES:
        return StoreErrorKind.NOT_FOUND
    return StoreErrorKind.OTHER


def to_journal_store_error(error: BaseException) -> JournalStoreError:
    kind = classify_store_error(error)
    sql_state = getattr(error, "sqlstate", None) or "unknown"
    return JournalStoreError(f"journal statement failed: sqlstate={sql_state}", kind=kind)


__all__ = ["classify_store_error", "to_journal_store_error"]
