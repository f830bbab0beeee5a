from __future__ import annotations

import psycopg
from psycopg import errors as pg_errors

from tradebook.contexts.journal.adapters.outbound.persistence.postgres import (
    classify_store_error,
    to_journal_store_error,
)
from tradebook.contexts.journal.application.ports.store_errors import StoreErrorKind


def test_classify_store_error_by_sqlstate() -> None:
    """
    Verify SQLSTATE classes map to the closed store error kinds.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Row-level security WITH CHECK failures surface as insufficient_privilege.
    Raises:
        AssertionError: If classification differs.
    Side Effects:
        None.
    """
    assert classify_store_error(pg_errors.UniqueViolation("dup")) is StoreErrorKind.CONFLICT
    assert classify_store_error(pg_errors.ForeignKeyViolation("fk")) is StoreErrorKind.NOT_FOUND
    assert classify_store_error(pg_errors.InsufficientPrivilege("rls")) is (
        StoreErrorKind.NOT_FOUND
    )
    assert classify_store_error(pg_errors.QueryCanceled("timeout")) is StoreErrorKind.OTHER
    assert classify_store_error(psycopg.OperationalError("down")) is StoreErrorKind.OTHER
    assert classify_store_error(ValueError("not a driver error")) is StoreErrorKind.OTHER


def test_to_journal_store_error_keeps_only_sqlstate_in_message() -> None:
    error = to_journal_store_error(pg_errors.UniqueViolation("Key (id)=(secret) already exists"))

    assert error.kind is StoreErrorKind.CONFLICT
    assert str(error) == "journal statement failed: sqlstate=23505"
    assert "secret" not in str(error)
    assert str(to_journal_store_error(RuntimeError("x"))).endswith("sqlstate=unknown")
