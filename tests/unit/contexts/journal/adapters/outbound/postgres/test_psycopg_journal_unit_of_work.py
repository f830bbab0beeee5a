from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

import psycopg
import pytest
from psycopg import errors as pg_errors

from tradebook.contexts.encryption.adapters.outbound.crypto import (
    AesGcmFieldCipher,
    MasterKeyCipherResolver,
)
from tradebook.contexts.journal.adapters.outbound.persistence.postgres import (
    PsycopgJournalUnitOfWork,
)
from tradebook.contexts.journal.application.ports.store_errors import (
    JournalStoreError,
    SecurityContextError,
    StoreErrorKind,
    StoreUnavailableError,
)
from tradebook.platform.errors import TradebookError
from tradebook.shared_kernel.primitives import UserId

_USER = UserId("user-alice")


class _FakeCursor:
    def __init__(self, *, connection: _FakeConnection) -> None:
        self._connection = connection

    def __enter__(self) -> _FakeCursor:
        return self

    def __exit__(self, *_: object) -> None:
        return None

    def execute(self, query: str, parameters: Any) -> None:
        if self._connection.fail_on_execute is not None:
            raise self._connection.fail_on_execute
        self._connection.statements.append((query, dict(parameters)))

    def fetchone(self) -> dict[str, Any] | None:
        return None

    def fetchall(self) -> list[dict[str, Any]]:
        return []


class _FakeTransaction:
    def __init__(self, *, connection: _FakeConnection) -> None:
        self._connection = connection

    def __enter__(self) -> _FakeTransaction:
        self._connection.events.append("begin")
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        if exc_type is None:
            if self._connection.fail_on_commit is not None:
                self._connection.events.append("commit_failed")
                raise self._connection.fail_on_commit
            self._connection.events.append("commit")
            return None
        self._connection.events.append("rollback")
        return None


class _FakeConnection:
    """
    Fake psycopg connection recording statements and transaction outcome.
    """

    def __init__(self) -> None:
        self.statements: list[tuple[str, dict[str, Any]]] = []
        self.events: list[str] = []
        self.fail_on_execute: Exception | None = None
        self.fail_on_commit: Exception | None = None

    def transaction(self) -> _FakeTransaction:
        return _FakeTransaction(connection=self)

    def cursor(self, row_factory: Any = None) -> _FakeCursor:
        return _FakeCursor(connection=self)


class _FakePool:
    def __init__(self, *, checkout_error: Exception | None = None) -> None:
        self.connection_instance = _FakeConnection()
        self.timeouts: list[float | None] = []
        self._checkout_error = checkout_error

    @contextmanager
    def connection(self, timeout: float | None = None) -> Iterator[_FakeConnection]:
        self.timeouts.append(timeout)
        if self._checkout_error is not None:
            raise self._checkout_error
        try:
            yield self.connection_instance
        finally:
            self.connection_instance.events.append("release")


def _unit_of_work(pool: _FakePool, **kwargs: Any) -> PsycopgJournalUnitOfWork:
    return PsycopgJournalUnitOfWork(
        pool=pool,
        cipher_resolver=MasterKeyCipherResolver(cipher=AesGcmFieldCipher(key=b"m" * 32)),
        **kwargs,
    )


def test_begin_binds_transaction_local_identity_and_commits() -> None:
    """
    Verify identity and statement timeout are bound with `is_local = true` before any work.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Transaction-local settings vanish when the transaction ends.
    Raises:
        AssertionError: If binding statements or commit order differ.
    Side Effects:
        None.
    """
    pool = _FakePool()
    unit_of_work = _unit_of_work(pool, statement_timeout_ms=5000, acquire_timeout_s=2.5)

    with unit_of_work.begin(user_id=_USER) as transaction:
        assert transaction.user_id == _USER

    connection = pool.connection_instance
    assert connection.statements == [
        (
            "SELECT set_config('app.current_user_id', %(user_id)s, true)",
            {"user_id": "user-alice"},
        ),
        (
            "SELECT set_config('statement_timeout', %(statement_timeout)s, true)",
            {"statement_timeout": "5000"},
        ),
    ]
    assert connection.events == ["begin", "commit", "release"]
    assert pool.timeouts == [2.5]


def test_begin_skips_statement_timeout_when_disabled() -> None:
    pool = _FakePool()

    with _unit_of_work(pool, statement_timeout_ms=0).begin(user_id=_USER):
        pass

    assert len(pool.connection_instance.statements) == 1


def test_begin_rolls_back_and_reraises_application_errors() -> None:
    pool = _FakePool()

    with pytest.raises(RuntimeError, match="boom"):
        with _unit_of_work(pool).begin(user_id=_USER):
            raise RuntimeError("boom")

    assert pool.connection_instance.events == ["begin", "rollback", "release"]


def test_begin_propagates_tradebook_error_unchanged() -> None:
    pool = _FakePool()

    with pytest.raises(TradebookError) as error_info:
        with _unit_of_work(pool).begin(user_id=_USER):
            raise TradebookError(code="not_found", message="Tradebook not found")

    assert error_info.value.code == "not_found"
    assert pool.connection_instance.events == ["begin", "rollback", "release"]


def test_begin_classifies_driver_errors_raised_inside_block() -> None:
    """
    Verify psycopg errors raised by repositories are rolled back and classified.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Unique violation maps to `CONFLICT`.
    Raises:
        AssertionError: If error is not wrapped or transaction is committed.
    Side Effects:
        None.
    """
    pool = _FakePool()

    with pytest.raises(JournalStoreError) as error_info:
        with _unit_of_work(pool).begin(user_id=_USER):
            raise pg_errors.UniqueViolation("duplicate key")

    assert error_info.value.kind is StoreErrorKind.CONFLICT
    assert "sqlstate=23505" in str(error_info.value)
    assert pool.connection_instance.events == ["begin", "rollback", "release"]


def test_begin_maps_checkout_failure_to_store_unavailable() -> None:
    pool = _FakePool(checkout_error=psycopg.OperationalError("pool timeout"))

    with pytest.raises(StoreUnavailableError):
        with _unit_of_work(pool).begin(user_id=_USER):
            pytest.fail("block must not run without a connection")


def test_begin_maps_identity_binding_failure_to_security_context_error() -> None:
    """
    Verify failed `set_config` aborts before the caller's block runs.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        No statement may run without a bound identity.
    Raises:
        AssertionError: If block executes or transaction commits.
    Side Effects:
        None.
    """
    pool = _FakePool()
    pool.connection_instance.fail_on_execute = psycopg.OperationalError("server closed")
    entered = False

    with pytest.raises(SecurityContextError):
        with _unit_of_work(pool).begin(user_id=_USER):
            entered = True

    assert entered is False
    assert pool.connection_instance.events == ["begin", "rollback", "release"]


def test_begin_maps_commit_failure_to_store_error() -> None:
    pool = _FakePool()
    pool.connection_instance.fail_on_commit = pg_errors.SerializationFailure("conflict")

    with pytest.raises(JournalStoreError) as error_info:
        with _unit_of_work(pool).begin(user_id=_USER):
            pass

    assert error_info.value.kind is StoreErrorKind.OTHER
    assert pool.connection_instance.events == ["begin", "commit_failed", "release"]


def test_unit_of_work_validates_dependencies() -> None:
    resolver = MasterKeyCipherResolver(cipher=AesGcmFieldCipher(key=b"m" * 32))

    with pytest.raises(ValueError, match="requires pool"):
        PsycopgJournalUnitOfWork(pool=None, cipher_resolver=resolver)  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="statement_timeout_ms"):
        PsycopgJournalUnitOfWork(
            pool=_FakePool(),
            cipher_resolver=resolver,
            statement_timeout_ms=-1,
        )
