from __future__ import annotations

import logging
from contextlib import ExitStack, contextmanager
from typing import Any, ContextManager, Iterator, Protocol

import psycopg

from tradebook.contexts.encryption.application.ports.cipher_resolver import (
    TradebookCipherResolver,
)
from tradebook.contexts.journal.application.ports.store_errors import (
    SecurityContextError,
    StoreUnavailableError,
)
from tradebook.contexts.journal.application.ports.unit_of_work import (
    JournalTransaction,
    JournalUnitOfWork,
)
from tradebook.shared_kernel.primitives import UserId

from .members_repository import PostgresMembersRepository
from .session import JournalPostgresSession, PsycopgJournalSession
from .store_errors import to_journal_store_error
from .tradebook_codecs import TradebookCodecLookup
from .tradebooks_repository import PostgresTradebooksRepository
from .trades_repository import PostgresTradesRepository
from .users_repository import PostgresUsersRepository

log = logging.getLogger(__name__)

_BIND_IDENTITY_QUERY = "SELECT set_config('app.current_user_id', %(user_id)s, true)"
_STATEMENT_TIMEOUT_QUERY = "SELECT set_config('statement_timeout', %(statement_timeout)s, true)"


class JournalConnectionPool(Protocol):
    """
    JournalConnectionPool — subset of `psycopg_pool.ConnectionPool` used by the unit of work.
    """

    def connection(self, timeout: float | None = None) -> ContextManager[Any]:
        ...


class PostgresJournalTransaction(JournalTransaction):
    """
    PostgresJournalTransaction — repositories sharing one session and one codec memo.

    Related:
      - src/tradebook/contexts/journal/application/ports/unit_of_work.py
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/tradebook_codecs.py
    """

    def __init__(
        self,
        *,
        session: JournalPostgresSession,
        user_id: UserId,
        cipher_resolver: TradebookCipherResolver,
    ) -> None:
        codecs = TradebookCodecLookup(session=session, cipher_resolver=cipher_resolver)
        self._user_id = user_id
        self._users = PostgresUsersRepository(session=session)
        self._tradebooks = PostgresTradebooksRepository(session=session, codecs=codecs)
        self._members = PostgresMembersRepository(session=session)
        self._trades = PostgresTradesRepository(session=session, codecs=codecs)

    @property
    def user_id(self) -> UserId:
        return self._user_id

    @property
    def users(self) -> PostgresUsersRepository:
        return self._users

    @property
    def tradebooks(self) -> PostgresTradebooksRepository:
        return self._tradebooks

    @property
    def members(self) -> PostgresMembersRepository:
        return self._members

    @property
    def trades(self) -> PostgresTradesRepository:
        return self._trades


class PsycopgJournalUnitOfWork(JournalUnitOfWork):
    """
    PsycopgJournalUnitOfWork — tenant-scoped transactions over a psycopg connection pool.

    Every transaction binds `app.current_user_id` with `set_config(..., true)` so the
    setting is transaction-local and disappears on commit or rollback before the
    connection returns to the pool.

    Related:
      - src/tradebook/contexts/journal/application/ports/unit_of_work.py
      - alembic/versions/20261001_0001_journal_schema_rls.py
      - apps/api/wiring/modules/journal.py
    """

    def __init__(
        self,
        *,
        pool: JournalConnectionPool,
        cipher_resolver: TradebookCipherResolver,
        statement_timeout_ms: int = 15000,
        acquire_timeout_s: float | None = None,
    ) -> None:
        """
        Initialize unit of work with pool and cipher resolver.

        Args:
            pool: Connection pool (normally `psycopg_pool.ConnectionPool`).
            cipher_resolver: Per-tradebook field cipher resolver.
            statement_timeout_ms: Transaction-local statement timeout; `0` disables it.
            acquire_timeout_s: Pool checkout timeout; `None` uses the pool default.
        Returns:
            None.
        Assumptions:
            Pool connections are not in autocommit mode.
        Raises:
            ValueError: If dependencies are missing or timeout is negative.
        Side Effects:
            None.
        """
        if pool is None:  # type: ignore[truthy-bool]
            raise ValueError("PsycopgJournalUnitOfWork requires pool")
        if cipher_resolver is None:  # type: ignore[truthy-bool]
            raise ValueError("PsycopgJournalUnitOfWork requires cipher_resolver")
        if statement_timeout_ms < 0:
            raise ValueError("PsycopgJournalUnitOfWork.statement_timeout_ms must be >= 0")
        self._pool = pool
        self._cipher_resolver = cipher_resolver
        self._statement_timeout_ms = statement_timeout_ms
        self._acquire_timeout_s = acquire_timeout_s

    @contextmanager
    def begin(self, *, user_id: UserId) -> Iterator[JournalTransaction]:
        """
        Start transaction, bind identity and yield repositories.

        Args:
            user_id: Identity bound for row-level security.
        Returns:
            Iterator[JournalTransaction]: Context-managed transaction.
        Assumptions:
            Leaving the block normally commits; any exception rolls back.
        Raises:
            StoreUnavailableError: If connection checkout or `BEGIN` fails.
            SecurityContextError: If identity binding fails.
            JournalStoreError: If a statement or the commit fails.
        Side Effects:
            Holds one pooled connection until the block exits.
        """
        with ExitStack() as stack:
            try:
                connection = stack.enter_context(
                    self._pool.connection(timeout=self._acquire_timeout_s)
                )
                stack.enter_context(connection.transaction())
            except psycopg.Error as error:
                log.error("journal transaction start failed: user_id=%s error=%s", user_id, error)
                raise StoreUnavailableError("Journal storage connection is unavailable") from error

            session = PsycopgJournalSession(connection=connection)
            try:
                session.execute(query=_BIND_IDENTITY_QUERY, parameters={"user_id": str(user_id)})
                if self._statement_timeout_ms:
                    session.execute(
                        query=_STATEMENT_TIMEOUT_QUERY,
                        parameters={"statement_timeout": str(self._statement_timeout_ms)},
                    )
            except psycopg.Error as error:
                log.error("journal identity binding failed: user_id=%s error=%s", user_id, error)
                raise SecurityContextError("Journal security context cannot be bound") from error

            transaction = PostgresJournalTransaction(
                session=session,
                user_id=user_id,
                cipher_resolver=self._cipher_resolver,
            )
            try:
                yield transaction
            except psycopg.Error as error:
                raise to_journal_store_error(error) from error

            try:
                stack.close()
            except psycopg.Error as error:
                log.error("journal transaction commit failed: user_id=%s error=%s", user_id, error)
                raise to_journal_store_error(error) from error


__all__ = ["JournalConnectionPool", "PostgresJournalTransaction", "PsycopgJournalUnitOfWork"]
