from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from tradebook.contexts.encryption.application.ports.cipher_resolver import (
    TradebookCipherResolver,
)
from tradebook.contexts.journal.application.ports.unit_of_work import (
    JournalTransaction,
    JournalUnitOfWork,
)
from tradebook.shared_kernel.primitives import UserId

from .repositories import (
    InMemoryJournalScope,
    InMemoryMembersRepository,
    InMemoryTradebooksRepository,
    InMemoryTradesRepository,
    InMemoryUsersRepository,
)
from .state import JournalState

log = logging.getLogger(__name__)


class InMemoryJournalTransaction(JournalTransaction):
    """InMemoryJournalTransaction — repositories bound to one transaction-local scope."""

    def __init__(self, *, scope: InMemoryJournalScope, user_id: UserId) -> None:
        self._user_id = user_id
        self._users = InMemoryUsersRepository(scope=scope)
        self._tradebooks = InMemoryTradebooksRepository(scope=scope)
        self._members = InMemoryMembersRepository(scope=scope)
        self._trades = InMemoryTradesRepository(scope=scope)

    @property
    def user_id(self) -> UserId:
        return self._user_id

    @property
    def users(self) -> InMemoryUsersRepository:
        return self._users

    @property
    def tradebooks(self) -> InMemoryTradebooksRepository:
        return self._tradebooks

    @property
    def members(self) -> InMemoryMembersRepository:
        return self._members

    @property
    def trades(self) -> InMemoryTradesRepository:
        return self._trades


class InMemoryJournalUnitOfWork(JournalUnitOfWork):
    """
    InMemoryJournalUnitOfWork — process-local unit of work with all-or-nothing commits.

    Each transaction works on a deep copy of the committed state; the copy replaces the
    committed state only when the block exits normally. Transactions are serialized.

    Related:
      - src/tradebook/contexts/journal/application/ports/unit_of_work.py
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/unit_of_work.py
      - apps/api/wiring/modules/journal.py
    """

    def __init__(
        self,
        *,
        cipher_resolver: TradebookCipherResolver,
        state: JournalState | None = None,
    ) -> None:
        """
        Initialize unit of work with cipher resolver and optional seeded state.

        Args:
            cipher_resolver: Per-tradebook field cipher resolver.
            state: Initial committed state; empty state when omitted.
        Returns:
            None.
        Assumptions:
            Instance is process-local; nothing survives restart.
        Raises:
            ValueError: If cipher resolver is missing.
        Side Effects:
            None.
        """
        if cipher_resolver is None:  # type: ignore[truthy-bool]
            raise ValueError("InMemoryJournalUnitOfWork requires cipher_resolver")
        self._cipher_resolver = cipher_resolver
        self._state = state if state is not None else JournalState()
        self._lock = threading.RLock()

    @property
    def state(self) -> JournalState:
        """Committed state snapshot reference."""
        return self._state

    @contextmanager
    def begin(self, *, user_id: UserId) -> Iterator[JournalTransaction]:
        with self._lock:
            working = copy.deepcopy(self._state)
            scope = InMemoryJournalScope(
                state=working,
                bound_user_id=user_id,
                cipher_resolver=self._cipher_resolver,
            )
            try:
                yield InMemoryJournalTransaction(scope=scope, user_id=user_id)
            except BaseException:
                log.debug("in-memory journal transaction rolled back: user_id=%s", user_id)
                raise
            self._state = working


__all__ = ["InMemoryJournalTransaction", "InMemoryJournalUnitOfWork"]
