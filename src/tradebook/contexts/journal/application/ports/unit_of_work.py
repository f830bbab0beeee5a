from __future__ import annotations

from typing import ContextManager, Protocol

from tradebook.shared_kernel.primitives import UserId

from .repositories import MembersRepository, TradebooksRepository, TradesRepository, UsersRepository


class JournalTransaction(Protocol):
    """
    JournalTransaction — repositories bound to one tenant-scoped transaction.

    All statements issued through these repositories run under the identity bound at
    `JournalUnitOfWork.begin`.
    """

    @property
    def user_id(self) -> UserId:
        ...

    @property
    def users(self) -> UsersRepository:
        ...

    @property
    def tradebooks(self) -> TradebooksRepository:
        ...

    @property
    def members(self) -> MembersRepository:
        ...

    @property
    def trades(self) -> TradesRepository:
        ...


class JournalUnitOfWork(Protocol):
    """
    JournalUnitOfWork — tenant-scoped transaction protocol.

    `begin` performs Start -> BindIdentity and yields the transaction; leaving the block
    normally commits, leaving it with any exception (including cancellation) rolls back.

    Related:
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/unit_of_work.py
      - src/tradebook/contexts/journal/adapters/outbound/persistence/in_memory/unit_of_work.py
      - src/tradebook/contexts/journal/application/use_cases/create_tradebook.py
    """

    def begin(self, *, user_id: UserId) -> ContextManager[JournalTransaction]:
        """
        Start transaction bound to `user_id`.

        Args:
            user_id: Identity bound as `app.current_user_id` for row-level security.
        Returns:
            ContextManager[JournalTransaction]: Transaction scope.
        Assumptions:
            Binding is transaction-local and never leaks to pooled connections.
        Raises:
            StoreUnavailableError: If no connection/transaction can be started.
            SecurityContextError: If identity binding fails.
            JournalStoreError: If a statement fails (classified by kind).
        Side Effects:
            Holds one pooled connection for the lifetime of the block.
        """
        ...


__all__ = ["JournalTransaction", "JournalUnitOfWork"]
