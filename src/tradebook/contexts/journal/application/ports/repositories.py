from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from tradebook.contexts.journal.domain.entities import ExitLeg, Trade, Tradebook
from tradebook.contexts.journal.domain.value_objects import TradebookRole
from tradebook.shared_kernel.primitives import UserId


class UsersRepository(Protocol):
    """
    UsersRepository — user rows mirrored from the identity provider.

    Related:
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/users_repository.py
      - src/tradebook/contexts/journal/application/use_cases/sync_user.py
    """

    def upsert(self, *, user_id: UserId, now: datetime) -> None:
        """
        Insert user row when missing; existing row is left unchanged.

        Args:
            user_id: User identifier.
            now: Creation timestamp for new rows.
        Returns:
            None.
        Assumptions:
            Idempotent.
        Raises:
            Exception: Storage/driver errors from implementation.
        Side Effects:
            Writes at most one row.
        """
        ...

    def delete(self, *, user_id: UserId) -> bool:
        """
        Delete user row and cascade owned data.

        Returns:
            bool: `True` when a row was deleted.
        """
        ...


class TradebooksRepository(Protocol):
    """
    TradebooksRepository — tradebook rows with encrypted titles and role-checked mutations.

    Every mutating method carries the acting user and affects zero rows when that user lacks
    the required role; callers map zero rows to "not found or access denied".

    Related:
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/tradebooks_repository.py
      - src/tradebook/contexts/journal/adapters/outbound/persistence/in_memory/unit_of_work.py
    """

    def create(
        self,
        *,
        tradebook_id: UUID,
        owner_id: UserId,
        title: str,
        now: datetime,
    ) -> Tradebook:
        """
        Insert tradebook row with freshly issued key material.

        Args:
            tradebook_id: New tradebook identifier.
            owner_id: Creating user.
            title: Normalized plaintext title.
            now: Creation timestamp.
        Returns:
            Tradebook: Persisted snapshot with `role=owner`.
        Assumptions:
            Owner membership row is inserted separately in the same transaction.
        Raises:
            Exception: Storage/driver or key-service errors from implementation.
        Side Effects:
            Writes one row; may call key service.
        """
        ...

    def get(self, *, tradebook_id: UUID, user_id: UserId) -> Tradebook | None:
        ...

    def list_for_member(
        self,
        *,
        user_id: UserId,
        limit: int,
        offset: int,
    ) -> tuple[Tradebook, ...]:
        """
        List tradebooks where user is a member, newest update first.

        Args:
            user_id: Member identifier.
            limit: Page size.
            offset: Rows to skip.
        Returns:
            tuple[Tradebook, ...]: Page ordered by `updated_at DESC, tradebook_id ASC`.
        Assumptions:
            Membership is the only visibility rule.
        Raises:
            Exception: Storage/driver errors from implementation.
        Side Effects:
            Reads storage.
        """
        ...

    def update_title(
        self,
        *,
        tradebook_id: UUID,
        user_id: UserId,
        title: str,
        now: datetime,
    ) -> bool:
        """Update title when user is owner or editor; returns `False` when no row changed."""
        ...

    def delete(self, *, tradebook_id: UUID, owner_id: UserId) -> bool:
        ...

    def delete_all_owned(self, *, owner_id: UserId) -> int:
        ...


class MembersRepository(Protocol):
    """
    MembersRepository — tradebook membership rows.

    Related:
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/members_repository.py
      - src/tradebook/contexts/journal/application/use_cases/share_tradebook.py
    """

    def add_owner(self, *, tradebook_id: UUID, owner_id: UserId, now: datetime) -> None:
        ...

    def grant(
        self,
        *,
        tradebook_id: UUID,
        owner_id: UserId,
        user_id: UserId,
        role: TradebookRole,
        now: datetime,
    ) -> bool:
        """
        Insert or change a non-owner membership when `owner_id` owns the tradebook.

        Args:
            tradebook_id: Target tradebook.
            owner_id: Acting user, must hold `owner` role.
            user_id: Member being granted access.
            role: `editor` or `reader`.
            now: Timestamp for new rows.
        Returns:
            bool: `False` when acting user is not owner or target row is the owner row.
        Assumptions:
            Owner row is never demoted.
        Raises:
            Exception: Storage/driver errors (e.g. unknown target user) from implementation.
        Side Effects:
            Writes at most one row.
        """
        ...

    def revoke(self, *, tradebook_id: UUID, owner_id: UserId, user_id: UserId) -> bool:
        ...


class TradesRepository(Protocol):
    """
    TradesRepository — trades and exit legs with encrypted symbol and money columns.

    Related:
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/trades_repository.py
      - src/tradebook/contexts/journal/application/use_cases/create_trade.py
    """

    def create(self, *, trade: Trade, user_id: UserId) -> bool:
        """
        Insert trade when user is owner or editor of its tradebook.

        Args:
            trade: Trade snapshot without exit legs.
            user_id: Acting user.
        Returns:
            bool: `False` when tradebook is not visible or user lacks write role.
        Assumptions:
            Columns are encrypted with the tradebook cipher.
        Raises:
            Exception: Storage/driver or encryption errors from implementation.
        Side Effects:
            Writes at most one row.
        """
        ...

    def get(
        self,
        *,
        tradebook_id: UUID,
        trade_id: UUID,
        user_id: UserId,
        for_update: bool = False,
    ) -> Trade | None:
        """
        Load a visible trade with its exit legs.

        Args:
            tradebook_id: Owning tradebook.
            trade_id: Trade identifier.
            user_id: Acting user.
            for_update: Lock the trade row until the transaction ends.
        Returns:
            Trade | None: `None` when the trade is missing or not visible.
        Assumptions:
            Writers that check open quantity read with `for_update=True` so concurrent
            exits and entry updates of one trade are serialized.
        Raises:
            Exception: Storage/driver or encryption errors from implementation.
        Side Effects:
            Takes a row lock when `for_update` is set.
        """
        ...

    def list_for_tradebook(
        self,
        *,
        tradebook_id: UUID,
        user_id: UserId,
        limit: int,
        offset: int,
    ) -> tuple[Trade, ...] | None:
        """
        List trades of a visible tradebook, newest entry first.

        Returns:
            tuple[Trade, ...] | None: `None` when the tradebook is not visible to user.
        """
        ...

    def update(self, *, trade: Trade, user_id: UserId) -> bool:
        ...

    def delete(self, *, tradebook_id: UUID, trade_id: UUID, user_id: UserId) -> bool:
        ...

    def add_exit_leg(self, *, tradebook_id: UUID, exit_leg: ExitLeg, user_id: UserId) -> bool:
        ...


__all__ = [
    "MembersRepository",
    "TradebooksRepository",
    "TradesRepository",
    "UsersRepository",
]
