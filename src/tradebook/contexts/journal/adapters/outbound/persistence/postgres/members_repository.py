from __future__ import annotations

from datetime import datetime
from uuid import UUID

from tradebook.contexts.journal.application.ports.repositories import MembersRepository
from tradebook.contexts.journal.domain.value_objects import TradebookRole
from tradebook.shared_kernel.primitives import UserId

from ._predicates import MANAGE_ROLES, member_role_predicate
from .session import JournalPostgresSession


class PostgresMembersRepository(MembersRepository):
    """
    PostgresMembersRepository — explicit SQL adapter for tradebook memberships.

    Grant and revoke require the acting user to hold the `owner` row and never touch it.

    Related:
      - src/tradebook/contexts/journal/application/use_cases/share_tradebook.py
      - alembic/versions/20261001_0001_journal_schema_rls.py
    """

    def __init__(
        self,
        *,
        session: JournalPostgresSession,
        members_table: str = "tradebook_members",
    ) -> None:
        if session is None:  # type: ignore[truthy-bool]
            raise ValueError("PostgresMembersRepository requires session")
        self._session = session
        self._members_table = members_table

    def add_owner(self, *, tradebook_id: UUID, owner_id: UserId, now: datetime) -> None:
        query = f"""
        INSERT INTO {self._members_table} (tradebook_id, user_id, role, created_at)
        VALUES (%(tradebook_id)s, %(user_id)s, 'owner', %(now)s)
        """
        self._session.execute(
            query=query,
            parameters={"tradebook_id": tradebook_id, "user_id": str(owner_id), "now": now},
        )

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
        Upsert non-owner membership guarded by owner predicate.

        Args:
            tradebook_id: Target tradebook.
            owner_id: Acting user.
            user_id: Member receiving access.
            role: Granted role.
            now: Timestamp for new rows.
        Returns:
            bool: `True` when a row was inserted or updated.
        Assumptions:
            `ON CONFLICT ... WHERE role <> 'owner'` keeps the owner row unchanged.
        Raises:
            psycopg.Error: On driver failure, e.g. foreign-key violation for unknown user.
        Side Effects:
            Writes at most one row.
        """
        owner_predicate = member_role_predicate(
            tradebook_column="%(tradebook_id)s",
            roles=MANAGE_ROLES,
            user_parameter="owner_id",
            members_table=self._members_table,
        )
        query = f"""
        INSERT INTO {self._members_table} (tradebook_id, user_id, role, created_at)
        SELECT %(tradebook_id)s, %(user_id)s, %(role)s::tradebook_role, %(now)s
        WHERE {owner_predicate}
        ON CONFLICT (tradebook_id, user_id) DO UPDATE
        SET role = EXCLUDED.role
        WHERE {self._members_table}.role <> 'owner'
        RETURNING tradebook_id
        """
        row = self._session.fetch_one(
            query=query,
            parameters={
                "tradebook_id": tradebook_id,
                "owner_id": str(owner_id),
                "user_id": str(user_id),
                "role": role.value,
                "now": now,
            },
        )
        return row is not None

    def revoke(self, *, tradebook_id: UUID, owner_id: UserId, user_id: UserId) -> bool:
        owner_predicate = member_role_predicate(
            tradebook_column="target.tradebook_id",
            roles=MANAGE_ROLES,
            user_parameter="owner_id",
            members_table=self._members_table,
        )
        query = f"""
        DELETE FROM {self._members_table} AS target
        WHERE target.tradebook_id = %(tradebook_id)s
          AND target.user_id = %(user_id)s
          AND target.role <> 'owner'
          AND {owner_predicate}
        RETURNING target.user_id
        """
        row = self._session.fetch_one(
            query=query,
            parameters={
                "tradebook_id": tradebook_id,
                "owner_id": str(owner_id),
                "user_id": str(user_id),
            },
        )
        return row is not None


__all__ = ["PostgresMembersRepository"]
