from __future__ import annotations

from datetime import datetime

from tradebook.contexts.journal.application.ports.repositories import UsersRepository
from tradebook.shared_kernel.primitives import UserId

from .session import JournalPostgresSession


class PostgresUsersRepository(UsersRepository):
    """
    PostgresUsersRepository — explicit SQL adapter for mirrored identity-provider users.

    Related:
      - src/tradebook/contexts/journal/application/ports/repositories.py
      - alembic/versions/20261001_0001_journal_schema_rls.py
    """

    def __init__(self, *, session: JournalPostgresSession, users_table: str = "users") -> None:
        if session is None:  # type: ignore[truthy-bool]
            raise ValueError("PostgresUsersRepository requires session")
        normalized_table = users_table.strip()
        if not normalized_table:
            raise ValueError("PostgresUsersRepository requires non-empty users_table")
        self._session = session
        self._users_table = normalized_table

    def upsert(self, *, user_id: UserId, now: datetime) -> None:
        query = f"""
        INSERT INTO {self._users_table} (id, created_at)
        VALUES (%(user_id)s, %(now)s)
        ON CONFLICT (id) DO NOTHING
        """
        self._session.execute(query=query, parameters={"user_id": str(user_id), "now": now})

    def delete(self, *, user_id: UserId) -> bool:
        query = f"""
        DELETE FROM {self._users_table}
        WHERE id = %(user_id)s
        RETURNING id
        """
        row = self._session.fetch_one(query=query, parameters={"user_id": str(user_id)})
        return row is not None


__all__ = ["PostgresUsersRepository"]
