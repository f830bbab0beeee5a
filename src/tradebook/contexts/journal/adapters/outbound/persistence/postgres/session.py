from __future__ import annotations

from typing import Any, Mapping, Protocol, cast

import psycopg
from psycopg.rows import dict_row


class JournalPostgresSession(Protocol):
    """
    JournalPostgresSession — minimal SQL gateway bound to one open transaction.

    Related:
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/unit_of_work.py
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/tradebooks_repository.py
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/trades_repository.py
    """

    def fetch_one(self, *, query: str, parameters: Mapping[str, Any]) -> Mapping[str, Any] | None:
        """
        Execute SQL statement and return one mapped row.

        Args:
            query: SQL text.
            parameters: Bind parameters mapping.
        Returns:
            Mapping[str, Any] | None: One row or `None`.
        Assumptions:
            Query may contain `RETURNING` clause.
        Raises:
            Exception: Storage/driver errors from implementation.
        Side Effects:
            Executes one SQL statement.
        """
        ...

    def fetch_all(
        self,
        *,
        query: str,
        parameters: Mapping[str, Any],
    ) -> tuple[Mapping[str, Any], ...]:
        """
        Execute SQL statement and return all mapped rows.

        Args:
            query: SQL text.
            parameters: Bind parameters mapping.
        Returns:
            tuple[Mapping[str, Any], ...]: Query rows in SQL-defined order.
        Assumptions:
            Deterministic ordering is controlled by explicit `ORDER BY` in SQL.
        Raises:
            Exception: Storage/driver errors from implementation.
        Side Effects:
            Executes one SQL statement.
        """
        ...

    def execute(self, *, query: str, parameters: Mapping[str, Any]) -> None:
        """
        Execute side-effecting SQL statement without returning rows.

        Args:
            query: SQL text.
            parameters: Bind parameters mapping.
        Returns:
            None.
        Assumptions:
            Statement has write side effects.
        Raises:
            Exception: Storage/driver errors from implementation.
        Side Effects:
            Executes one SQL statement.
        """
        ...


class PsycopgJournalSession(JournalPostgresSession):
    """
    PsycopgJournalSession — psycopg3 session running every statement on one connection.

    Commit/rollback is owned by the unit of work; this class never ends the transaction.

    Related:
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/unit_of_work.py
    """

    def __init__(self, *, connection: psycopg.Connection[Any]) -> None:
        if connection is None:  # type: ignore[truthy-bool]
            raise ValueError("PsycopgJournalSession requires connection")
        self._connection = connection

    def fetch_one(self, *, query: str, parameters: Mapping[str, Any]) -> Mapping[str, Any] | None:
        with self._connection.cursor(row_factory=cast(Any, dict_row)) as cursor:
            cursor.execute(cast(Any, query), parameters)
            row = cursor.fetchone()
        if row is None:
            return None
        return dict(row)

    def fetch_all(
        self,
        *,
        query: str,
        parameters: Mapping[str, Any],
    ) -> tuple[Mapping[str, Any], ...]:
        with self._connection.cursor(row_factory=cast(Any, dict_row)) as cursor:
            cursor.execute(cast(Any, query), parameters)
            rows = cursor.fetchall()
        return tuple(dict(row) for row in rows)

    def execute(self, *, query: str, parameters: Mapping[str, Any]) -> None:
        with self._connection.cursor() as cursor:
            cursor.execute(cast(Any, query), parameters)


__all__ = ["JournalPostgresSession", "PsycopgJournalSession"]
