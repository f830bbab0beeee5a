from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping
from uuid import UUID

from tradebook.contexts.encryption.domain.errors import FieldEncryptionError
from tradebook.contexts.encryption.domain.value_objects import EncryptedString
from tradebook.contexts.journal.application.ports.repositories import TradebooksRepository
from tradebook.contexts.journal.application.ports.store_errors import JournalStoreError
from tradebook.contexts.journal.domain.entities import DEFAULT_TITLE, Tradebook
from tradebook.contexts.journal.domain.value_objects import TradebookRole
from tradebook.shared_kernel.primitives import UserId

from ._predicates import MANAGE_ROLES, WRITE_ROLES, member_role_predicate
from .session import JournalPostgresSession
from .tradebook_codecs import TradebookCodecLookup

_SELECT_COLUMNS = """
            t.id,
            t.owner_id,
            t.title,
            t.wrapped_dek,
            t.created_at,
            t.updated_at,
            m.role,
            (SELECT count(*) FROM trades tr WHERE tr.tradebook_id = t.id) AS total_trades
"""


class PostgresTradebooksRepository(TradebooksRepository):
    """
    PostgresTradebooksRepository — explicit SQL adapter for tradebooks with encrypted titles.

    Related:
      - src/tradebook/contexts/journal/application/ports/repositories.py
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/tradebook_codecs.py
      - alembic/versions/20261001_0001_journal_schema_rls.py
    """

    def __init__(
        self,
        *,
        session: JournalPostgresSession,
        codecs: TradebookCodecLookup,
        tradebooks_table: str = "tradebooks",
        members_table: str = "tradebook_members",
    ) -> None:
        """
        Initialize repository with transaction session and codec lookup.

        Args:
            session: Tenant-scoped SQL session.
            codecs: Per-transaction codec lookup.
            tradebooks_table: Tradebooks table name.
            members_table: Membership table name.
        Returns:
            None.
        Assumptions:
            Table schema follows the journal migration contract.
        Raises:
            ValueError: If dependencies are invalid.
        Side Effects:
            None.
        """
        if session is None:  # type: ignore[truthy-bool]
            raise ValueError("PostgresTradebooksRepository requires session")
        if codecs is None:  # type: ignore[truthy-bool]
            raise ValueError("PostgresTradebooksRepository requires codecs")
        self._session = session
        self._codecs = codecs
        self._tradebooks_table = tradebooks_table
        self._members_table = members_table

    def create(
        self,
        *,
        tradebook_id: UUID,
        owner_id: UserId,
        title: str,
        now: datetime,
    ) -> Tradebook:
        """
        Insert tradebook row with encrypted title and wrapped DEK.

        Args:
            tradebook_id: New tradebook identifier.
            owner_id: Creating user.
            title: Plaintext title.
            now: Creation timestamp.
        Returns:
            Tradebook: Persisted snapshot with `role=owner`.
        Assumptions:
            Owner membership is inserted by the caller in the same transaction.
        Raises:
            JournalStoreError: If insert returns no row.
            KeyServiceError: If key material cannot be issued.
        Side Effects:
            Executes one SQL insert; may call key service.
        """
        wrapped_dek = self._codecs.issue(tradebook_id=tradebook_id)
        codec = self._codecs.codec_from_row(tradebook_id=tradebook_id, wrapped_key=wrapped_dek)
        query = f"""
        INSERT INTO {self._tradebooks_table}
        (
            id,
            owner_id,
            title,
            wrapped_dek,
            created_at,
            updated_at
        )
        VALUES
        (
            %(tradebook_id)s,
            %(owner_id)s,
            %(title)s,
            %(wrapped_dek)s,
            %(now)s,
            %(now)s
        )
        RETURNING id, created_at, updated_at
        """
        row = self._session.fetch_one(
            query=query,
            parameters={
                "tradebook_id": tradebook_id,
                "owner_id": str(owner_id),
                "title": codec.encode_string(EncryptedString(title)),
                "wrapped_dek": wrapped_dek,
                "now": now,
            },
        )
        if row is None:
            raise JournalStoreError("PostgresTradebooksRepository.create returned no row")
        return Tradebook(
            tradebook_id=UUID(str(row["id"])),
            owner_id=owner_id,
            title=title,
            role=TradebookRole.OWNER,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            total_trades=0,
        )

    def get(self, *, tradebook_id: UUID, user_id: UserId) -> Tradebook | None:
        query = f"""
        SELECT
            {_SELECT_COLUMNS}
        FROM {self._tradebooks_table} t
        JOIN {self._members_table} m
          ON m.tradebook_id = t.id
         AND m.user_id = %(user_id)s
        WHERE t.id = %(tradebook_id)s
        """
        row = self._session.fetch_one(
            query=query,
            parameters={"tradebook_id": tradebook_id, "user_id": str(user_id)},
        )
        if row is None:
            return None
        return self._map_tradebook_row(row=row)

    def list_for_member(
        self,
        *,
        user_id: UserId,
        limit: int,
        offset: int,
    ) -> tuple[Tradebook, ...]:
        """
        List member tradebooks with deterministic ordering by update time and identifier.

        Args:
            user_id: Member identifier.
            limit: Page size.
            offset: Rows to skip.
        Returns:
            tuple[Tradebook, ...]: Page rows with decrypted titles.
        Assumptions:
            `ORDER BY t.updated_at DESC, t.id ASC` guarantees stable pages.
        Raises:
            JournalStoreError: If row mapping fails.
            FieldEncryptionError: If a title cannot be decrypted.
        Side Effects:
            Executes one SQL select; may call key service per distinct DEK on cache miss.
        """
        query = f"""
        SELECT
            {_SELECT_COLUMNS}
        FROM {self._tradebooks_table} t
        JOIN {self._members_table} m
          ON m.tradebook_id = t.id
         AND m.user_id = %(user_id)s
        ORDER BY t.updated_at DESC, t.id ASC
        LIMIT %(limit)s
        OFFSET %(offset)s
        """
        rows = self._session.fetch_all(
            query=query,
            parameters={"user_id": str(user_id), "limit": limit, "offset": offset},
        )
        return tuple(self._map_tradebook_row(row=row) for row in rows)

    def update_title(
        self,
        *,
        tradebook_id: UUID,
        user_id: UserId,
        title: str,
        now: datetime,
    ) -> bool:
        codec = self._codecs.codec_for(tradebook_id=tradebook_id)
        if codec is None:
            return False
        write_predicate = member_role_predicate(
            tradebook_column="t.id",
            roles=WRITE_ROLES,
            members_table=self._members_table,
        )
        query = f"""
        UPDATE {self._tradebooks_table} t
        SET title = %(title)s,
            updated_at = %(now)s
        WHERE t.id = %(tradebook_id)s
          AND {write_predicate}
        RETURNING t.id
        """
        row = self._session.fetch_one(
            query=query,
            parameters={
                "tradebook_id": tradebook_id,
                "user_id": str(user_id),
                "title": codec.encode_string(EncryptedString(title)),
                "now": now,
            },
        )
        return row is not None

    def delete(self, *, tradebook_id: UUID, owner_id: UserId) -> bool:
        manage_predicate = member_role_predicate(
            tradebook_column="t.id",
            roles=MANAGE_ROLES,
            members_table=self._members_table,
        )
        query = f"""
        DELETE FROM {self._tradebooks_table} t
        WHERE t.id = %(tradebook_id)s
          AND t.owner_id = %(user_id)s
          AND {manage_predicate}
        RETURNING t.id
        """
        row = self._session.fetch_one(
            query=query,
            parameters={"tradebook_id": tradebook_id, "user_id": str(owner_id)},
        )
        return row is not None

    def delete_all_owned(self, *, owner_id: UserId) -> int:
        manage_predicate = member_role_predicate(
            tradebook_column="t.id",
            roles=MANAGE_ROLES,
            members_table=self._members_table,
        )
        query = f"""
        DELETE FROM {self._tradebooks_table} t
        WHERE t.owner_id = %(user_id)s
          AND {manage_predicate}
        RETURNING t.id
        """
        rows = self._session.fetch_all(query=query, parameters={"user_id": str(owner_id)})
        return len(rows)

    def _map_tradebook_row(self, *, row: Mapping[str, Any]) -> Tradebook:
        """
        Map SQL row into Tradebook, decrypting the title with the tradebook codec.

        Args:
            row: SQL row mapping.
        Returns:
            Tradebook: Domain snapshot.
        Assumptions:
            NULL title reads back as the default title.
        Raises:
            FieldEncryptionError: If title cannot be decrypted.
            JournalStoreError: If row shape is invalid.
        Side Effects:
            None.
        """
        try:
            tradebook_id = UUID(str(row["id"]))
            codec = self._codecs.codec_from_row(
                tradebook_id=tradebook_id,
                wrapped_key=row["wrapped_dek"],
            )
            title = codec.decode_string(row["title"]).value or DEFAULT_TITLE
            return Tradebook(
                tradebook_id=tradebook_id,
                owner_id=UserId(str(row["owner_id"])),
                title=title,
                role=TradebookRole(str(row["role"])),
                created_at=row["created_at"],
                updated_at=row["updated_at"],
                total_trades=int(row["total_trades"]),
            )
        except FieldEncryptionError:
            raise
        except (KeyError, TypeError, ValueError) as error:
            raise JournalStoreError(
                "PostgresTradebooksRepository cannot map tradebook row"
            ) from error


__all__ = ["PostgresTradebooksRepository"]
