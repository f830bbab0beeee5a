from __future__ import annotations

from typing import Any, Mapping
from uuid import UUID

from tradebook.contexts.encryption.application.services.field_codec import EncryptedFieldCodec
from tradebook.contexts.encryption.domain.errors import FieldEncryptionError
from tradebook.contexts.encryption.domain.value_objects import (
    EncryptedDecimal,
    EncryptedNullableDecimal,
    EncryptedString,
)
from tradebook.contexts.journal.application.ports.repositories import TradesRepository
from tradebook.contexts.journal.application.ports.store_errors import JournalStoreError
from tradebook.contexts.journal.domain.entities import ExitLeg, Trade
from tradebook.contexts.journal.domain.value_objects import AssetClass, OrderType, PurchaseType
from tradebook.shared_kernel.primitives import UserId

from ._predicates import WRITE_ROLES, member_role_predicate
from .session import JournalPostgresSession
from .tradebook_codecs import TradebookCodecLookup

_TRADE_COLUMNS = """
            tr.id,
            tr.tradebook_id,
            tr.asset_class,
            tr.purchase_type,
            tr.order_type,
            tr.symbol,
            tr.entry_date,
            tr.entry_quantity,
            tr.entry_price,
            tr.entry_fees,
            tr.created_at,
            tr.updated_at
"""


class PostgresTradesRepository(TradesRepository):
    """
    PostgresTradesRepository — explicit SQL adapter for trades and exit legs.

    Symbol, quantities, prices and fees are encrypted with the owning tradebook's codec;
    every mutation carries an explicit owner/editor membership predicate.

    Related:
      - src/tradebook/contexts/journal/application/ports/repositories.py
      - src/tradebook/contexts/encryption/application/services/field_codec.py
      - alembic/versions/20261001_0001_journal_schema_rls.py
    """

    def __init__(
        self,
        *,
        session: JournalPostgresSession,
        codecs: TradebookCodecLookup,
        trades_table: str = "trades",
        exit_legs_table: str = "exit_legs",
        members_table: str = "tradebook_members",
    ) -> None:
        if session is None:  # type: ignore[truthy-bool]
            raise ValueError("PostgresTradesRepository requires session")
        if codecs is None:  # type: ignore[truthy-bool]
            raise ValueError("PostgresTradesRepository requires codecs")
        self._session = session
        self._codecs = codecs
        self._trades_table = trades_table
        self._exit_legs_table = exit_legs_table
        self._members_table = members_table

    def create(self, *, trade: Trade, user_id: UserId) -> bool:
        """
        Insert trade guarded by owner/editor predicate.

        Args:
            trade: Trade snapshot.
            user_id: Acting user.
        Returns:
            bool: `False` when tradebook is invisible or user is a reader.
        Assumptions:
            Exit legs of a new trade are recorded separately.
        Raises:
            FieldEncryptionError: If a field cannot be encrypted.
            psycopg.Error: On driver failure.
        Side Effects:
            Executes at most two SQL statements.
        """
        codec = self._codecs.codec_for(tradebook_id=trade.tradebook_id)
        if codec is None:
            return False
        write_predicate = member_role_predicate(
            tradebook_column="%(tradebook_id)s",
            roles=WRITE_ROLES,
            members_table=self._members_table,
        )
        query = f"""
        INSERT INTO {self._trades_table}
        (
            id,
            tradebook_id,
            asset_class,
            purchase_type,
            order_type,
            symbol,
            entry_date,
            entry_quantity,
            entry_price,
            entry_fees,
            created_at,
            updated_at
        )
        SELECT
            %(trade_id)s,
            %(tradebook_id)s,
            %(asset_class)s,
            %(purchase_type)s,
            %(order_type)s,
            %(symbol)s,
            %(entry_date)s,
            %(entry_quantity)s,
            %(entry_price)s,
            %(entry_fees)s,
            %(created_at)s,
            %(updated_at)s
        WHERE {write_predicate}
        RETURNING id
        """
        row = self._session.fetch_one(
            query=query,
            parameters=_trade_parameters(trade=trade, codec=codec, user_id=user_id),
        )
        return row is not None

    def get(
        self,
        *,
        tradebook_id: UUID,
        trade_id: UUID,
        user_id: UserId,
        for_update: bool = False,
    ) -> Trade | None:
        codec = self._codecs.codec_for(tradebook_id=tradebook_id)
        if codec is None:
            return None
        member_predicate = member_role_predicate(
            tradebook_column="tr.tradebook_id",
            members_table=self._members_table,
        )
        lock_clause = "FOR UPDATE OF tr" if for_update else ""
        query = f"""
        SELECT
            {_TRADE_COLUMNS}
        FROM {self._trades_table} tr
        WHERE tr.id = %(trade_id)s
          AND tr.tradebook_id = %(tradebook_id)s
          AND {member_predicate}
        {lock_clause}
        """
        row = self._session.fetch_one(
            query=query,
            parameters={
                "trade_id": trade_id,
                "tradebook_id": tradebook_id,
                "user_id": str(user_id),
            },
        )
        if row is None:
            return None
        legs = self._load_exit_legs(trade_ids=[trade_id], codec=codec)
        return _map_trade_row(row=row, codec=codec, exit_legs=legs.get(trade_id, ()))

    def list_for_tradebook(
        self,
        *,
        tradebook_id: UUID,
        user_id: UserId,
        limit: int,
        offset: int,
    ) -> tuple[Trade, ...] | None:
        """
        List trades of a visible tradebook with deterministic ordering.

        Args:
            tradebook_id: Tradebook identifier.
            user_id: Acting user.
            limit: Page size.
            offset: Rows to skip.
        Returns:
            tuple[Trade, ...] | None: Trades ordered by `entry_date DESC, id ASC`, or `None`
                when the tradebook is not visible.
        Assumptions:
            Exit legs are loaded in one extra query for the whole page.
        Raises:
            FieldEncryptionError: If a field cannot be decrypted.
            JournalStoreError: If row mapping fails.
        Side Effects:
            Executes up to three SQL selects.
        """
        codec = self._codecs.codec_for(tradebook_id=tradebook_id)
        if codec is None:
            return None
        member_predicate = member_role_predicate(
            tradebook_column="tr.tradebook_id",
            members_table=self._members_table,
        )
        query = f"""
        SELECT
            {_TRADE_COLUMNS}
        FROM {self._trades_table} tr
        WHERE tr.tradebook_id = %(tradebook_id)s
          AND {member_predicate}
        ORDER BY tr.entry_date DESC, tr.id ASC
        LIMIT %(limit)s
        OFFSET %(offset)s
        """
        rows = self._session.fetch_all(
            query=query,
            parameters={
                "tradebook_id": tradebook_id,
                "user_id": str(user_id),
                "limit": limit,
                "offset": offset,
            },
        )
        if not rows:
            return ()
        trade_ids = [UUID(str(row["id"])) for row in rows]
        legs = self._load_exit_legs(trade_ids=trade_ids, codec=codec)
        return tuple(
            _map_trade_row(row=row, codec=codec, exit_legs=legs.get(trade_id, ()))
            for row, trade_id in zip(rows, trade_ids)
        )

    def update(self, *, trade: Trade, user_id: UserId) -> bool:
        codec = self._codecs.codec_for(tradebook_id=trade.tradebook_id)
        if codec is None:
            return False
        write_predicate = member_role_predicate(
            tradebook_column="tr.tradebook_id",
            roles=WRITE_ROLES,
            members_table=self._members_table,
        )
        query = f"""
        UPDATE {self._trades_table} tr
        SET asset_class = %(asset_class)s,
            purchase_type = %(purchase_type)s,
            order_type = %(order_type)s,
            symbol = %(symbol)s,
            entry_date = %(entry_date)s,
            entry_quantity = %(entry_quantity)s,
            entry_price = %(entry_price)s,
            entry_fees = %(entry_fees)s,
            updated_at = %(updated_at)s
        WHERE tr.id = %(trade_id)s
          AND tr.tradebook_id = %(tradebook_id)s
          AND {write_predicate}
        RETURNING tr.id
        """
        row = self._session.fetch_one(
            query=query,
            parameters=_trade_parameters(trade=trade, codec=codec, user_id=user_id),
        )
        return row is not None

    def delete(self, *, tradebook_id: UUID, trade_id: UUID, user_id: UserId) -> bool:
        write_predicate = member_role_predicate(
            tradebook_column="tr.tradebook_id",
            roles=WRITE_ROLES,
            members_table=self._members_table,
        )
        query = f"""
        DELETE FROM {self._trades_table} tr
        WHERE tr.id = %(trade_id)s
          AND tr.tradebook_id = %(tradebook_id)s
          AND {write_predicate}
        RETURNING tr.id
        """
        row = self._session.fetch_one(
            query=query,
            parameters={
                "trade_id": trade_id,
                "tradebook_id": tradebook_id,
                "user_id": str(user_id),
            },
        )
        return row is not None

    def add_exit_leg(self, *, tradebook_id: UUID, exit_leg: ExitLeg, user_id: UserId) -> bool:
        codec = self._codecs.codec_for(tradebook_id=tradebook_id)
        if codec is None:
            return False
        write_predicate = member_role_predicate(
            tradebook_column="tr.tradebook_id",
            roles=WRITE_ROLES,
            members_table=self._members_table,
        )
        query = f"""
        INSERT INTO {self._exit_legs_table}
        (
            id,
            trade_id,
            exit_date,
            exit_quantity,
            exit_price,
            exit_fees,
            created_at
        )
        SELECT
            %(exit_leg_id)s,
            tr.id,
            %(exit_date)s,
            %(exit_quantity)s,
            %(exit_price)s,
            %(exit_fees)s,
            %(created_at)s
        FROM {self._trades_table} tr
        WHERE tr.id = %(trade_id)s
          AND tr.tradebook_id = %(tradebook_id)s
          AND {write_predicate}
        RETURNING id
        """
        row = self._session.fetch_one(
            query=query,
            parameters={
                "exit_leg_id": exit_leg.exit_leg_id,
                "trade_id": exit_leg.trade_id,
                "tradebook_id": tradebook_id,
                "user_id": str(user_id),
                "exit_date": exit_leg.exit_date,
                "exit_quantity": codec.encode_decimal(EncryptedDecimal(exit_leg.exit_quantity)),
                "exit_price": codec.encode_decimal(EncryptedDecimal(exit_leg.exit_price)),
                "exit_fees": codec.encode_nullable_decimal(
                    EncryptedNullableDecimal.from_optional(exit_leg.exit_fees)
                ),
                "created_at": exit_leg.created_at,
            },
        )
        return row is not None

    def _load_exit_legs(
        self,
        *,
        trade_ids: list[UUID],
        codec: EncryptedFieldCodec,
    ) -> dict[UUID, tuple[ExitLeg, ...]]:
        query = f"""
        SELECT
            id,
            trade_id,
            exit_date,
            exit_quantity,
            exit_price,
            exit_fees,
            created_at
        FROM {self._exit_legs_table}
        WHERE trade_id = ANY(%(trade_ids)s)
        ORDER BY exit_date ASC, id ASC
        """
        rows = self._session.fetch_all(query=query, parameters={"trade_ids": trade_ids})
        grouped: dict[UUID, list[ExitLeg]] = {}
        for row in rows:
            leg = _map_exit_leg_row(row=row, codec=codec)
            grouped.setdefault(leg.trade_id, []).append(leg)
        return {trade_id: tuple(legs) for trade_id, legs in grouped.items()}


def _trade_parameters(
    *,
    trade: Trade,
    codec: EncryptedFieldCodec,
    user_id: UserId,
) -> dict[str, Any]:
    return {
        "trade_id": trade.trade_id,
        "tradebook_id": trade.tradebook_id,
        "user_id": str(user_id),
        "asset_class": trade.asset_class.value,
        "purchase_type": trade.purchase_type.value,
        "order_type": trade.order_type.value,
        "symbol": codec.encode_string(EncryptedString(trade.symbol)),
        "entry_date": trade.entry_date,
        "entry_quantity": codec.encode_decimal(EncryptedDecimal(trade.entry_quantity)),
        "entry_price": codec.encode_decimal(EncryptedDecimal(trade.entry_price)),
        "entry_fees": codec.encode_nullable_decimal(
            EncryptedNullableDecimal.from_optional(trade.entry_fees)
        ),
        "created_at": trade.created_at,
        "updated_at": trade.updated_at,
    }


def _map_trade_row(
    *,
    row: Mapping[str, Any],
    codec: EncryptedFieldCodec,
    exit_legs: tuple[ExitLeg, ...],
) -> Trade:
    """
    Map SQL row into Trade, decrypting encrypted columns.

    Args:
        row: SQL row mapping.
        codec: Tradebook field codec.
        exit_legs: Already mapped exit legs of this trade.
    Returns:
        Trade: Domain snapshot.
    Assumptions:
        Row schema follows journal trades table contract.
    Raises:
        FieldEncryptionError: If an encrypted column cannot be decoded.
        JournalStoreError: If row shape is invalid.
    Side Effects:
        None.
    """
    try:
        return Trade(
            trade_id=UUID(str(row["id"])),
            tradebook_id=UUID(str(row["tradebook_id"])),
            asset_class=AssetClass(str(row["asset_class"])),
            purchase_type=PurchaseType(str(row["purchase_type"])),
            order_type=OrderType(str(row["order_type"])),
            symbol=codec.decode_string(row["symbol"]).value,
            entry_date=row["entry_date"],
            entry_quantity=codec.decode_decimal(row["entry_quantity"]).value,
            entry_price=codec.decode_decimal(row["entry_price"]).value,
            entry_fees=codec.decode_nullable_decimal(row["entry_fees"]).as_optional(),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            exit_legs=exit_legs,
        )
    except FieldEncryptionError:
        raise
    except (KeyError, TypeError, ValueError) as error:
        raise JournalStoreError("PostgresTradesRepository cannot map trade row") from error


def _map_exit_leg_row(*, row: Mapping[str, Any], codec: EncryptedFieldCodec) -> ExitLeg:
    try:
        return ExitLeg(
            exit_leg_id=UUID(str(row["id"])),
            trade_id=UUID(str(row["trade_id"])),
            exit_date=row["exit_date"],
            exit_quantity=codec.decode_decimal(row["exit_quantity"]).value,
            exit_price=codec.decode_decimal(row["exit_price"]).value,
            exit_fees=codec.decode_nullable_decimal(row["exit_fees"]).as_optional(),
            created_at=row["created_at"],
        )
    except FieldEncryptionError:
        raise
    except (KeyError, TypeError, ValueError) as error:
        raise JournalStoreError("PostgresTradesRepository cannot map exit leg row") from error


__all__ = ["PostgresTradesRepository"]
