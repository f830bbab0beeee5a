from __future__ import annotations

from datetime import datetime
from uuid import UUID

from tradebook.contexts.encryption.application.ports.cipher_resolver import (
    TradebookCipherResolver,
)
from tradebook.contexts.encryption.application.services.field_codec import EncryptedFieldCodec
from tradebook.contexts.encryption.domain.value_objects import (
    EncryptedDecimal,
    EncryptedNullableDecimal,
    EncryptedString,
)
from tradebook.contexts.journal.application.ports.repositories import (
    MembersRepository,
    TradebooksRepository,
    TradesRepository,
    UsersRepository,
)
from tradebook.contexts.journal.application.ports.store_errors import (
    JournalStoreError,
    StoreErrorKind,
)
from tradebook.contexts.journal.domain.entities import DEFAULT_TITLE, ExitLeg, Trade, Tradebook
from tradebook.contexts.journal.domain.value_objects import (
    AssetClass,
    OrderType,
    PurchaseType,
    TradebookRole,
)
from tradebook.shared_kernel.primitives import UserId

from .state import ExitLegRow, JournalState, TradebookRow, TradeRow

_WRITE_ROLES = frozenset({TradebookRole.OWNER, TradebookRole.EDITOR})


class InMemoryJournalScope:
    """
    InMemoryJournalScope — transaction-local view of the state with row-level visibility rules.

    A tradebook is visible only when the bound user holds a membership row, matching the
    Postgres policies; explicit role checks are applied on top by each repository.
    """

    def __init__(
        self,
        *,
        state: JournalState,
        bound_user_id: UserId,
        cipher_resolver: TradebookCipherResolver,
    ) -> None:
        self.state = state
        self.bound_user_id = str(bound_user_id)
        self._cipher_resolver = cipher_resolver
        self._codecs: dict[UUID, EncryptedFieldCodec] = {}

    def visible(self, *, tradebook_id: UUID) -> TradebookRow | None:
        row = self.state.tradebooks.get(tradebook_id)
        if row is None:
            return None
        if self.state.role_of(tradebook_id=tradebook_id, user_id=self.bound_user_id) is None:
            return None
        return row

    def has_role(
        self,
        *,
        tradebook_id: UUID,
        user_id: UserId,
        roles: frozenset[TradebookRole] | None = None,
    ) -> bool:
        if self.visible(tradebook_id=tradebook_id) is None:
            return False
        role = self.state.role_of(tradebook_id=tradebook_id, user_id=str(user_id))
        if role is None:
            return False
        return roles is None or role in roles

    def issue_codec(self, *, tradebook_id: UUID) -> tuple[bytes | None, EncryptedFieldCodec]:
        wrapped_key, cipher = self._cipher_resolver.issue()
        codec = EncryptedFieldCodec(cipher=cipher)
        self._codecs[tradebook_id] = codec
        return wrapped_key, codec

    def codec_for(self, *, tradebook_id: UUID) -> EncryptedFieldCodec | None:
        cached = self._codecs.get(tradebook_id)
        if cached is not None:
            return cached
        row = self.visible(tradebook_id=tradebook_id)
        if row is None:
            return None
        cipher = self._cipher_resolver.resolve(wrapped_key=row.wrapped_dek)
        codec = EncryptedFieldCodec(cipher=cipher)
        self._codecs[tradebook_id] = codec
        return codec


class InMemoryUsersRepository(UsersRepository):
    def __init__(self, *, scope: InMemoryJournalScope) -> None:
        self._scope = scope

    def upsert(self, *, user_id: UserId, now: datetime) -> None:
        if str(user_id) != self._scope.bound_user_id:
            raise JournalStoreError(
                "users row violates row-level security policy",
                kind=StoreErrorKind.NOT_FOUND,
            )
        self._scope.state.users.setdefault(str(user_id), now)

    def delete(self, *, user_id: UserId) -> bool:
        """
        Delete user row and cascade owned tradebooks and memberships.

        Args:
            user_id: User identifier; must equal the bound identity to be visible.
        Returns:
            bool: `True` when a row was deleted.
        Assumptions:
            Cascades mirror `ON DELETE CASCADE` foreign keys.
        Raises:
            None.
        Side Effects:
            Mutates transaction-local state.
        """
        state = self._scope.state
        key = str(user_id)
        if key != self._scope.bound_user_id or key not in state.users:
            return False
        del state.users[key]
        owned = [
            tradebook_id for tradebook_id, row in state.tradebooks.items() if row.owner_id == key
        ]
        for tradebook_id in owned:
            state.delete_tradebook(tradebook_id=tradebook_id)
        for member_key in [member_key for member_key in state.members if member_key[1] == key]:
            del state.members[member_key]
        return True


class InMemoryTradebooksRepository(TradebooksRepository):
    """
    InMemoryTradebooksRepository — tradebooks with encrypted titles kept in process memory.

    Related:
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/
        tradebooks_repository.py
      - tests/unit/contexts/journal/application/test_tradebook_use_cases.py
    """

    def __init__(self, *, scope: InMemoryJournalScope) -> None:
        self._scope = scope

    def create(
        self,
        *,
        tradebook_id: UUID,
        owner_id: UserId,
        title: str,
        now: datetime,
    ) -> Tradebook:
        state = self._scope.state
        if str(owner_id) != self._scope.bound_user_id:
            raise JournalStoreError(
                "tradebooks row violates row-level security policy",
                kind=StoreErrorKind.NOT_FOUND,
            )
        if str(owner_id) not in state.users:
            raise JournalStoreError("tradebook owner does not exist", kind=StoreErrorKind.NOT_FOUND)
        if tradebook_id in state.tradebooks:
            raise JournalStoreError("tradebook already exists", kind=StoreErrorKind.CONFLICT)
        wrapped_key, codec = self._scope.issue_codec(tradebook_id=tradebook_id)
        state.tradebooks[tradebook_id] = TradebookRow(
            owner_id=str(owner_id),
            title=codec.encode_string(EncryptedString(title)),
            wrapped_dek=wrapped_key,
            created_at=now,
            updated_at=now,
        )
        return Tradebook(
            tradebook_id=tradebook_id,
            owner_id=owner_id,
            title=title,
            role=TradebookRole.OWNER,
            created_at=now,
            updated_at=now,
            total_trades=0,
        )

    def get(self, *, tradebook_id: UUID, user_id: UserId) -> Tradebook | None:
        if not self._scope.has_role(tradebook_id=tradebook_id, user_id=user_id):
            return None
        return self._to_tradebook(tradebook_id=tradebook_id, user_id=user_id)

    def list_for_member(
        self,
        *,
        user_id: UserId,
        limit: int,
        offset: int,
    ) -> tuple[Tradebook, ...]:
        state = self._scope.state
        visible_ids = sorted(
            tradebook_id
            for tradebook_id in state.tradebooks
            if self._scope.has_role(tradebook_id=tradebook_id, user_id=user_id)
        )
        visible_ids.sort(key=lambda item: state.tradebooks[item].updated_at, reverse=True)
        page = visible_ids[offset : offset + limit]
        return tuple(
            self._to_tradebook(tradebook_id=tradebook_id, user_id=user_id) for tradebook_id in page
        )

    def update_title(
        self,
        *,
        tradebook_id: UUID,
        user_id: UserId,
        title: str,
        now: datetime,
    ) -> bool:
        if not self._scope.has_role(tradebook_id=tradebook_id, user_id=user_id, roles=_WRITE_ROLES):
            return False
        codec = self._scope.codec_for(tradebook_id=tradebook_id)
        if codec is None:
            return False
        row = self._scope.state.tradebooks[tradebook_id]
        row.title = codec.encode_string(EncryptedString(title))
        row.updated_at = now
        return True

    def delete(self, *, tradebook_id: UUID, owner_id: UserId) -> bool:
        row = self._scope.visible(tradebook_id=tradebook_id)
        if row is None or row.owner_id != str(owner_id):
            return False
        if not self._scope.has_role(
            tradebook_id=tradebook_id,
            user_id=owner_id,
            roles=frozenset({TradebookRole.OWNER}),
        ):
            return False
        self._scope.state.delete_tradebook(tradebook_id=tradebook_id)
        return True

    def delete_all_owned(self, *, owner_id: UserId) -> int:
        owned = [
            tradebook_id
            for tradebook_id, row in self._scope.state.tradebooks.items()
            if row.owner_id == str(owner_id)
        ]
        return sum(
            1 for tradebook_id in owned if self.delete(tradebook_id=tradebook_id, owner_id=owner_id)
        )

    def _to_tradebook(self, *, tradebook_id: UUID, user_id: UserId) -> Tradebook:
        state = self._scope.state
        row = state.tradebooks[tradebook_id]
        role = state.role_of(tradebook_id=tradebook_id, user_id=str(user_id))
        codec = self._scope.codec_for(tradebook_id=tradebook_id)
        if codec is None or role is None:
            raise JournalStoreError("InMemoryTradebooksRepository lost visible tradebook")
        total_trades = sum(
            1 for trade in state.trades.values() if trade.tradebook_id == tradebook_id
        )
        return Tradebook(
            tradebook_id=tradebook_id,
            owner_id=UserId(row.owner_id),
            title=codec.decode_string(row.title).value or DEFAULT_TITLE,
            role=role,
            created_at=row.created_at,
            updated_at=row.updated_at,
            total_trades=total_trades,
        )


class InMemoryMembersRepository(MembersRepository):
    def __init__(self, *, scope: InMemoryJournalScope) -> None:
        self._scope = scope

    def add_owner(self, *, tradebook_id: UUID, owner_id: UserId, now: datetime) -> None:
        state = self._scope.state
        row = state.tradebooks.get(tradebook_id)
        if row is None or row.owner_id != str(owner_id):
            raise JournalStoreError(
                "owner membership violates row-level security policy",
                kind=StoreErrorKind.NOT_FOUND,
            )
        key = (tradebook_id, str(owner_id))
        if key in state.members:
            raise JournalStoreError("membership already exists", kind=StoreErrorKind.CONFLICT)
        state.members[key] = (TradebookRole.OWNER, now)

    def grant(
        self,
        *,
        tradebook_id: UUID,
        owner_id: UserId,
        user_id: UserId,
        role: TradebookRole,
        now: datetime,
    ) -> bool:
        state = self._scope.state
        if not self._scope.has_role(
            tradebook_id=tradebook_id,
            user_id=owner_id,
            roles=frozenset({TradebookRole.OWNER}),
        ):
            return False
        if str(user_id) not in state.users:
            raise JournalStoreError("member user does not exist", kind=StoreErrorKind.NOT_FOUND)
        key = (tradebook_id, str(user_id))
        existing = state.members.get(key)
        if existing is not None and existing[0] is TradebookRole.OWNER:
            return False
        created_at = existing[1] if existing is not None else now
        state.members[key] = (role, created_at)
        return True

    def revoke(self, *, tradebook_id: UUID, owner_id: UserId, user_id: UserId) -> bool:
        state = self._scope.state
        if not self._scope.has_role(
            tradebook_id=tradebook_id,
            user_id=owner_id,
            roles=frozenset({TradebookRole.OWNER}),
        ):
            return False
        key = (tradebook_id, str(user_id))
        existing = state.members.get(key)
        if existing is None or existing[0] is TradebookRole.OWNER:
            return False
        del state.members[key]
        return True


class InMemoryTradesRepository(TradesRepository):
    """
    InMemoryTradesRepository — trades and exit legs stored as encrypted rows in memory.

    Related:
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/trades_repository.py
    """

    def __init__(self, *, scope: InMemoryJournalScope) -> None:
        self._scope = scope

    def create(self, *, trade: Trade, user_id: UserId) -> bool:
        if not self._scope.has_role(
            tradebook_id=trade.tradebook_id,
            user_id=user_id,
            roles=_WRITE_ROLES,
        ):
            return False
        if trade.trade_id in self._scope.state.trades:
            raise JournalStoreError("trade already exists", kind=StoreErrorKind.CONFLICT)
        codec = self._scope.codec_for(tradebook_id=trade.tradebook_id)
        if codec is None:
            return False
        self._scope.state.trades[trade.trade_id] = _encode_trade(trade=trade, codec=codec)
        return True

    def get(
        self,
        *,
        tradebook_id: UUID,
        trade_id: UUID,
        user_id: UserId,
        for_update: bool = False,
    ) -> Trade | None:
        # transactions are already serialized by the unit-of-work lock
        if not self._scope.has_role(tradebook_id=tradebook_id, user_id=user_id):
            return None
        row = self._scope.state.trades.get(trade_id)
        if row is None or row.tradebook_id != tradebook_id:
            return None
        return self._to_trade(trade_id=trade_id, row=row)

    def list_for_tradebook(
        self,
        *,
        tradebook_id: UUID,
        user_id: UserId,
        limit: int,
        offset: int,
    ) -> tuple[Trade, ...] | None:
        if not self._scope.has_role(tradebook_id=tradebook_id, user_id=user_id):
            return None
        trades = self._scope.state.trades
        trade_ids = sorted(
            trade_id for trade_id, row in trades.items() if row.tradebook_id == tradebook_id
        )
        trade_ids.sort(key=lambda item: trades[item].entry_date, reverse=True)
        page = trade_ids[offset : offset + limit]
        return tuple(self._to_trade(trade_id=trade_id, row=trades[trade_id]) for trade_id in page)

    def update(self, *, trade: Trade, user_id: UserId) -> bool:
        if not self._scope.has_role(
            tradebook_id=trade.tradebook_id,
            user_id=user_id,
            roles=_WRITE_ROLES,
        ):
            return False
        existing = self._scope.state.trades.get(trade.trade_id)
        if existing is None or existing.tradebook_id != trade.tradebook_id:
            return False
        codec = self._scope.codec_for(tradebook_id=trade.tradebook_id)
        if codec is None:
            return False
        updated = _encode_trade(trade=trade, codec=codec)
        updated.created_at = existing.created_at
        self._scope.state.trades[trade.trade_id] = updated
        return True

    def delete(self, *, tradebook_id: UUID, trade_id: UUID, user_id: UserId) -> bool:
        if not self._scope.has_role(tradebook_id=tradebook_id, user_id=user_id, roles=_WRITE_ROLES):
            return False
        existing = self._scope.state.trades.get(trade_id)
        if existing is None or existing.tradebook_id != tradebook_id:
            return False
        self._scope.state.delete_trade(trade_id=trade_id)
        return True

    def add_exit_leg(self, *, tradebook_id: UUID, exit_leg: ExitLeg, user_id: UserId) -> bool:
        if not self._scope.has_role(tradebook_id=tradebook_id, user_id=user_id, roles=_WRITE_ROLES):
            return False
        trade_row = self._scope.state.trades.get(exit_leg.trade_id)
        if trade_row is None or trade_row.tradebook_id != tradebook_id:
            return False
        if exit_leg.exit_leg_id in self._scope.state.exit_legs:
            raise JournalStoreError("exit leg already exists", kind=StoreErrorKind.CONFLICT)
        codec = self._scope.codec_for(tradebook_id=tradebook_id)
        if codec is None:
            return False
        self._scope.state.exit_legs[exit_leg.exit_leg_id] = ExitLegRow(
            trade_id=exit_leg.trade_id,
            exit_date=exit_leg.exit_date,
            exit_quantity=codec.encode_decimal(EncryptedDecimal(exit_leg.exit_quantity)),
            exit_price=codec.encode_decimal(EncryptedDecimal(exit_leg.exit_price)),
            exit_fees=codec.encode_nullable_decimal(
                EncryptedNullableDecimal.from_optional(exit_leg.exit_fees)
            ),
            created_at=exit_leg.created_at,
        )
        return True

    def _to_trade(self, *, trade_id: UUID, row: TradeRow) -> Trade:
        codec = self._scope.codec_for(tradebook_id=row.tradebook_id)
        if codec is None:
            raise JournalStoreError("InMemoryTradesRepository lost visible tradebook")
        legs = sorted(
            (
                (leg_id, leg)
                for leg_id, leg in self._scope.state.exit_legs.items()
                if leg.trade_id == trade_id
            ),
            key=lambda item: (item[1].exit_date, item[0]),
        )
        return Trade(
            trade_id=trade_id,
            tradebook_id=row.tradebook_id,
            asset_class=AssetClass(row.asset_class),
            purchase_type=PurchaseType(row.purchase_type),
            order_type=OrderType(row.order_type),
            symbol=codec.decode_string(row.symbol).value,
            entry_date=row.entry_date,
            entry_quantity=codec.decode_decimal(row.entry_quantity).value,
            entry_price=codec.decode_decimal(row.entry_price).value,
            entry_fees=codec.decode_nullable_decimal(row.entry_fees).as_optional(),
            created_at=row.created_at,
            updated_at=row.updated_at,
            exit_legs=tuple(
                ExitLeg(
                    exit_leg_id=leg_id,
                    trade_id=trade_id,
                    exit_date=leg.exit_date,
                    exit_quantity=codec.decode_decimal(leg.exit_quantity).value,
                    exit_price=codec.decode_decimal(leg.exit_price).value,
                    exit_fees=codec.decode_nullable_decimal(leg.exit_fees).as_optional(),
                    created_at=leg.created_at,
                )
                for leg_id, leg in legs
            ),
        )


def _encode_trade(*, trade: Trade, codec: EncryptedFieldCodec) -> TradeRow:
    return TradeRow(
        tradebook_id=trade.tradebook_id,
        asset_class=trade.asset_class.value,
        purchase_type=trade.purchase_type.value,
        order_type=trade.order_type.value,
        symbol=codec.encode_string(EncryptedString(trade.symbol)),
        entry_date=trade.entry_date,
        entry_quantity=codec.encode_decimal(EncryptedDecimal(trade.entry_quantity)),
        entry_price=codec.encode_decimal(EncryptedDecimal(trade.entry_price)),
        entry_fees=codec.encode_nullable_decimal(
            EncryptedNullableDecimal.from_optional(trade.entry_fees)
        ),
        created_at=trade.created_at,
        updated_at=trade.updated_at,
    )


__all__ = [
    "InMemoryJournalScope",
    "InMemoryMembersRepository",
    "InMemoryTradebooksRepository",
    "InMemoryTradesRepository",
    "InMemoryUsersRepository",
]
