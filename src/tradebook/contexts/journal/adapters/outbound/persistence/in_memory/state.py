from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from tradebook.contexts.journal.domain.value_objects import TradebookRole


@dataclass(slots=True)
class TradebookRow:
    """Stored tradebook row; `title` holds the encrypted blob."""

    owner_id: str
    title: bytes | None
    wrapped_dek: bytes | None
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class TradeRow:
    """Stored trade row; symbol and money columns hold encrypted blobs."""

    tradebook_id: UUID
    asset_class: str
    purchase_type: str
    order_type: str
    symbol: bytes | None
    entry_date: datetime
    entry_quantity: bytes
    entry_price: bytes
    entry_fees: bytes | None
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class ExitLegRow:
    trade_id: UUID
    exit_date: datetime
    exit_quantity: bytes
    exit_price: bytes
    exit_fees: bytes | None
    created_at: datetime


@dataclass(slots=True)
class JournalState:
    """
    JournalState — committed in-memory journal tables.

    Transactions work on a deep copy and swap it in on commit.
    """

    users: dict[str, datetime] = field(default_factory=dict)
    tradebooks: dict[UUID, TradebookRow] = field(default_factory=dict)
    members: dict[tuple[UUID, str], tuple[TradebookRole, datetime]] = field(default_factory=dict)
    trades: dict[UUID, TradeRow] = field(default_factory=dict)
    exit_legs: dict[UUID, ExitLegRow] = field(default_factory=dict)

    def role_of(self, *, tradebook_id: UUID, user_id: str) -> TradebookRole | None:
        member = self.members.get((tradebook_id, user_id))
        if member is None:
            return None
        return member[0]

    def delete_tradebook(self, *, tradebook_id: UUID) -> None:
        """Remove tradebook with memberships, trades and exit legs."""
        self.tradebooks.pop(tradebook_id, None)
        for key in [key for key in self.members if key[0] == tradebook_id]:
            del self.members[key]
        trade_ids = [
            trade_id for trade_id, row in self.trades.items() if row.tradebook_id == tradebook_id
        ]
        for trade_id in trade_ids:
            self.delete_trade(trade_id=trade_id)

    def delete_trade(self, *, trade_id: UUID) -> None:
        self.trades.pop(trade_id, None)
        for leg_id in [
            leg_id for leg_id, leg in self.exit_legs.items() if leg.trade_id == trade_id
        ]:
            del self.exit_legs[leg_id]


__all__ = ["ExitLegRow", "JournalState", "TradeRow", "TradebookRow"]
