from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TypeVar
from uuid import UUID

from tradebook.contexts.journal.domain.entities import ExitLeg, Trade
from tradebook.contexts.journal.domain.value_objects import AssetClass, OrderType, PurchaseType

_EnumT = TypeVar("_EnumT", bound=Enum)


@dataclass(frozen=True, slots=True)
class TradeInput:
    """
    TradeInput — raw trade entry fields accepted by create/update trade use-cases.

    Related:
      - src/tradebook/contexts/journal/application/use_cases/create_trade.py
      - src/tradebook/contexts/journal/application/use_cases/update_trade.py
      - src/tradebook/contexts/journal/adapters/inbound/api/routes/trades.py
    """

    asset_class: str
    purchase_type: str
    order_type: str
    symbol: str
    entry_date: datetime
    entry_quantity: Decimal
    entry_price: Decimal
    entry_fees: Decimal | None = None

    def to_trade(
        self,
        *,
        trade_id: UUID,
        tradebook_id: UUID,
        created_at: datetime,
        updated_at: datetime,
        exit_legs: tuple[ExitLeg, ...] = (),
    ) -> Trade:
        """
        Build validated domain trade.

        Args:
            trade_id: Trade identifier.
            tradebook_id: Owning tradebook.
            created_at: Creation timestamp.
            updated_at: Last update timestamp.
            exit_legs: Existing exit legs to carry over.
        Returns:
            Trade: Domain snapshot.
        Assumptions:
            Enum values are lower-case wire tokens.
        Raises:
            ValueError: If any field violates trade invariants.
        Side Effects:
            None.
        """
        return Trade(
            trade_id=trade_id,
            tradebook_id=tradebook_id,
            asset_class=_parse_enum(AssetClass, value=self.asset_class, name="asset_class"),
            purchase_type=_parse_enum(
                PurchaseType, value=self.purchase_type, name="purchase_type"
            ),
            order_type=_parse_enum(OrderType, value=self.order_type, name="order_type"),
            symbol=self.symbol,
            entry_date=self.entry_date,
            entry_quantity=self.entry_quantity,
            entry_price=self.entry_price,
            entry_fees=self.entry_fees,
            created_at=created_at,
            updated_at=updated_at,
            exit_legs=exit_legs,
        )


def _parse_enum(enum_type: type[_EnumT], *, value: str, name: str) -> _EnumT:
    try:
        return enum_type(value.strip().lower())
    except (AttributeError, ValueError) as error:
        raise ValueError(f"{name} has unsupported value {value!r}") from error
