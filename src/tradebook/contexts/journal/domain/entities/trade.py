from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from tradebook.contexts.journal.domain.value_objects import AssetClass, OrderType, PurchaseType

from ._validation import ensure_non_negative_decimal, ensure_positive_decimal, ensure_utc_datetime

MAX_SYMBOL_LENGTH = 32


@dataclass(frozen=True, slots=True)
class ExitLeg:
    """
    ExitLeg — one (partial) exit of a trade position.

    Related:
      - src/tradebook/contexts/journal/application/use_cases/record_exit_leg.py
      - alembic/versions/20261001_0001_journal_schema_rls.py
    """

    exit_leg_id: UUID
    trade_id: UUID
    exit_date: datetime
    exit_quantity: Decimal
    exit_price: Decimal
    exit_fees: Decimal | None
    created_at: datetime

    def __post_init__(self) -> None:
        ensure_utc_datetime(name="exit_date", value=self.exit_date)
        ensure_utc_datetime(name="created_at", value=self.created_at)
        ensure_positive_decimal(name="exit_quantity", value=self.exit_quantity)
        ensure_non_negative_decimal(name="exit_price", value=self.exit_price)
        ensure_non_negative_decimal(name="exit_fees", value=self.exit_fees)


@dataclass(frozen=True, slots=True)
class Trade:
    """
    Trade — position entry with its exit legs; symbol and money fields are encrypted at rest.

    Related:
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/trades_repository.py
      - src/tradebook/contexts/encryption/application/services/field_codec.py
      - alembic/versions/20261001_0001_journal_schema_rls.py
    """

    trade_id: UUID
    tradebook_id: UUID
    asset_class: AssetClass
    purchase_type: PurchaseType
    order_type: OrderType
    symbol: str
    entry_date: datetime
    entry_quantity: Decimal
    entry_price: Decimal
    entry_fees: Decimal | None
    created_at: datetime
    updated_at: datetime
    exit_legs: tuple[ExitLeg, ...] = ()

    def __post_init__(self) -> None:
        """
        Validate trade invariants and normalize symbol.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Symbol is stored upper-case.
        Raises:
            ValueError: If enums, symbol, amounts, timestamps or exit legs are invalid.
        Side Effects:
            Replaces `symbol` with normalized value and `exit_legs` with a tuple.
        """
        if not isinstance(self.asset_class, AssetClass):
            raise ValueError("Trade.asset_class must be AssetClass")
        if not isinstance(self.purchase_type, PurchaseType):
            raise ValueError("Trade.purchase_type must be PurchaseType")
        if not isinstance(self.order_type, OrderType):
            raise ValueError("Trade.order_type must be OrderType")

        normalized_symbol = self.symbol.strip().upper()
        if not normalized_symbol:
            raise ValueError("Trade.symbol must be non-empty")
        if len(normalized_symbol) > MAX_SYMBOL_LENGTH:
            raise ValueError(f"Trade.symbol must be <= {MAX_SYMBOL_LENGTH} characters")
        object.__setattr__(self, "symbol", normalized_symbol)

        ensure_positive_decimal(name="entry_quantity", value=self.entry_quantity)
        ensure_non_negative_decimal(name="entry_price", value=self.entry_price)
        ensure_non_negative_decimal(name="entry_fees", value=self.entry_fees)
        ensure_utc_datetime(name="entry_date", value=self.entry_date)
        ensure_utc_datetime(name="created_at", value=self.created_at)
        ensure_utc_datetime(name="updated_at", value=self.updated_at)
        if self.updated_at < self.created_at:
            raise ValueError("Trade.updated_at cannot be before created_at")

        legs = tuple(self.exit_legs)
        for leg in legs:
            if leg.trade_id != self.trade_id:
                raise ValueError("Trade.exit_legs must belong to this trade")
        object.__setattr__(self, "exit_legs", legs)

    @property
    def exited_quantity(self) -> Decimal:
        return sum((leg.exit_quantity for leg in self.exit_legs), Decimal("0"))

    @property
    def open_quantity(self) -> Decimal:
        return self.entry_quantity - self.exited_quantity
