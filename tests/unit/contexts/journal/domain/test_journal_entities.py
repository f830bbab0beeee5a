from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from tradebook.contexts.journal.domain.entities import (
    DEFAULT_TITLE,
    MAX_TITLE_LENGTH,
    ExitLeg,
    Trade,
    Tradebook,
    normalize_title,
)
from tradebook.contexts.journal.domain.value_objects import (
    AssetClass,
    OrderType,
    PurchaseType,
    TradebookRole,
)
from tradebook.shared_kernel.primitives import UserId

_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
_TRADEBOOK_ID = UUID("00000000-0000-0000-0000-000000000001")
_TRADE_ID = UUID("00000000-0000-0000-0000-000000000002")


def _trade(**overrides: object) -> Trade:
    values: dict[str, object] = {
        "trade_id": _TRADE_ID,
        "tradebook_id": _TRADEBOOK_ID,
        "asset_class": AssetClass.EQUITIES,
        "purchase_type": PurchaseType.CASH,
        "order_type": OrderType.LIMIT,
        "symbol": " aapl ",
        "entry_date": _NOW,
        "entry_quantity": Decimal("10"),
        "entry_price": Decimal("100.00"),
        "entry_fees": None,
        "created_at": _NOW,
        "updated_at": _NOW,
    }
    values.update(overrides)
    return Trade(**values)  # type: ignore[arg-type]


def _exit_leg(quantity: str) -> ExitLeg:
    return ExitLeg(
        exit_leg_id=UUID(int=int(Decimal(quantity) * 100)),
        trade_id=_TRADE_ID,
        exit_date=_NOW,
        exit_quantity=Decimal(quantity),
        exit_price=Decimal("110"),
        exit_fees=Decimal("0"),
        created_at=_NOW,
    )


def test_normalize_title_defaults_blank_and_enforces_length() -> None:
    """
    Verify tradebook title normalization rules.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Blank and missing titles map to default title.
    Raises:
        AssertionError: If normalization result differs.
    Side Effects:
        None.
    """
    assert normalize_title(title=None) == DEFAULT_TITLE
    assert normalize_title(title="   ") == DEFAULT_TITLE
    assert normalize_title(title="  Swing ") == "Swing"
    assert normalize_title(title="x" * MAX_TITLE_LENGTH) == "x" * MAX_TITLE_LENGTH
    with pytest.raises(ValueError, match="<= 200 characters"):
        normalize_title(title="x" * (MAX_TITLE_LENGTH + 1))


def test_tradebook_rejects_naive_and_inverted_timestamps() -> None:
    base = {
        "tradebook_id": _TRADEBOOK_ID,
        "owner_id": UserId("user-a"),
        "title": "Journal",
        "role": TradebookRole.OWNER,
        "created_at": _NOW,
        "updated_at": _NOW,
    }

    with pytest.raises(ValueError, match="timezone-aware"):
        Tradebook(**{**base, "created_at": _NOW.replace(tzinfo=None)})  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="before created_at"):
        Tradebook(**{**base, "updated_at": _NOW - timedelta(seconds=1)})  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="total_trades"):
        Tradebook(**{**base, "total_trades": -1})  # type: ignore[arg-type]


def test_trade_normalizes_symbol_and_computes_open_quantity() -> None:
    trade = _trade(exit_legs=[_exit_leg("2.5"), _exit_leg("3")])

    assert trade.symbol == "AAPL"
    assert isinstance(trade.exit_legs, tuple)
    assert trade.exited_quantity == Decimal("5.5")
    assert trade.open_quantity == Decimal("4.5")


def test_trade_validates_amounts_and_symbol() -> None:
    """
    Verify trade invariants on quantity, price, fees and symbol.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Price and fees may be zero; quantity must be strictly positive.
    Raises:
        AssertionError: If invalid trades are accepted.
    Side Effects:
        None.
    """
    assert _trade(entry_price=Decimal("0"), entry_fees=Decimal("0")).entry_fees == Decimal("0")

    with pytest.raises(ValueError, match="entry_quantity must be > 0"):
        _trade(entry_quantity=Decimal("0"))
    with pytest.raises(ValueError, match="entry_price must be >= 0"):
        _trade(entry_price=Decimal("-1"))
    with pytest.raises(ValueError, match="entry_fees must be finite"):
        _trade(entry_fees=Decimal("NaN"))
    with pytest.raises(ValueError, match="symbol must be non-empty"):
        _trade(symbol="  ")
    with pytest.raises(ValueError, match="<= 32 characters"):
        _trade(symbol="X" * 33)


def test_trade_rejects_exit_legs_of_other_trades() -> None:
    foreign_leg = ExitLeg(
        exit_leg_id=UUID(int=99),
        trade_id=UUID(int=7),
        exit_date=_NOW,
        exit_quantity=Decimal("1"),
        exit_price=Decimal("1"),
        exit_fees=None,
        created_at=_NOW,
    )

    with pytest.raises(ValueError, match="must belong to this trade"):
        _trade(exit_legs=(foreign_leg,))


def test_tradebook_role_permissions() -> None:
    assert TradebookRole.OWNER.can_write and TradebookRole.OWNER.can_manage
    assert TradebookRole.EDITOR.can_write and not TradebookRole.EDITOR.can_manage
    assert not TradebookRole.READER.can_write
