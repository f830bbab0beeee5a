from __future__ import annotations

from enum import Enum


class TradebookRole(str, Enum):
    """
    TradebookRole — membership role of a user on one tradebook.

    Related:
      - alembic/versions/20261001_0001_journal_schema_rls.py
      - src/tradebook/contexts/journal/application/use_cases/share_tradebook.py
    """

    OWNER = "owner"
    EDITOR = "editor"
    READER = "reader"

    @property
    def can_write(self) -> bool:
        return self in (TradebookRole.OWNER, TradebookRole.EDITOR)

    @property
    def can_manage(self) -> bool:
        return self is TradebookRole.OWNER


class AssetClass(str, Enum):
    EQUITIES = "equities"
    FIXED_INCOME = "fixed_income"
    COMMODITIES = "commodities"
    ETFS = "etfs"
    FOREX = "forex"
    DERIVATIVES = "derivatives"
    CRYPTO = "crypto"


class OrderType(str, Enum):
    MARKET = "market"
    LIMIT = "limit"
    STOP = "stop"
    STOP_LIMIT = "stop_limit"


class PurchaseType(str, Enum):
    CASH = "cash"
    MARGIN = "margin"


__all__ = ["AssetClass", "OrderType", "PurchaseType", "TradebookRole"]
