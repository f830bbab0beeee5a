from .entities import ExitLeg, Trade, Tradebook, TradebookMember
from .value_objects import AssetClass, OrderType, PurchaseType, TradebookRole

__all__ = [
    "AssetClass",
    "ExitLeg",
    "OrderType",
    "PurchaseType",
    "Trade",
    "Tradebook",
    "TradebookMember",
    "TradebookRole",
]
