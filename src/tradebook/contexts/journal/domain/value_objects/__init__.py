from .enums import AssetClass, OrderType, PurchaseType, TradebookRole

__all__ = ["AssetClass", "OrderType", "PurchaseType", "TradebookRole"]
