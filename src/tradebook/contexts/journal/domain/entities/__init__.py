from .trade import MAX_SYMBOL_LENGTH, ExitLeg, Trade
from .tradebook import (
    DEFAULT_TITLE,
    MAX_TITLE_LENGTH,
    Tradebook,
    TradebookMember,
    normalize_title,
)

__all__ = [
    "DEFAULT_TITLE",
    "MAX_SYMBOL_LENGTH",
    "MAX_TITLE_LENGTH",
    "ExitLeg",
    "Trade",
    "Tradebook",
    "TradebookMember",
    "normalize_title",
]
