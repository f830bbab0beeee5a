from .repositories import (
    InMemoryJournalScope,
    InMemoryMembersRepository,
    InMemoryTradebooksRepository,
    InMemoryTradesRepository,
    InMemoryUsersRepository,
)
from .state import ExitLegRow, JournalState, TradebookRow, TradeRow
from .unit_of_work import InMemoryJournalTransaction, InMemoryJournalUnitOfWork

__all__ = [
    "ExitLegRow",
    "InMemoryJournalScope",
    "InMemoryJournalTransaction",
    "InMemoryJournalUnitOfWork",
    "InMemoryMembersRepository",
    "InMemoryTradebooksRepository",
    "InMemoryTradesRepository",
    "InMemoryUsersRepository",
    "JournalState",
    "TradeRow",
    "TradebookRow",
]
