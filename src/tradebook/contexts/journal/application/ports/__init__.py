from .clock import JournalClock
from .repositories import MembersRepository, TradebooksRepository, TradesRepository, UsersRepository
from .store_errors import (
    JournalStoreError,
    SecurityContextError,
    StoreErrorKind,
    StoreUnavailableError,
)
from .unit_of_work import JournalTransaction, JournalUnitOfWork

__all__ = [
    "JournalClock",
    "JournalStoreError",
    "JournalTransaction",
    "JournalUnitOfWork",
    "MembersRepository",
    "SecurityContextError",
    "StoreErrorKind",
    "StoreUnavailableError",
    "TradebooksRepository",
    "TradesRepository",
    "UsersRepository",
]
