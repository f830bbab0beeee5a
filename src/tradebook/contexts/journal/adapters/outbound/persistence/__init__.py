from .in_memory import InMemoryJournalUnitOfWork, JournalState
from .postgres import JournalConnectionPool, PsycopgJournalUnitOfWork

__all__ = [
    "InMemoryJournalUnitOfWork",
    "JournalConnectionPool",
    "JournalState",
    "PsycopgJournalUnitOfWork",
]
