from .persistence import (
    InMemoryJournalUnitOfWork,
    JournalConnectionPool,
    JournalState,
    PsycopgJournalUnitOfWork,
)

__all__ = [
    "InMemoryJournalUnitOfWork",
    "JournalConnectionPool",
    "JournalState",
    "PsycopgJournalUnitOfWork",
]
