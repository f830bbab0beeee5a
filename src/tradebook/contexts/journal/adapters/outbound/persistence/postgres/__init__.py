from .members_repository import PostgresMembersRepository
from .session import JournalPostgresSession, PsycopgJournalSession
from .store_errors import classify_store_error, to_journal_store_error
from .tradebook_codecs import TradebookCodecLookup
from .tradebooks_repository import PostgresTradebooksRepository
from .trades_repository import PostgresTradesRepository
from .unit_of_work import (
    JournalConnectionPool,
    PostgresJournalTransaction,
    PsycopgJournalUnitOfWork,
)
from .users_repository import PostgresUsersRepository

__all__ = [
    "JournalConnectionPool",
    "JournalPostgresSession",
    "PostgresJournalTransaction",
    "PostgresMembersRepository",
    "PostgresTradebooksRepository",
    "PostgresTradesRepository",
    "PostgresUsersRepository",
    "PsycopgJournalSession",
    "PsycopgJournalUnitOfWork",
    "TradebookCodecLookup",
    "classify_store_error",
    "to_journal_store_error",
]
