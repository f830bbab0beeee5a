from .journal_storage import JournalStorageConfig, load_journal_storage_config

__all__ = ["JournalStorageConfig", "load_journal_storage_config"]
