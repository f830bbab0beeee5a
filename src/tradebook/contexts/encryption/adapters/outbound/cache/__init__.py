from .expiring_dek_cache import ExpiringDekCache

__all__ = ["ExpiringDekCache"]
