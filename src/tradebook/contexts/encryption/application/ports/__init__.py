from .cipher_resolver import TradebookCipherResolver
from .dek_cache import DekCache, DekCacheClock
from .field_cipher import FieldCipher
from .key_service import KeyService

__all__ = [
    "DekCache",
    "DekCacheClock",
    "FieldCipher",
    "KeyService",
    "TradebookCipherResolver",
]
