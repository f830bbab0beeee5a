from .ports import DekCache, DekCacheClock, FieldCipher, KeyService, TradebookCipherResolver
from .services import EncryptedFieldCodec, EnvelopeKeyManager

__all__ = [
    "DekCache",
    "DekCacheClock",
    "EncryptedFieldCodec",
    "EnvelopeKeyManager",
    "FieldCipher",
    "KeyService",
    "TradebookCipherResolver",
]
