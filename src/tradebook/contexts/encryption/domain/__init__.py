from .errors import (
    AuthenticationError,
    DecimalParseError,
    EncryptionError,
    FieldEncryptionError,
    FormatError,
    KeyServiceError,
    TypeMismatchError,
)
from .value_objects import EncryptedDecimal, EncryptedNullableDecimal, EncryptedString

__all__ = [
    "AuthenticationError",
    "DecimalParseError",
    "EncryptedDecimal",
    "EncryptedNullableDecimal",
    "EncryptedString",
    "EncryptionError",
    "FieldEncryptionError",
    "FormatError",
    "KeyServiceError",
    "TypeMismatchError",
]
