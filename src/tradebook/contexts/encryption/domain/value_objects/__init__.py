from .encrypted_fields import EncryptedDecimal, EncryptedNullableDecimal, EncryptedString

__all__ = ["EncryptedDecimal", "EncryptedNullableDecimal", "EncryptedString"]
