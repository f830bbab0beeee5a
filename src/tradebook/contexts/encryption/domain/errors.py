from __future__ import annotations


class FieldEncryptionError(ValueError):
    """
    FieldEncryptionError — base class of every encryption-context failure.

    Messages are deterministic and never contain plaintext or key material.

    Related:
      - src/tradebook/contexts/encryption/adapters/outbound/crypto/aes_gcm_field_cipher.py
      - src/tradebook/contexts/encryption/application/services/field_codec.py
      - src/tradebook/contexts/encryption/application/services/envelope_key_manager.py
    """


class EncryptionError(FieldEncryptionError):
    """Sealing failed: randomness unavailable, cipher failure or unencodable value."""


class AuthenticationError(FieldEncryptionError):
    """Authentication tag mismatch: tampered, truncated or wrong-key ciphertext."""


class FormatError(FieldEncryptionError):
    """Ciphertext or decrypted plaintext does not have the expected shape."""


class DecimalParseError(FormatError):
    """Decrypted plaintext is not a canonical finite decimal string."""


class TypeMismatchError(FieldEncryptionError):
    """Stored column value is neither bytes-like nor NULL, or NULL where a value is required."""


class KeyServiceError(FieldEncryptionError):
    """Remote key service could not wrap or unwrap a data encryption key."""


__all__ = [
    "AuthenticationError",
    "DecimalParseError",
    "EncryptionError",
    "FieldEncryptionError",
    "FormatError",
    "KeyServiceError",
    "TypeMismatchError",
]
