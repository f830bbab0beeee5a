from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from tradebook.contexts.encryption.application.ports.field_cipher import FieldCipher
from tradebook.contexts.encryption.domain.errors import (
    DecimalParseError,
    EncryptionError,
    FormatError,
    TypeMismatchError,
)
from tradebook.contexts.encryption.domain.value_objects import (
    EncryptedDecimal,
    EncryptedNullableDecimal,
    EncryptedString,
)

log = logging.getLogger(__name__)

_BYTES_LIKE = (bytes, bytearray, memoryview)


class EncryptedFieldCodec:
    """
    EncryptedFieldCodec — explicit encode/decode of encrypted columns at the data-access boundary.

    Absent values (`""` strings, invalid nullable decimals) map to SQL NULL without touching
    the cipher; NULL reads back as absent without a decrypt call.

    Related:
      - src/tradebook/contexts/encryption/domain/value_objects/encrypted_fields.py
      - src/tradebook/contexts/encryption/application/ports/field_cipher.py
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/tradebooks_repository.py
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/trades_repository.py
    """

    def __init__(self, *, cipher: FieldCipher) -> None:
        """
        Bind codec to one cipher.

        Args:
            cipher: Field cipher for the columns handled by this codec.
        Returns:
            None.
        Assumptions:
            Cipher is immutable and shareable across threads.
        Raises:
            ValueError: If cipher is missing.
        Side Effects:
            None.
        """
        if cipher is None:  # type: ignore[truthy-bool]
            raise ValueError("EncryptedFieldCodec requires cipher")
        self._cipher = cipher

    def encode_string(self, field: EncryptedString) -> bytes | None:
        if field.value == "":
            return None
        try:
            plaintext = field.value.encode("utf-8")
        except UnicodeEncodeError as error:
            raise EncryptionError("string field is not encodable as UTF-8") from error
        return self._cipher.encrypt(plaintext=plaintext)

    def decode_string(self, raw: Any) -> EncryptedString:
        """
        Decode one stored string column.

        Args:
            raw: Driver value (`None`, `bytes`, `bytearray`, `memoryview`).
        Returns:
            EncryptedString: Decoded value; `""` for NULL.
        Assumptions:
            NULL short-circuits without a decrypt call.
        Raises:
            TypeMismatchError: If raw value is not bytes-like.
            FormatError: If ciphertext is malformed or plaintext is not UTF-8.
            AuthenticationError: If ciphertext fails authentication.
        Side Effects:
            None.
        """
        if raw is None:
            return EncryptedString("")
        plaintext = self._decrypt_bytes_like(raw=raw, field_kind="string")
        try:
            return EncryptedString(plaintext.decode("utf-8"))
        except UnicodeDecodeError as error:
            raise FormatError("decrypted string field is not valid UTF-8") from error

    def encode_decimal(self, field: EncryptedDecimal) -> bytes:
        return self._cipher.encrypt(plaintext=_decimal_to_text(value=field.value).encode("ascii"))

    def decode_decimal(self, raw: Any) -> EncryptedDecimal:
        """
        Decode one stored required decimal column.

        Args:
            raw: Driver value.
        Returns:
            EncryptedDecimal: Parsed exact decimal.
        Assumptions:
            Required columns are never NULL.
        Raises:
            TypeMismatchError: If raw value is NULL or not bytes-like.
            DecimalParseError: If plaintext is not a finite decimal.
            AuthenticationError: If ciphertext fails authentication.
        Side Effects:
            None.
        """
        if raw is None:
            raise TypeMismatchError("required decimal field is NULL")
        plaintext = self._decrypt_bytes_like(raw=raw, field_kind="decimal")
        return EncryptedDecimal(_parse_decimal(plaintext=plaintext))

    def encode_nullable_decimal(self, field: EncryptedNullableDecimal) -> bytes | None:
        value = field.as_optional()
        if value is None:
            return None
        return self.encode_decimal(EncryptedDecimal(value))

    def decode_nullable_decimal(self, raw: Any) -> EncryptedNullableDecimal:
        if raw is None:
            return EncryptedNullableDecimal(None)
        plaintext = self._decrypt_bytes_like(raw=raw, field_kind="nullable decimal")
        return EncryptedNullableDecimal(_parse_decimal(plaintext=plaintext))

    def _decrypt_bytes_like(self, *, raw: Any, field_kind: str) -> bytes:
        if not isinstance(raw, _BYTES_LIKE):
            log.warning(
                "encrypted column type mismatch: field_kind=%s raw_type=%s",
                field_kind,
                type(raw).__name__,
            )
            raise TypeMismatchError(
                f"{field_kind} field expects bytes, got {type(raw).__name__}"
            )
        return self._cipher.decrypt(blob=bytes(raw))


def _decimal_to_text(*, value: Decimal) -> str:
    if not value.is_finite():
        raise EncryptionError("decimal field must be finite")
    return str(value)


def _parse_decimal(*, plaintext: bytes) -> Decimal:
    try:
        text = plaintext.decode("ascii")
    except UnicodeDecodeError as error:
        raise DecimalParseError("decrypted decimal field is not ASCII") from error
    if not text or text != text.strip() or "_" in text:
        raise DecimalParseError("decrypted decimal field is not canonical")
    try:
        parsed = Decimal(text)
    except InvalidOperation as error:
        raise DecimalParseError("decrypted decimal field is malformed") from error
    if not parsed.is_finite():
        raise DecimalParseError("decrypted decimal field must be finite")
    return parsed


__all__ = ["EncryptedFieldCodec"]
