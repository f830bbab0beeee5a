from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class EncryptedString:
    """
    EncryptedString — string field stored encrypted at rest.

    The empty string is the "absent" value and is stored as SQL NULL.

    Related:
      - src/tradebook/contexts/encryption/application/services/field_codec.py
    """

    value: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise TypeError("EncryptedString.value must be str")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class EncryptedDecimal:
    """
    EncryptedDecimal — required exact decimal stored encrypted at rest.

    Related:
      - src/tradebook/contexts/encryption/application/services/field_codec.py
    """

    value: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.value, Decimal):
            raise TypeError("EncryptedDecimal.value must be Decimal")


@dataclass(frozen=True, slots=True)
class EncryptedNullableDecimal:
    """
    EncryptedNullableDecimal — optional exact decimal stored encrypted at rest.

    `valid == False` means absent and is stored as SQL NULL; absent never reads back as zero.
    """

    value: Decimal | None = None

    def __post_init__(self) -> None:
        if self.value is not None and not isinstance(self.value, Decimal):
            raise TypeError("EncryptedNullableDecimal.value must be Decimal or None")

    @property
    def valid(self) -> bool:
        return self.value is not None

    @classmethod
    def from_optional(cls, value: Decimal | None) -> EncryptedNullableDecimal:
        return cls(value=value)

    def as_optional(self) -> Decimal | None:
        return self.value
