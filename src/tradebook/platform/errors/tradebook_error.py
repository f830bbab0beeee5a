from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Sequence

_RETRYABLE_CODES = frozenset({"service_unavailable"})


@dataclass(eq=False)
class TradebookError(Exception):
    """
    TradebookError — error contract crossing the use-case/API boundary.

    `code` is a stable machine token mapped to HTTP status by the API layer; `details`
    is frozen into sorted JSON-compatible values at construction. Fields are not
    reassigned after construction. Not frozen: raising through context managers writes
    `__traceback__` and `__context__`.

    Related:
      - apps/api/common/errors.py
      - src/tradebook/contexts/journal/application/use_cases/errors.py
      - src/tradebook/contexts/identity/adapters/inbound/api/deps/current_user.py
    """

    code: str
    message: str
    details: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        """
        Normalize code/message and freeze details.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Details never carry plaintext journal values or key material.
        Raises:
            ValueError: If `code` or `message` are blank.
            TypeError: If `details` is provided but is not a mapping.
        Side Effects:
            Replaces fields with normalized copies.
        """
        code = self.code.strip()
        message = self.message.strip()
        if not code:
            raise ValueError("TradebookError.code must be non-empty")
        if not message:
            raise ValueError("TradebookError.message must be non-empty")
        self.code = code
        self.message = message

        if self.details is None:
            return
        if not isinstance(self.details, Mapping):
            raise TypeError("TradebookError.details must be a mapping when provided")
        self.details = _to_json_value(value=self.details)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    @property
    def retryable(self) -> bool:
        """Whether the caller may retry unchanged (transient storage or key-service outage)."""
        return self.code in _RETRYABLE_CODES

    def to_payload(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": dict(self.details or {}),
            }
        }


def _to_json_value(*, value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            str(key): _to_json_value(value=item)
            for key, item in sorted(value.items(), key=lambda pair: str(pair[0]))
        }
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [_to_json_value(value=item) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


__all__ = ["TradebookError"]
