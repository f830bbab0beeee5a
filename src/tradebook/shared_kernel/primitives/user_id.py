from __future__ import annotations

from dataclasses import dataclass

_MAX_USER_ID_LENGTH = 255


@dataclass(frozen=True, slots=True)
class UserId:
    """
    UserId — opaque identifier of an authenticated user issued by the identity provider.

    Rules:
    - normalization: strip
    - invariant: non-empty, at most 255 characters, no control characters

    Related:
      - src/tradebook/contexts/identity/application/ports/current_user.py
      - src/tradebook/contexts/journal/application/ports/unit_of_work.py
      - alembic/versions/20261001_0001_journal_schema_rls.py
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise ValueError("UserId must be a string")
        normalized = self.value.strip()
        if not normalized:
            raise ValueError("UserId must be non-empty after normalization")
        if len(normalized) > _MAX_USER_ID_LENGTH:
            raise ValueError(f"UserId must be <= {_MAX_USER_ID_LENGTH} characters")
        if any(ord(char) < 32 for char in normalized):
            raise ValueError("UserId must not contain control characters")
        object.__setattr__(self, "value", normalized)

    def __str__(self) -> str:
        return self.value
