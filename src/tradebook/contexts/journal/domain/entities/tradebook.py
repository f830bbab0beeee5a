from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from tradebook.contexts.journal.domain.value_objects import TradebookRole
from tradebook.shared_kernel.primitives import UserId

from ._validation import ensure_utc_datetime

MAX_TITLE_LENGTH = 200
DEFAULT_TITLE = "Untitled Tradebook"


def normalize_title(*, title: str | None) -> str:
    """
    Normalize user-provided tradebook title.

    Args:
        title: Raw title; `None` or blank means default title.
    Returns:
        str: Stripped non-empty title.
    Assumptions:
        Length limit counts characters, not encoded bytes.
    Raises:
        ValueError: If title exceeds `MAX_TITLE_LENGTH`.
    Side Effects:
        None.
    """
    if title is None:
        return DEFAULT_TITLE
    normalized = title.strip()
    if not normalized:
        return DEFAULT_TITLE
    if len(normalized) > MAX_TITLE_LENGTH:
        raise ValueError(f"Tradebook.title must be <= {MAX_TITLE_LENGTH} characters")
    return normalized


@dataclass(frozen=True, slots=True)
class Tradebook:
    """
    Tradebook — journal container as seen by one member (`role` is the caller's role).

    Related:
      - src/tradebook/contexts/journal/application/ports/repositories.py
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/tradebooks_repository.py
      - alembic/versions/20261001_0001_journal_schema_rls.py
    """

    tradebook_id: UUID
    owner_id: UserId
    title: str
    role: TradebookRole
    created_at: datetime
    updated_at: datetime
    total_trades: int = 0

    def __post_init__(self) -> None:
        """
        Validate tradebook snapshot invariants.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Stored titles were normalized on write.
        Raises:
            ValueError: If title, counters or timestamps are invalid.
        Side Effects:
            None.
        """
        if not self.title or len(self.title) > MAX_TITLE_LENGTH:
            raise ValueError(f"Tradebook.title must be 1..{MAX_TITLE_LENGTH} characters")
        if not isinstance(self.role, TradebookRole):
            raise ValueError("Tradebook.role must be TradebookRole")
        if self.total_trades < 0:
            raise ValueError("Tradebook.total_trades must be >= 0")
        ensure_utc_datetime(name="created_at", value=self.created_at)
        ensure_utc_datetime(name="updated_at", value=self.updated_at)
        if self.updated_at < self.created_at:
            raise ValueError("Tradebook.updated_at cannot be before created_at")


@dataclass(frozen=True, slots=True)
class TradebookMember:
    """TradebookMember — one (tradebook, user, role) membership row."""

    tradebook_id: UUID
    user_id: UserId
    role: TradebookRole
    created_at: datetime

    def __post_init__(self) -> None:
        if not isinstance(self.role, TradebookRole):
            raise ValueError("TradebookMember.role must be TradebookRole")
        ensure_utc_datetime(name="created_at", value=self.created_at)
