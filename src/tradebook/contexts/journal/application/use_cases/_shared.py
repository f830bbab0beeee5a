from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from tradebook.contexts.journal.application.use_cases.errors import validation_error
from tradebook.platform.errors import TradebookError

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100


@dataclass(frozen=True, slots=True)
class PageRequest:
    """
    PageRequest — normalized page/limit window for list use-cases.

    Invalid page falls back to 1, invalid limit to 20, and limit is capped at 100.
    """

    page: int = 1
    limit: int = DEFAULT_PAGE_LIMIT

    @classmethod
    def from_raw(cls, *, page: int | None, limit: int | None) -> PageRequest:
        normalized_page = page if page is not None and page >= 1 else 1
        normalized_limit = limit if limit is not None and limit >= 1 else DEFAULT_PAGE_LIMIT
        return cls(page=normalized_page, limit=min(normalized_limit, MAX_PAGE_LIMIT))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def utc_now(*, value: datetime) -> datetime:
    """
    Validate that clock value is timezone-aware UTC and return it unchanged.

    Args:
        value: Datetime value from clock port.
    Returns:
        datetime: Same validated datetime object.
    Assumptions:
        Journal timestamps are stored in UTC only.
    Raises:
        TradebookError: If clock returned a naive or non-UTC datetime.
    Side Effects:
        None.
    """
    offset = value.utcoffset()
    if value.tzinfo is None or offset is None or offset.total_seconds() != 0:
        raise TradebookError(
            code="unexpected_error",
            message="Unexpected journal operation error",
        )
    return value


def invalid_input(*, error: ValueError) -> TradebookError:
    return validation_error(message=str(error))
