from __future__ import annotations

from uuid import UUID

from tradebook.contexts.journal.application.ports.clock import JournalClock
from tradebook.contexts.journal.application.ports.unit_of_work import JournalUnitOfWork
from tradebook.contexts.journal.application.use_cases._shared import invalid_input, utc_now
from tradebook.contexts.journal.application.use_cases.errors import (
    map_journal_exception,
    tradebook_not_found,
)
from tradebook.contexts.journal.domain.entities import Tradebook, normalize_title
from tradebook.platform.errors import TradebookError
from tradebook.shared_kernel.primitives import UserId


class UpdateTradebookUseCase:
    """
    UpdateTradebookUseCase — rename tradebook; owner or editor only.

    Related:
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/tradebooks_repository.py
      - src/tradebook/contexts/journal/adapters/inbound/api/routes/tradebooks.py
    """

    def __init__(self, *, unit_of_work: JournalUnitOfWork, clock: JournalClock) -> None:
        if unit_of_work is None:  # type: ignore[truthy-bool]
            raise ValueError("UpdateTradebookUseCase requires unit_of_work")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("UpdateTradebookUseCase requires clock")
        self._unit_of_work = unit_of_work
        self._clock = clock

    def execute(self, *, user_id: UserId, tradebook_id: UUID, title: str) -> Tradebook:
        """
        Update title under role predicate and return refreshed snapshot.

        Args:
            user_id: Authenticated caller.
            tradebook_id: Target tradebook.
            title: New title; blank is rejected.
        Returns:
            Tradebook: Updated snapshot.
        Assumptions:
            Readers and non-members get the same not-found response.
        Raises:
            TradebookError: On validation, missing/forbidden tradebook or storage failure.
        Side Effects:
            Updates one row.
        """
        if not title or not title.strip():
            raise TradebookError(code="validation_error", message="title must be non-empty")
        try:
            normalized_title = normalize_title(title=title)
        except ValueError as error:
            raise invalid_input(error=error) from error

        try:
            now = utc_now(value=self._clock.now())
            with self._unit_of_work.begin(user_id=user_id) as transaction:
                changed = transaction.tradebooks.update_title(
                    tradebook_id=tradebook_id,
                    user_id=user_id,
                    title=normalized_title,
                    now=now,
                )
                if not changed:
                    raise tradebook_not_found(tradebook_id=tradebook_id)
                tradebook = transaction.tradebooks.get(tradebook_id=tradebook_id, user_id=user_id)
                if tradebook is None:
                    raise tradebook_not_found(tradebook_id=tradebook_id)
        except TradebookError:
            raise
        except Exception as error:  # noqa: BLE001
            raise map_journal_exception(error=error, operation="update_tradebook") from error
        return tradebook
