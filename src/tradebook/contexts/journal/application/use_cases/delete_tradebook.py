from __future__ import annotations

import logging
from uuid import UUID

from tradebook.contexts.journal.application.ports.unit_of_work import JournalUnitOfWork
from tradebook.contexts.journal.application.use_cases.errors import (
    TRADEBOOK_NOT_FOUND_MESSAGE,
    map_journal_exception,
    tradebook_not_found,
)
from tradebook.platform.errors import TradebookError
from tradebook.shared_kernel.primitives import UserId

log = logging.getLogger(__name__)


class DeleteTradebookUseCase:
    """
    DeleteTradebookUseCase — delete one tradebook with its trades; owner only.

    Related:
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/tradebooks_repository.py
      - src/tradebook/contexts/journal/adapters/inbound/api/routes/tradebooks.py
    """

    def __init__(self, *, unit_of_work: JournalUnitOfWork) -> None:
        if unit_of_work is None:  # type: ignore[truthy-bool]
            raise ValueError("DeleteTradebookUseCase requires unit_of_work")
        self._unit_of_work = unit_of_work

    def execute(self, *, user_id: UserId, tradebook_id: UUID) -> None:
        try:
            with self._unit_of_work.begin(user_id=user_id) as transaction:
                deleted = transaction.tradebooks.delete(tradebook_id=tradebook_id, owner_id=user_id)
                if not deleted:
                    raise tradebook_not_found(tradebook_id=tradebook_id)
        except TradebookError:
            raise
        except Exception as error:  # noqa: BLE001
            raise map_journal_exception(error=error, operation="delete_tradebook") from error
        log.info("tradebook deleted: tradebook_id=%s", tradebook_id)


class DeleteAllTradebooksUseCase:
    """
    DeleteAllTradebooksUseCase — delete every tradebook the caller owns.

    Shared tradebooks where the caller is editor or reader are untouched.
    """

    def __init__(self, *, unit_of_work: JournalUnitOfWork) -> None:
        if unit_of_work is None:  # type: ignore[truthy-bool]
            raise ValueError("DeleteAllTradebooksUseCase requires unit_of_work")
        self._unit_of_work = unit_of_work

    def execute(self, *, user_id: UserId) -> int:
        """
        Delete all owned tradebooks.

        Args:
            user_id: Authenticated caller.
        Returns:
            int: Number of deleted tradebooks.
        Assumptions:
            Zero owned tradebooks is reported as not found.
        Raises:
            TradebookError: When nothing was deleted or storage fails.
        Side Effects:
            Deletes rows (cascading to members, trades, exit legs).
        """
        try:
            with self._unit_of_work.begin(user_id=user_id) as transaction:
                deleted = transaction.tradebooks.delete_all_owned(owner_id=user_id)
                if deleted == 0:
                    raise TradebookError(code="not_found", message=TRADEBOOK_NOT_FOUND_MESSAGE)
        except TradebookError:
            raise
        except Exception as error:  # noqa: BLE001
            raise map_journal_exception(error=error, operation="delete_all_tradebooks") from error
        log.info("tradebooks deleted: count=%s", deleted)
        return deleted
