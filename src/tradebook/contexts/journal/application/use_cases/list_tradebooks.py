from __future__ import annotations

from tradebook.contexts.journal.application.ports.unit_of_work import JournalUnitOfWork
from tradebook.contexts.journal.application.use_cases._shared import PageRequest
from tradebook.contexts.journal.application.use_cases.errors import map_journal_exception
from tradebook.contexts.journal.domain.entities import Tradebook
from tradebook.platform.errors import TradebookError
from tradebook.shared_kernel.primitives import UserId


class ListTradebooksUseCase:
    """
    ListTradebooksUseCase — page through tradebooks the caller is a member of.

    Related:
      - src/tradebook/contexts/journal/application/use_cases/_shared.py
      - src/tradebook/contexts/journal/adapters/inbound/api/routes/tradebooks.py
    """

    def __init__(self, *, unit_of_work: JournalUnitOfWork) -> None:
        if unit_of_work is None:  # type: ignore[truthy-bool]
            raise ValueError("ListTradebooksUseCase requires unit_of_work")
        self._unit_of_work = unit_of_work

    def execute(self, *, user_id: UserId, page: PageRequest) -> tuple[Tradebook, ...]:
        """
        List one page of tradebooks ordered by most recent update.

        Args:
            user_id: Authenticated caller.
            page: Normalized page window.
        Returns:
            tuple[Tradebook, ...]: Page rows; empty tuple when nothing is visible.
        Assumptions:
            Owner, editor and reader memberships are all listed.
        Raises:
            TradebookError: On storage failure.
        Side Effects:
            Reads storage.
        """
        try:
            with self._unit_of_work.begin(user_id=user_id) as transaction:
                return transaction.tradebooks.list_for_member(
                    user_id=user_id,
                    limit=page.limit,
                    offset=page.offset,
                )
        except TradebookError:
            raise
        except Exception as error:  # noqa: BLE001
            raise map_journal_exception(error=error, operation="list_tradebooks") from error
