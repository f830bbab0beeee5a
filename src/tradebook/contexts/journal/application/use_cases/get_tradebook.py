from __future__ import annotations

from uuid import UUID

from tradebook.contexts.journal.application.ports.unit_of_work import JournalUnitOfWork
from tradebook.contexts.journal.application.use_cases.errors import (
    map_journal_exception,
    tradebook_not_found,
)
from tradebook.contexts.journal.domain.entities import Tradebook
from tradebook.platform.errors import TradebookError
from tradebook.shared_kernel.primitives import UserId


class GetTradebookUseCase:
    """
    GetTradebookUseCase — read one tradebook visible to the caller.

    Related:
      - src/tradebook/contexts/journal/application/ports/repositories.py
      - src/tradebook/contexts/journal/adapters/inbound/api/routes/tradebooks.py
    """

    def __init__(self, *, unit_of_work: JournalUnitOfWork) -> None:
        if unit_of_work is None:  # type: ignore[truthy-bool]
            raise ValueError("GetTradebookUseCase requires unit_of_work")
        self._unit_of_work = unit_of_work

    def execute(self, *, user_id: UserId, tradebook_id: UUID) -> Tradebook:
        try:
            with self._unit_of_work.begin(user_id=user_id) as transaction:
                tradebook = transaction.tradebooks.get(tradebook_id=tradebook_id, user_id=user_id)
        except TradebookError:
            raise
        except Exception as error:  # noqa: BLE001
            raise map_journal_exception(error=error, operation="get_tradebook") from error
        if tradebook is None:
            raise tradebook_not_found(tradebook_id=tradebook_id)
        return tradebook
