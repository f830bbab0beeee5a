from __future__ import annotations

from uuid import UUID

from tradebook.contexts.journal.application.ports.unit_of_work import JournalUnitOfWork
from tradebook.contexts.journal.application.use_cases.errors import (
    map_journal_exception,
    trade_not_found,
)
from tradebook.platform.errors import TradebookError
from tradebook.shared_kernel.primitives import UserId


class DeleteTradeUseCase:
    """DeleteTradeUseCase — delete trade and its exit legs; owner or editor only."""

    def __init__(self, *, unit_of_work: JournalUnitOfWork) -> None:
        if unit_of_work is None:  # type: ignore[truthy-bool]
            raise ValueError("DeleteTradeUseCase requires unit_of_work")
        self._unit_of_work = unit_of_work

    def execute(self, *, user_id: UserId, tradebook_id: UUID, trade_id: UUID) -> None:
        try:
            with self._unit_of_work.begin(user_id=user_id) as transaction:
                deleted = transaction.trades.delete(
                    tradebook_id=tradebook_id,
                    trade_id=trade_id,
                    user_id=user_id,
                )
                if not deleted:
                    raise trade_not_found(tradebook_id=tradebook_id, trade_id=trade_id)
        except TradebookError:
            raise
        except Exception as error:  # noqa: BLE001
            raise map_journal_exception(error=error, operation="delete_trade") from error
