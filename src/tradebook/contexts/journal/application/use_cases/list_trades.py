from __future__ import annotations

from uuid import UUID

from tradebook.contexts.journal.application.ports.unit_of_work import JournalUnitOfWork
from tradebook.contexts.journal.application.use_cases._shared import PageRequest
from tradebook.contexts.journal.application.use_cases.errors import (
    map_journal_exception,
    trade_not_found,
    tradebook_not_found,
)
from tradebook.contexts.journal.domain.entities import Trade
from tradebook.platform.errors import TradebookError
from tradebook.shared_kernel.primitives import UserId


class ListTradesUseCase:
    """
    ListTradesUseCase — page through trades of a tradebook visible to the caller.

    Related:
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/trades_repository.py
      - src/tradebook/contexts/journal/adapters/inbound/api/routes/trades.py
    """

    def __init__(self, *, unit_of_work: JournalUnitOfWork) -> None:
        if unit_of_work is None:  # type: ignore[truthy-bool]
            raise ValueError("ListTradesUseCase requires unit_of_work")
        self._unit_of_work = unit_of_work

    def execute(
        self,
        *,
        user_id: UserId,
        tradebook_id: UUID,
        page: PageRequest,
    ) -> tuple[Trade, ...]:
        try:
            with self._unit_of_work.begin(user_id=user_id) as transaction:
                trades = transaction.trades.list_for_tradebook(
                    tradebook_id=tradebook_id,
                    user_id=user_id,
                    limit=page.limit,
                    offset=page.offset,
                )
        except TradebookError:
            raise
        except Exception as error:  # noqa: BLE001
            raise map_journal_exception(error=error, operation="list_trades") from error
        if trades is None:
            raise tradebook_not_found(tradebook_id=tradebook_id)
        return trades


class GetTradeUseCase:
    """GetTradeUseCase — read one trade with its exit legs."""

    def __init__(self, *, unit_of_work: JournalUnitOfWork) -> None:
        if unit_of_work is None:  # type: ignore[truthy-bool]
            raise ValueError("GetTradeUseCase requires unit_of_work")
        self._unit_of_work = unit_of_work

    def execute(self, *, user_id: UserId, tradebook_id: UUID, trade_id: UUID) -> Trade:
        try:
            with self._unit_of_work.begin(user_id=user_id) as transaction:
                trade = transaction.trades.get(
                    tradebook_id=tradebook_id,
                    trade_id=trade_id,
                    user_id=user_id,
                )
        except TradebookError:
            raise
        except Exception as error:  # noqa: BLE001
            raise map_journal_exception(error=error, operation="get_trade") from error
        if trade is None:
            raise trade_not_found(tradebook_id=tradebook_id, trade_id=trade_id)
        return trade
