from __future__ import annotations

import logging
from typing import Callable
from uuid import UUID, uuid4

from tradebook.contexts.journal.application.ports.clock import JournalClock
from tradebook.contexts.journal.application.ports.unit_of_work import JournalUnitOfWork
from tradebook.contexts.journal.application.use_cases._shared import invalid_input, utc_now
from tradebook.contexts.journal.application.use_cases.errors import (
    map_journal_exception,
    tradebook_not_found,
)
from tradebook.contexts.journal.application.use_cases.trade_input import TradeInput
from tradebook.contexts.journal.domain.entities import Trade
from tradebook.platform.errors import TradebookError
from tradebook.shared_kernel.primitives import UserId

log = logging.getLogger(__name__)


class CreateTradeUseCase:
    """
    CreateTradeUseCase — add trade to a tradebook; owner or editor only.

    Related:
      - src/tradebook/contexts/journal/application/use_cases/trade_input.py
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/trades_repository.py
      - src/tradebook/contexts/journal/adapters/inbound/api/routes/trades.py
    """

    def __init__(
        self,
        *,
        unit_of_work: JournalUnitOfWork,
        clock: JournalClock,
        id_factory: Callable[[], UUID] = uuid4,
    ) -> None:
        if unit_of_work is None:  # type: ignore[truthy-bool]
            raise ValueError("CreateTradeUseCase requires unit_of_work")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("CreateTradeUseCase requires clock")
        self._unit_of_work = unit_of_work
        self._clock = clock
        self._id_factory = id_factory

    def execute(self, *, user_id: UserId, tradebook_id: UUID, trade_input: TradeInput) -> Trade:
        """
        Validate and insert one trade.

        Args:
            user_id: Authenticated caller.
            tradebook_id: Target tradebook.
            trade_input: Raw entry fields.
        Returns:
            Trade: Created trade without exit legs.
        Assumptions:
            Readers and non-members get the tradebook not-found response.
        Raises:
            TradebookError: On validation, missing/forbidden tradebook or storage failure.
        Side Effects:
            Inserts one row with encrypted symbol and amounts.
        """
        now = utc_now(value=self._clock.now())
        try:
            trade = trade_input.to_trade(
                trade_id=self._id_factory(),
                tradebook_id=tradebook_id,
                created_at=now,
                updated_at=now,
            )
        except ValueError as error:
            raise invalid_input(error=error) from error

        try:
            with self._unit_of_work.begin(user_id=user_id) as transaction:
                created = transaction.trades.create(trade=trade, user_id=user_id)
                if not created:
                    raise tradebook_not_found(tradebook_id=tradebook_id)
        except TradebookError:
            raise
        except Exception as error:  # noqa: BLE001
            raise map_journal_exception(error=error, operation="create_trade") from error

        log.info("trade created: tradebook_id=%s trade_id=%s", tradebook_id, trade.trade_id)
        return trade
