from __future__ import annotations

from uuid import UUID

from tradebook.contexts.journal.application.ports.clock import JournalClock
from tradebook.contexts.journal.application.ports.unit_of_work import JournalUnitOfWork
from tradebook.contexts.journal.application.use_cases._shared import invalid_input, utc_now
from tradebook.contexts.journal.application.use_cases.errors import (
    map_journal_exception,
    trade_not_found,
    validation_error,
)
from tradebook.contexts.journal.application.use_cases.trade_input import TradeInput
from tradebook.contexts.journal.domain.entities import Trade
from tradebook.platform.errors import TradebookError
from tradebook.shared_kernel.primitives import UserId


class UpdateTradeUseCase:
    """
    UpdateTradeUseCase — replace trade entry fields; owner or editor only.

    Exit legs and `created_at` are preserved; entry quantity cannot drop below the
    quantity already exited.

    Related:
      - src/tradebook/contexts/journal/application/use_cases/trade_input.py
      - src/tradebook/contexts/journal/adapters/inbound/api/routes/trades.py
    """

    def __init__(self, *, unit_of_work: JournalUnitOfWork, clock: JournalClock) -> None:
        if unit_of_work is None:  # type: ignore[truthy-bool]
            raise ValueError("UpdateTradeUseCase requires unit_of_work")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("UpdateTradeUseCase requires clock")
        self._unit_of_work = unit_of_work
        self._clock = clock

    def execute(
        self,
        *,
        user_id: UserId,
        tradebook_id: UUID,
        trade_id: UUID,
        trade_input: TradeInput,
    ) -> Trade:
        now = utc_now(value=self._clock.now())
        try:
            with self._unit_of_work.begin(user_id=user_id) as transaction:
                existing = transaction.trades.get(
                    tradebook_id=tradebook_id,
                    trade_id=trade_id,
                    user_id=user_id,
                    for_update=True,
                )
                if existing is None:
                    raise trade_not_found(tradebook_id=tradebook_id, trade_id=trade_id)
                try:
                    updated = trade_input.to_trade(
                        trade_id=trade_id,
                        tradebook_id=tradebook_id,
                        created_at=existing.created_at,
                        updated_at=max(now, existing.created_at),
                        exit_legs=existing.exit_legs,
                    )
                except ValueError as error:
                    raise invalid_input(error=error) from error
                if updated.open_quantity < 0:
                    raise validation_error(
                        message="entry_quantity cannot be less than already exited quantity"
                    )
                changed = transaction.trades.update(trade=updated, user_id=user_id)
                if not changed:
                    raise trade_not_found(tradebook_id=tradebook_id, trade_id=trade_id)
        except TradebookError:
            raise
        except Exception as error:  # noqa: BLE001
            raise map_journal_exception(error=error, operation="update_trade") from error
        return updated
