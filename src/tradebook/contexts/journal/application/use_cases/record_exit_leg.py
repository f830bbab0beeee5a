from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable
from uuid import UUID, uuid4

from tradebook.contexts.journal.application.ports.clock import JournalClock
from tradebook.contexts.journal.application.ports.unit_of_work import JournalUnitOfWork
from tradebook.contexts.journal.application.use_cases._shared import invalid_input, utc_now
from tradebook.contexts.journal.application.use_cases.errors import (
    map_journal_exception,
    trade_not_found,
    validation_error,
)
from tradebook.contexts.journal.domain.entities import ExitLeg
from tradebook.platform.errors import TradebookError
from tradebook.shared_kernel.primitives import UserId


@dataclass(frozen=True, slots=True)
class ExitLegInput:
    """ExitLegInput — raw exit fields accepted by `RecordExitLegUseCase`."""

    exit_date: datetime
    exit_quantity: Decimal
    exit_price: Decimal
    exit_fees: Decimal | None = None


class RecordExitLegUseCase:
    """
    RecordExitLegUseCase — record a (partial) exit of a trade; owner or editor only.

    Related:
      - src/tradebook/contexts/journal/domain/entities/trade.py
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
            raise ValueError("RecordExitLegUseCase requires unit_of_work")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("RecordExitLegUseCase requires clock")
        self._unit_of_work = unit_of_work
        self._clock = clock
        self._id_factory = id_factory

    def execute(
        self,
        *,
        user_id: UserId,
        tradebook_id: UUID,
        trade_id: UUID,
        exit_input: ExitLegInput,
    ) -> ExitLeg:
        """
        Append exit leg when it does not exceed remaining open quantity.

        Args:
            user_id: Authenticated caller.
            tradebook_id: Owning tradebook.
            trade_id: Target trade.
            exit_input: Raw exit fields.
        Returns:
            ExitLeg: Recorded exit leg.
        Assumptions:
            Open quantity is computed from exit legs read under a lock on the trade row.
        Raises:
            TradebookError: On validation, missing/forbidden trade or storage failure.
        Side Effects:
            Inserts one row with encrypted amounts.
        """
        now = utc_now(value=self._clock.now())
        try:
            exit_leg = ExitLeg(
                exit_leg_id=self._id_factory(),
                trade_id=trade_id,
                exit_date=exit_input.exit_date,
                exit_quantity=exit_input.exit_quantity,
                exit_price=exit_input.exit_price,
                exit_fees=exit_input.exit_fees,
                created_at=now,
            )
        except ValueError as error:
            raise invalid_input(error=error) from error

        try:
            with self._unit_of_work.begin(user_id=user_id) as transaction:
                trade = transaction.trades.get(
                    tradebook_id=tradebook_id,
                    trade_id=trade_id,
                    user_id=user_id,
                    for_update=True,
                )
                if trade is None:
                    raise trade_not_found(tradebook_id=tradebook_id, trade_id=trade_id)
                if exit_leg.exit_quantity > trade.open_quantity:
                    raise validation_error(
                        message="exit_quantity exceeds remaining open quantity",
                        errors=[
                            {
                                "path": "exit_quantity",
                                "code": "exceeds_open_quantity",
                                "message": f"open quantity is {trade.open_quantity}",
                            }
                        ],
                    )
                added = transaction.trades.add_exit_leg(
                    tradebook_id=tradebook_id,
                    exit_leg=exit_leg,
                    user_id=user_id,
                )
                if not added:
                    raise trade_not_found(tradebook_id=tradebook_id, trade_id=trade_id)
        except TradebookError:
            raise
        except Exception as error:  # noqa: BLE001
            raise map_journal_exception(error=error, operation="record_exit_leg") from error
        return exit_leg
