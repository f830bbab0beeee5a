from __future__ import annotations

import logging
from typing import Callable
from uuid import UUID, uuid4

from tradebook.contexts.journal.application.ports.clock import JournalClock
from tradebook.contexts.journal.application.ports.unit_of_work import JournalUnitOfWork
from tradebook.contexts.journal.application.use_cases._shared import invalid_input, utc_now
from tradebook.contexts.journal.application.use_cases.errors import map_journal_exception
from tradebook.contexts.journal.domain.entities import Tradebook, normalize_title
from tradebook.platform.errors import TradebookError
from tradebook.shared_kernel.primitives import UserId

log = logging.getLogger(__name__)


class CreateTradebookUseCase:
    """
    CreateTradebookUseCase — create tradebook and owner membership in one transaction.

    Related:
      - src/tradebook/contexts/journal/application/ports/unit_of_work.py
      - src/tradebook/contexts/journal/adapters/inbound/api/routes/tradebooks.py
      - alembic/versions/20261001_0001_journal_schema_rls.py
    """

    def __init__(
        self,
        *,
        unit_of_work: JournalUnitOfWork,
        clock: JournalClock,
        id_factory: Callable[[], UUID] = uuid4,
    ) -> None:
        """
        Initialize create-tradebook use-case dependencies.

        Args:
            unit_of_work: Tenant-scoped transaction port.
            clock: Clock port for UTC timestamps.
            id_factory: Tradebook identifier factory.
        Returns:
            None.
        Assumptions:
            Identifiers are generated application-side.
        Raises:
            ValueError: If required dependencies are missing.
        Side Effects:
            None.
        """
        if unit_of_work is None:  # type: ignore[truthy-bool]
            raise ValueError("CreateTradebookUseCase requires unit_of_work")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("CreateTradebookUseCase requires clock")
        self._unit_of_work = unit_of_work
        self._clock = clock
        self._id_factory = id_factory

    def execute(self, *, user_id: UserId, title: str | None = None) -> Tradebook:
        """
        Upsert caller, insert tradebook, insert owner membership; all or nothing.

        Args:
            user_id: Authenticated caller.
            title: Optional title; blank means "Untitled Tradebook".
        Returns:
            Tradebook: Created tradebook with `role=owner`.
        Assumptions:
            A failure at any step leaves no tradebook behind.
        Raises:
            TradebookError: On validation, storage or key-service failure.
        Side Effects:
            Writes user, tradebook and membership rows; may call key service.
        """
        try:
            normalized_title = normalize_title(title=title)
        except ValueError as error:
            raise invalid_input(error=error) from error

        try:
            now = utc_now(value=self._clock.now())
            tradebook_id = self._id_factory()
            with self._unit_of_work.begin(user_id=user_id) as transaction:
                transaction.users.upsert(user_id=user_id, now=now)
                tradebook = transaction.tradebooks.create(
                    tradebook_id=tradebook_id,
                    owner_id=user_id,
                    title=normalized_title,
                    now=now,
                )
                transaction.members.add_owner(
                    tradebook_id=tradebook_id,
                    owner_id=user_id,
                    now=now,
                )
        except TradebookError:
            raise
        except Exception as error:  # noqa: BLE001
            raise map_journal_exception(error=error, operation="create_tradebook") from error

        log.info("tradebook created: tradebook_id=%s", tradebook.tradebook_id)
        return tradebook
