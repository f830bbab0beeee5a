from __future__ import annotations

import logging

from tradebook.contexts.journal.application.ports.clock import JournalClock
from tradebook.contexts.journal.application.ports.unit_of_work import JournalUnitOfWork
from tradebook.contexts.journal.application.use_cases._shared import utc_now
from tradebook.contexts.journal.application.use_cases.errors import map_journal_exception
from tradebook.platform.errors import TradebookError
from tradebook.shared_kernel.primitives import UserId

log = logging.getLogger(__name__)


class UpsertUserUseCase:
    """
    UpsertUserUseCase — mirror a user created at the identity provider (internal webhook).

    The transaction is bound to the subject user so row-level policies on `users` apply.

    Related:
      - src/tradebook/contexts/journal/adapters/inbound/api/routes/users.py
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/users_repository.py
    """

    def __init__(self, *, unit_of_work: JournalUnitOfWork, clock: JournalClock) -> None:
        if unit_of_work is None:  # type: ignore[truthy-bool]
            raise ValueError("UpsertUserUseCase requires unit_of_work")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("UpsertUserUseCase requires clock")
        self._unit_of_work = unit_of_work
        self._clock = clock

    def execute(self, *, user_id: UserId) -> None:
        try:
            now = utc_now(value=self._clock.now())
            with self._unit_of_work.begin(user_id=user_id) as transaction:
                transaction.users.upsert(user_id=user_id, now=now)
        except TradebookError:
            raise
        except Exception as error:  # noqa: BLE001
            raise map_journal_exception(error=error, operation="upsert_user") from error
        log.info("user upserted")


class DeleteUserUseCase:
    """DeleteUserUseCase — remove a user and everything they own (internal webhook)."""

    def __init__(self, *, unit_of_work: JournalUnitOfWork) -> None:
        if unit_of_work is None:  # type: ignore[truthy-bool]
            raise ValueError("DeleteUserUseCase requires unit_of_work")
        self._unit_of_work = unit_of_work

    def execute(self, *, user_id: UserId) -> None:
        try:
            with self._unit_of_work.begin(user_id=user_id) as transaction:
                deleted = transaction.users.delete(user_id=user_id)
                if not deleted:
                    raise TradebookError(code="not_found", message="User not found")
        except TradebookError:
            raise
        except Exception as error:  # noqa: BLE001
            raise map_journal_exception(error=error, operation="delete_user") from error
        log.info("user deleted")
