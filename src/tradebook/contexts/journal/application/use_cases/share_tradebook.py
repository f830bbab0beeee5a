from __future__ import annotations

import logging
from uuid import UUID

from tradebook.contexts.journal.application.ports.clock import JournalClock
from tradebook.contexts.journal.application.ports.unit_of_work import JournalUnitOfWork
from tradebook.contexts.journal.application.use_cases._shared import utc_now
from tradebook.contexts.journal.application.use_cases.errors import (
    map_journal_exception,
    tradebook_not_found,
    validation_error,
)
from tradebook.contexts.journal.domain.value_objects import TradebookRole
from tradebook.platform.errors import TradebookError
from tradebook.shared_kernel.primitives import UserId

log = logging.getLogger(__name__)

_SHAREABLE_ROLES = (TradebookRole.EDITOR, TradebookRole.READER)


class ShareTradebookUseCase:
    """
    ShareTradebookUseCase — owner grants or changes an `editor`/`reader` membership.

    Related:
      - src/tradebook/contexts/journal/adapters/outbound/persistence/postgres/members_repository.py
      - src/tradebook/contexts/journal/adapters/inbound/api/routes/tradebooks.py
    """

    def __init__(self, *, unit_of_work: JournalUnitOfWork, clock: JournalClock) -> None:
        if unit_of_work is None:  # type: ignore[truthy-bool]
            raise ValueError("ShareTradebookUseCase requires unit_of_work")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("ShareTradebookUseCase requires clock")
        self._unit_of_work = unit_of_work
        self._clock = clock

    def execute(
        self,
        *,
        user_id: UserId,
        tradebook_id: UUID,
        member_id: UserId,
        role: str,
    ) -> TradebookRole:
        """
        Grant membership role to another user.

        Args:
            user_id: Authenticated caller; must own the tradebook.
            tradebook_id: Target tradebook.
            member_id: User receiving access; must already exist.
            role: `editor` or `reader`.
        Returns:
            TradebookRole: Granted role.
        Assumptions:
            The owner row cannot be changed through sharing.
        Raises:
            TradebookError: On invalid role, self-share, missing/forbidden tradebook,
                unknown member or storage failure.
        Side Effects:
            Inserts or updates one membership row.
        """
        granted_role = _parse_shareable_role(role=role)
        if member_id == user_id:
            raise validation_error(message="Owner membership cannot be changed")

        try:
            now = utc_now(value=self._clock.now())
            with self._unit_of_work.begin(user_id=user_id) as transaction:
                changed = transaction.members.grant(
                    tradebook_id=tradebook_id,
                    owner_id=user_id,
                    user_id=member_id,
                    role=granted_role,
                    now=now,
                )
                if not changed:
                    raise tradebook_not_found(tradebook_id=tradebook_id)
        except TradebookError:
            raise
        except Exception as error:  # noqa: BLE001
            raise map_journal_exception(error=error, operation="share_tradebook") from error

        log.info(
            "tradebook shared: tradebook_id=%s role=%s",
            tradebook_id,
            granted_role.value,
        )
        return granted_role


class RevokeTradebookMemberUseCase:
    """RevokeTradebookMemberUseCase — owner removes a non-owner membership."""

    def __init__(self, *, unit_of_work: JournalUnitOfWork) -> None:
        if unit_of_work is None:  # type: ignore[truthy-bool]
            raise ValueError("RevokeTradebookMemberUseCase requires unit_of_work")
        self._unit_of_work = unit_of_work

    def execute(self, *, user_id: UserId, tradebook_id: UUID, member_id: UserId) -> None:
        if member_id == user_id:
            raise validation_error(message="Owner membership cannot be changed")
        try:
            with self._unit_of_work.begin(user_id=user_id) as transaction:
                removed = transaction.members.revoke(
                    tradebook_id=tradebook_id,
                    owner_id=user_id,
                    user_id=member_id,
                )
                if not removed:
                    raise tradebook_not_found(tradebook_id=tradebook_id)
        except TradebookError:
            raise
        except Exception as error:  # noqa: BLE001
            raise map_journal_exception(error=error, operation="revoke_member") from error


def _parse_shareable_role(*, role: str) -> TradebookRole:
    try:
        parsed = TradebookRole(role.strip().lower())
    except (AttributeError, ValueError) as error:
        raise validation_error(message="role must be one of ['editor', 'reader']") from error
    if parsed not in _SHAREABLE_ROLES:
        raise validation_error(message="role must be one of ['editor', 'reader']")
    return parsed
