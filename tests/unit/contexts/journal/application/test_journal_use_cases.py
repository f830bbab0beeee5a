from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterator
from uuid import UUID

import pytest

from tradebook.contexts.encryption.adapters.outbound.crypto import (
    AesGcmFieldCipher,
    MasterKeyCipherResolver,
)
from tradebook.contexts.journal.adapters.outbound.persistence import InMemoryJournalUnitOfWork
from tradebook.contexts.journal.application.ports.store_errors import StoreUnavailableError
from tradebook.contexts.journal.application.use_cases import (
    CreateTradebookUseCase,
    CreateTradeUseCase,
    DeleteAllTradebooksUseCase,
    DeleteTradebookUseCase,
    DeleteTradeUseCase,
    DeleteUserUseCase,
    ExitLegInput,
    GetTradebookUseCase,
    GetTradeUseCase,
    ListTradebooksUseCase,
    ListTradesUseCase,
    PageRequest,
    RecordExitLegUseCase,
    RevokeTradebookMemberUseCase,
    ShareTradebookUseCase,
    TradeInput,
    UpdateTradebookUseCase,
    UpdateTradeUseCase,
    UpsertUserUseCase,
)
from tradebook.contexts.journal.domain.value_objects import TradebookRole
from tradebook.platform.errors import TradebookError
from tradebook.shared_kernel.primitives import UserId

_ALICE = UserId("user-alice")
_BOB = UserId("user-bob")
_CAROL = UserId("user-carol")


class _SteppingClock:
    """
    Deterministic UTC clock advancing one second per call.
    """

    def __init__(self) -> None:
        self._current = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        self._current = self._current + timedelta(seconds=1)
        return self._current


class _Journal:
    """
    Use-case bundle wired to one in-memory unit of work.
    """

    def __init__(self, *, unit_of_work: Any | None = None) -> None:
        self.store = InMemoryJournalUnitOfWork(
            cipher_resolver=MasterKeyCipherResolver(cipher=AesGcmFieldCipher(key=b"m" * 32)),
        )
        uow = unit_of_work if unit_of_work is not None else self.store
        clock = _SteppingClock()
        self.upsert_user = UpsertUserUseCase(unit_of_work=uow, clock=clock)
        self.delete_user = DeleteUserUseCase(unit_of_work=uow)
        self.create_tradebook = CreateTradebookUseCase(unit_of_work=uow, clock=clock)
        self.get_tradebook = GetTradebookUseCase(unit_of_work=uow)
        self.list_tradebooks = ListTradebooksUseCase(unit_of_work=uow)
        self.update_tradebook = UpdateTradebookUseCase(unit_of_work=uow, clock=clock)
        self.delete_tradebook = DeleteTradebookUseCase(unit_of_work=uow)
        self.delete_all_tradebooks = DeleteAllTradebooksUseCase(unit_of_work=uow)
        self.share = ShareTradebookUseCase(unit_of_work=uow, clock=clock)
        self.revoke = RevokeTradebookMemberUseCase(unit_of_work=uow)
        self.create_trade = CreateTradeUseCase(unit_of_work=uow, clock=clock)
        self.get_trade = GetTradeUseCase(unit_of_work=uow)
        self.list_trades = ListTradesUseCase(unit_of_work=uow)
        self.update_trade = UpdateTradeUseCase(unit_of_work=uow, clock=clock)
        self.delete_trade = DeleteTradeUseCase(unit_of_work=uow)
        self.record_exit = RecordExitLegUseCase(unit_of_work=uow, clock=clock)


class _FailingMembersUnitOfWork:
    """
    Unit of work wrapper whose owner-membership insert fails after the tradebook insert.
    """

    def __init__(self, *, inner: InMemoryJournalUnitOfWork) -> None:
        self._inner = inner

    @contextmanager
    def begin(self, *, user_id: UserId) -> Iterator[Any]:
        with self._inner.begin(user_id=user_id) as transaction:
            yield _FailingMembersTransaction(inner=transaction)


class _FailingMembersTransaction:
    def __init__(self, *, inner: Any) -> None:
        self._inner = inner
        self.user_id = inner.user_id
        self.users = inner.users
        self.tradebooks = inner.tradebooks
        self.trades = inner.trades
        self.members = self

    def add_owner(self, **_: Any) -> None:
        raise StoreUnavailableError("connection lost")


class _LockRecordingUnitOfWork:
    """
    Unit of work wrapper recording `for_update` flags of trade reads.
    """

    def __init__(self, *, inner: InMemoryJournalUnitOfWork) -> None:
        self._inner = inner
        self.trade_reads: list[bool] = []

    @contextmanager
    def begin(self, *, user_id: UserId) -> Iterator[Any]:
        with self._inner.begin(user_id=user_id) as transaction:
            yield _LockRecordingTransaction(inner=transaction, trade_reads=self.trade_reads)


class _LockRecordingTransaction:
    def __init__(self, *, inner: Any, trade_reads: list[bool]) -> None:
        self._inner_trades = inner.trades
        self._trade_reads = trade_reads
        self.user_id = inner.user_id
        self.users = inner.users
        self.tradebooks = inner.tradebooks
        self.members = inner.members
        self.trades = self

    def get(self, *, for_update: bool = False, **kwargs: Any) -> Any:
        self._trade_reads.append(for_update)
        return self._inner_trades.get(for_update=for_update, **kwargs)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._inner_trades, name)

def _trade_input(**overrides: Any) -> TradeInput:
    values: dict[str, Any] = {
        "asset_class": "equities",
        "purchase_type": "cash",
        "order_type": "limit",
        "symbol": "aapl",
        "entry_date": datetime(2026, 2, 20, 14, 30, tzinfo=timezone.utc),
        "entry_quantity": Decimal("10"),
        "entry_price": Decimal("100.00"),
        "entry_fees": None,
    }
    values.update(overrides)
    return TradeInput(**values)


def _shared_tradebook(journal: _Journal, *, role: str) -> UUID:
    journal.upsert_user.execute(user_id=_BOB)
    tradebook = journal.create_tradebook.execute(user_id=_ALICE, title="Swing")
    journal.share.execute(
        user_id=_ALICE,
        tradebook_id=tradebook.tradebook_id,
        member_id=_BOB,
        role=role,
    )
    return tradebook.tradebook_id


def test_create_tradebook_assigns_owner_and_default_title() -> None:
    """
    Verify tradebook creation upserts caller, defaults title and returns owner role.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Blank title maps to "Untitled Tradebook".
    Raises:
        AssertionError: If created tradebook snapshot is wrong.
    Side Effects:
        None.
    """
    journal = _Journal()

    tradebook = journal.create_tradebook.execute(user_id=_ALICE, title="  ")

    assert tradebook.title == "Untitled Tradebook"
    assert tradebook.role is TradebookRole.OWNER
    assert tradebook.owner_id == _ALICE
    fetched = journal.get_tradebook.execute(user_id=_ALICE, tradebook_id=tradebook.tradebook_id)
    assert fetched.title == "Untitled Tradebook"
    assert fetched.total_trades == 0


def test_create_tradebook_rejects_overlong_title() -> None:
    journal = _Journal()

    with pytest.raises(TradebookError) as error_info:
        journal.create_tradebook.execute(user_id=_ALICE, title="x" * 201)

    assert error_info.value.code == "validation_error"


def test_tradebook_is_invisible_to_other_users() -> None:
    """
    Verify a second user cannot read, update, delete or trade in a foreign tradebook.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Missing and forbidden tradebooks share one not-found response.
    Raises:
        AssertionError: If foreign access is not reported as not found.
    Side Effects:
        None.
    """
    journal = _Journal()
    tradebook_id = journal.create_tradebook.execute(user_id=_ALICE, title="Private").tradebook_id
    journal.upsert_user.execute(user_id=_BOB)

    attempts = (
        lambda: journal.get_tradebook.execute(user_id=_BOB, tradebook_id=tradebook_id),
        lambda: journal.update_tradebook.execute(
            user_id=_BOB, tradebook_id=tradebook_id, title="Hijacked"
        ),
        lambda: journal.delete_tradebook.execute(user_id=_BOB, tradebook_id=tradebook_id),
        lambda: journal.create_trade.execute(
            user_id=_BOB, tradebook_id=tradebook_id, trade_input=_trade_input()
        ),
        lambda: journal.list_trades.execute(
            user_id=_BOB, tradebook_id=tradebook_id, page=PageRequest()
        ),
    )
    for attempt in attempts:
        with pytest.raises(TradebookError) as error_info:
            attempt()
        assert error_info.value.code == "not_found"

    assert journal.list_tradebooks.execute(user_id=_BOB, page=PageRequest()) == ()
    assert journal.get_tradebook.execute(user_id=_ALICE, tradebook_id=tradebook_id).title == (
        "Private"
    )


def test_create_tradebook_is_atomic_when_owner_membership_fails() -> None:
    """
    Verify tradebook row is rolled back when owner membership insert fails.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Storage unavailability maps to `service_unavailable`.
    Raises:
        AssertionError: If a tradebook survives the failed transaction.
    Side Effects:
        None.
    """
    journal = _Journal()
    failing = _Journal(unit_of_work=_FailingMembersUnitOfWork(inner=journal.store))

    with pytest.raises(TradebookError) as error_info:
        failing.create_tradebook.execute(user_id=_ALICE, title="Doomed")

    assert error_info.value.code == "service_unavailable"
    assert journal.store.state.tradebooks == {}
    assert journal.store.state.members == {}
    assert journal.store.state.users == {}


def test_list_tradebooks_orders_by_recent_update_and_pages() -> None:
    journal = _Journal()
    first = journal.create_tradebook.execute(user_id=_ALICE, title="First")
    second = journal.create_tradebook.execute(user_id=_ALICE, title="Second")
    third = journal.create_tradebook.execute(user_id=_ALICE, title="Third")
    journal.update_tradebook.execute(
        user_id=_ALICE, tradebook_id=first.tradebook_id, title="First (renamed)"
    )

    page_one = journal.list_tradebooks.execute(
        user_id=_ALICE, page=PageRequest.from_raw(page=1, limit=2)
    )
    page_two = journal.list_tradebooks.execute(
        user_id=_ALICE, page=PageRequest.from_raw(page=2, limit=2)
    )

    assert [item.tradebook_id for item in page_one] == [first.tradebook_id, third.tradebook_id]
    assert [item.tradebook_id for item in page_two] == [second.tradebook_id]
    assert page_one[0].title == "First (renamed)"


def test_page_request_normalizes_invalid_values() -> None:
    assert PageRequest.from_raw(page=0, limit=0) == PageRequest(page=1, limit=20)
    assert PageRequest.from_raw(page=None, limit=500) == PageRequest(page=1, limit=100)
    assert PageRequest.from_raw(page=3, limit=10).offset == 20


def test_reader_cannot_write_but_editor_can() -> None:
    """
    Verify role predicates: readers read only, editors write trades and titles.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Insufficient role is reported as not found.
    Raises:
        AssertionError: If role checks are not enforced.
    Side Effects:
        None.
    """
    journal = _Journal()
    tradebook_id = _shared_tradebook(journal, role="reader")

    assert journal.get_tradebook.execute(user_id=_BOB, tradebook_id=tradebook_id).role is (
        TradebookRole.READER
    )
    with pytest.raises(TradebookError) as error_info:
        journal.update_tradebook.execute(user_id=_BOB, tradebook_id=tradebook_id, title="Mine")
    assert error_info.value.code == "not_found"
    with pytest.raises(TradebookError) as error_info:
        journal.create_trade.execute(
            user_id=_BOB, tradebook_id=tradebook_id, trade_input=_trade_input()
        )
    assert error_info.value.code == "not_found"

    journal.share.execute(user_id=_ALICE, tradebook_id=tradebook_id, member_id=_BOB, role="editor")
    updated = journal.update_tradebook.execute(
        user_id=_BOB, tradebook_id=tradebook_id, title="Shared"
    )
    trade = journal.create_trade.execute(
        user_id=_BOB, tradebook_id=tradebook_id, trade_input=_trade_input()
    )

    assert updated.title == "Shared"
    assert updated.role is TradebookRole.EDITOR
    assert journal.get_trade.execute(
        user_id=_ALICE, tradebook_id=tradebook_id, trade_id=trade.trade_id
    ).symbol == "AAPL"


def test_only_owner_deletes_tradebook() -> None:
    journal = _Journal()
    tradebook_id = _shared_tradebook(journal, role="editor")

    with pytest.raises(TradebookError) as error_info:
        journal.delete_tradebook.execute(user_id=_BOB, tradebook_id=tradebook_id)
    assert error_info.value.code == "not_found"

    journal.delete_tradebook.execute(user_id=_ALICE, tradebook_id=tradebook_id)
    with pytest.raises(TradebookError):
        journal.get_tradebook.execute(user_id=_BOB, tradebook_id=tradebook_id)


def test_share_validates_role_member_and_ownership() -> None:
    """
    Verify sharing rules: shareable roles only, no self-share, owner-only, known member.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Unknown member maps to not found.
    Raises:
        AssertionError: If invalid shares are accepted.
    Side Effects:
        None.
    """
    journal = _Journal()
    tradebook_id = _shared_tradebook(journal, role="editor")

    with pytest.raises(TradebookError) as error_info:
        journal.share.execute(
            user_id=_ALICE, tradebook_id=tradebook_id, member_id=_BOB, role="owner"
        )
    assert error_info.value.code == "validation_error"
    with pytest.raises(TradebookError) as error_info:
        journal.share.execute(
            user_id=_ALICE, tradebook_id=tradebook_id, member_id=_ALICE, role="reader"
        )
    assert error_info.value.code == "validation_error"
    with pytest.raises(TradebookError) as error_info:
        journal.share.execute(
            user_id=_ALICE, tradebook_id=tradebook_id, member_id=_CAROL, role="reader"
        )
    assert error_info.value.code == "not_found"

    journal.upsert_user.execute(user_id=_CAROL)
    with pytest.raises(TradebookError) as error_info:
        journal.share.execute(
            user_id=_BOB, tradebook_id=tradebook_id, member_id=_CAROL, role="reader"
        )
    assert error_info.value.code == "not_found"


def test_revoke_removes_access() -> None:
    journal = _Journal()
    tradebook_id = _shared_tradebook(journal, role="reader")

    journal.revoke.execute(user_id=_ALICE, tradebook_id=tradebook_id, member_id=_BOB)

    with pytest.raises(TradebookError) as error_info:
        journal.get_tradebook.execute(user_id=_BOB, tradebook_id=tradebook_id)
    assert error_info.value.code == "not_found"
    with pytest.raises(TradebookError):
        journal.revoke.execute(user_id=_ALICE, tradebook_id=tradebook_id, member_id=_BOB)


def test_trade_lifecycle_with_partial_exits() -> None:
    """
    Verify trade create, exit legs, open quantity guard, update and delete.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Exit quantity can never exceed remaining open quantity.
    Raises:
        AssertionError: If lifecycle results differ.
    Side Effects:
        None.
    """
    journal = _Journal()
    tradebook_id = journal.create_tradebook.execute(user_id=_ALICE, title="Book").tradebook_id
    trade = journal.create_trade.execute(
        user_id=_ALICE,
        tradebook_id=tradebook_id,
        trade_input=_trade_input(entry_fees=Decimal("1.25")),
    )
    exit_date = datetime(2026, 2, 21, tzinfo=timezone.utc)

    journal.record_exit.execute(
        user_id=_ALICE,
        tradebook_id=tradebook_id,
        trade_id=trade.trade_id,
        exit_input=ExitLegInput(
            exit_date=exit_date, exit_quantity=Decimal("4"), exit_price=Decimal("110.50")
        ),
    )
    with pytest.raises(TradebookError) as error_info:
        journal.record_exit.execute(
            user_id=_ALICE,
            tradebook_id=tradebook_id,
            trade_id=trade.trade_id,
            exit_input=ExitLegInput(
                exit_date=exit_date, exit_quantity=Decimal("7"), exit_price=Decimal("1")
            ),
        )
    assert error_info.value.code == "validation_error"

    stored = journal.get_trade.execute(
        user_id=_ALICE, tradebook_id=tradebook_id, trade_id=trade.trade_id
    )
    assert stored.open_quantity == Decimal("6")
    assert stored.entry_fees == Decimal("1.25")
    assert str(stored.entry_price) == "100.00"
    assert [str(leg.exit_price) for leg in stored.exit_legs] == ["110.50"]

    with pytest.raises(TradebookError) as error_info:
        journal.update_trade.execute(
            user_id=_ALICE,
            tradebook_id=tradebook_id,
            trade_id=trade.trade_id,
            trade_input=_trade_input(entry_quantity=Decimal("3")),
        )
    assert error_info.value.code == "validation_error"

    updated = journal.update_trade.execute(
        user_id=_ALICE,
        tradebook_id=tradebook_id,
        trade_id=trade.trade_id,
        trade_input=_trade_input(symbol="msft", entry_fees=None),
    )
    assert updated.symbol == "MSFT"
    assert updated.entry_fees is None
    tradebook = journal.get_tradebook.execute(user_id=_ALICE, tradebook_id=tradebook_id)
    assert tradebook.total_trades == 1

    journal.delete_trade.execute(user_id=_ALICE, tradebook_id=tradebook_id, trade_id=trade.trade_id)
    assert journal.list_trades.execute(
        user_id=_ALICE, tradebook_id=tradebook_id, page=PageRequest()
    ) == ()


def test_trade_input_rejects_unknown_enum_values() -> None:
    journal = _Journal()
    tradebook_id = journal.create_tradebook.execute(user_id=_ALICE, title="Book").tradebook_id

    with pytest.raises(TradebookError) as error_info:
        journal.create_trade.execute(
            user_id=_ALICE,
            tradebook_id=tradebook_id,
            trade_input=_trade_input(asset_class="stocks"),
        )

    assert error_info.value.code == "validation_error"
    assert "asset_class" in error_info.value.message


def test_stored_rows_never_hold_plaintext_values() -> None:
    journal = _Journal()
    tradebook_id = journal.create_tradebook.execute(user_id=_ALICE, title="Secret").tradebook_id
    journal.create_trade.execute(
        user_id=_ALICE, tradebook_id=tradebook_id, trade_input=_trade_input(symbol="nvda")
    )

    tradebook_row = journal.store.state.tradebooks[tradebook_id]
    (trade_row,) = journal.store.state.trades.values()

    assert isinstance(tradebook_row.title, bytes) and b"Secret" not in tradebook_row.title
    assert isinstance(trade_row.symbol, bytes) and b"NVDA" not in trade_row.symbol
    assert b"100.00" not in trade_row.entry_price
    assert trade_row.entry_fees is None


def test_delete_all_and_delete_user_cascade() -> None:
    """
    Verify bulk delete of owned tradebooks and user deletion cascades.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Deleting with nothing owned is reported as not found.
    Raises:
        AssertionError: If cascades leave rows behind.
    Side Effects:
        None.
    """
    journal = _Journal()
    journal.create_tradebook.execute(user_id=_ALICE, title="One")
    journal.create_tradebook.execute(user_id=_ALICE, title="Two")
    shared_id = _shared_tradebook(journal, role="reader")

    assert journal.delete_all_tradebooks.execute(user_id=_ALICE) == 3
    with pytest.raises(TradebookError) as error_info:
        journal.delete_all_tradebooks.execute(user_id=_ALICE)
    assert error_info.value.code == "not_found"
    with pytest.raises(TradebookError):
        journal.get_tradebook.execute(user_id=_BOB, tradebook_id=shared_id)

    journal.create_tradebook.execute(user_id=_BOB, title="Bob's")
    journal.delete_user.execute(user_id=_BOB)
    assert _BOB.value not in journal.store.state.users
    assert journal.store.state.tradebooks == {}
    with pytest.raises(TradebookError) as error_info:
        journal.delete_user.execute(user_id=_BOB)
    assert error_info.value.code == "not_found"


def test_exit_and_trade_update_read_trade_under_row_lock() -> None:
    """
    Verify open-quantity checks read the trade with a row lock before writing.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Plain reads stay unlocked.
    Raises:
        AssertionError: If a mutating path reads without `for_update`.
    Side Effects:
        None.
    """
    setup = _Journal()
    tradebook_id = setup.create_tradebook.execute(user_id=_ALICE, title="Book").tradebook_id
    trade = setup.create_trade.execute(
        user_id=_ALICE, tradebook_id=tradebook_id, trade_input=_trade_input()
    )
    recording = _LockRecordingUnitOfWork(inner=setup.store)
    journal = _Journal(unit_of_work=recording)

    journal.record_exit.execute(
        user_id=_ALICE,
        tradebook_id=tradebook_id,
        trade_id=trade.trade_id,
        exit_input=ExitLegInput(
            exit_date=datetime(2026, 2, 21, tzinfo=timezone.utc),
            exit_quantity=Decimal("10"),
            exit_price=Decimal("101"),
        ),
    )
    with pytest.raises(TradebookError) as error_info:
        journal.update_trade.execute(
            user_id=_ALICE,
            tradebook_id=tradebook_id,
            trade_id=trade.trade_id,
            trade_input=_trade_input(entry_quantity=Decimal("5")),
        )
    journal.get_trade.execute(user_id=_ALICE, tradebook_id=tradebook_id, trade_id=trade.trade_id)

    assert error_info.value.code == "validation_error"
    assert recording.trade_reads == [True, True, False]
