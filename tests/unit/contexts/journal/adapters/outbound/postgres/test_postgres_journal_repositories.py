from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

import pytest

from tradebook.contexts.encryption.adapters.outbound.crypto import (
    AesGcmFieldCipher,
    MasterKeyCipherResolver,
)
from tradebook.contexts.encryption.domain.errors import AuthenticationError
from tradebook.contexts.journal.adapters.outbound.persistence.postgres import (
    PostgresMembersRepository,
    PostgresTradebooksRepository,
    PostgresTradesRepository,
    TradebookCodecLookup,
)
from tradebook.contexts.journal.application.ports.store_errors import JournalStoreError
from tradebook.contexts.journal.domain.entities import Trade
from tradebook.contexts.journal.domain.value_objects import (
    AssetClass,
    OrderType,
    PurchaseType,
    TradebookRole,
)
from tradebook.shared_kernel.primitives import UserId

_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
_TRADEBOOK_ID = UUID("00000000-0000-0000-0000-00000000000a")
_TRADE_ID = UUID("00000000-0000-0000-0000-00000000000b")
_USER = UserId("user-alice")
_CIPHER = AesGcmFieldCipher(key=b"m" * 32)
_WRITE_PREDICATE = (
    "EXISTS (SELECT 1 FROM tradebook_members m WHERE m.tradebook_id = {column} "
    "AND m.user_id = %(user_id)s AND m.role IN ('owner', 'editor'))"
)


class _ScriptedSession:
    """
    Fake SQL session returning scripted rows in call order and recording every statement.
    """

    def __init__(
        self,
        *,
        one: list[Mapping[str, Any] | None] | None = None,
        many: list[tuple[Mapping[str, Any], ...]] | None = None,
    ) -> None:
        self.calls: list[tuple[str, Mapping[str, Any]]] = []
        self._one = list(one or [])
        self._many = list(many or [])

    def fetch_one(self, *, query: str, parameters: Mapping[str, Any]) -> Mapping[str, Any] | None:
        self.calls.append((query, dict(parameters)))
        return self._one.pop(0)

    def fetch_all(
        self,
        *,
        query: str,
        parameters: Mapping[str, Any],
    ) -> tuple[Mapping[str, Any], ...]:
        self.calls.append((query, dict(parameters)))
        return self._many.pop(0)

    def execute(self, *, query: str, parameters: Mapping[str, Any]) -> None:
        self.calls.append((query, dict(parameters)))


def _codecs(session: _ScriptedSession) -> TradebookCodecLookup:
    return TradebookCodecLookup(
        session=session,
        cipher_resolver=MasterKeyCipherResolver(cipher=_CIPHER),
    )


def _normalized(query: str) -> str:
    return " ".join(query.split())


def _trade(*, entry_fees: Decimal | None = None) -> Trade:
    return Trade(
        trade_id=_TRADE_ID,
        tradebook_id=_TRADEBOOK_ID,
        asset_class=AssetClass.CRYPTO,
        purchase_type=PurchaseType.MARGIN,
        order_type=OrderType.MARKET,
        symbol="btc-usd",
        entry_date=_NOW,
        entry_quantity=Decimal("0.5"),
        entry_price=Decimal("64000.10"),
        entry_fees=entry_fees,
        created_at=_NOW,
        updated_at=_NOW,
    )


def test_trade_create_encrypts_columns_and_applies_write_predicate() -> None:
    """
    Verify trade insert sends ciphertext only and is guarded by owner/editor predicate.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Codec lookup reads `wrapped_dek` through the same tenant-scoped session first.
    Raises:
        AssertionError: If plaintext reaches SQL parameters or predicate is missing.
    Side Effects:
        None.
    """
    session = _ScriptedSession(one=[{"wrapped_dek": None}, {"id": _TRADE_ID}])
    repository = PostgresTradesRepository(session=session, codecs=_codecs(session))

    assert repository.create(trade=_trade(), user_id=_USER) is True

    lookup_query, lookup_parameters = session.calls[0]
    assert "SELECT wrapped_dek FROM tradebooks" in lookup_query
    assert lookup_parameters == {"tradebook_id": _TRADEBOOK_ID}
    insert_query, parameters = session.calls[1]
    assert _WRITE_PREDICATE.format(column="%(tradebook_id)s") in _normalized(insert_query)
    assert parameters["user_id"] == "user-alice"
    assert parameters["asset_class"] == "crypto"
    assert _CIPHER.decrypt(blob=parameters["symbol"]) == b"BTC-USD"
    assert _CIPHER.decrypt(blob=parameters["entry_quantity"]) == b"0.5"
    assert _CIPHER.decrypt(blob=parameters["entry_price"]) == b"64000.10"
    assert parameters["entry_fees"] is None


def test_trade_create_skips_insert_for_invisible_tradebook() -> None:
    session = _ScriptedSession(one=[None])
    repository = PostgresTradesRepository(session=session, codecs=_codecs(session))

    assert repository.create(trade=_trade(), user_id=_USER) is False
    assert len(session.calls) == 1


def test_trade_get_decrypts_row_and_exit_legs() -> None:
    """
    Verify trade read decrypts entry and exit fields and keeps NULL fees absent.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Exit legs come from one `ANY(%(trade_ids)s)` query.
    Raises:
        AssertionError: If decoded trade differs.
    Side Effects:
        None.
    """
    trade_row = {
        "id": _TRADE_ID,
        "tradebook_id": _TRADEBOOK_ID,
        "asset_class": "forex",
        "purchase_type": "cash",
        "order_type": "stop_limit",
        "symbol": _CIPHER.encrypt(plaintext=b"EURUSD"),
        "entry_date": _NOW,
        "entry_quantity": _CIPHER.encrypt(plaintext=b"1000"),
        "entry_price": _CIPHER.encrypt(plaintext=b"1.0850"),
        "entry_fees": None,
        "created_at": _NOW,
        "updated_at": _NOW,
    }
    leg_row = {
        "id": UUID(int=1),
        "trade_id": _TRADE_ID,
        "exit_date": _NOW,
        "exit_quantity": memoryview(_CIPHER.encrypt(plaintext=b"400")),
        "exit_price": _CIPHER.encrypt(plaintext=b"1.0900"),
        "exit_fees": _CIPHER.encrypt(plaintext=b"0.00"),
        "created_at": _NOW,
    }
    session = _ScriptedSession(one=[{"wrapped_dek": None}, trade_row], many=[(leg_row,)])
    repository = PostgresTradesRepository(session=session, codecs=_codecs(session))

    trade = repository.get(tradebook_id=_TRADEBOOK_ID, trade_id=_TRADE_ID, user_id=_USER)

    assert trade is not None
    assert trade.symbol == "EURUSD"
    assert trade.order_type is OrderType.STOP_LIMIT
    assert trade.entry_fees is None
    assert str(trade.entry_price) == "1.0850"
    assert trade.open_quantity == Decimal("600")
    assert str(trade.exit_legs[0].exit_fees) == "0.00"
    select_query = _normalized(session.calls[1][0])
    assert "m.role IN" not in select_query
    assert "m.tradebook_id = tr.tradebook_id" in select_query
    assert session.calls[2][1] == {"trade_ids": [_TRADE_ID]}
    assert "FOR UPDATE" not in select_query


def test_trade_get_for_update_locks_trade_row() -> None:
    """
    Verify locking read used before exit-quantity checks locks only the trade row.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Concurrent writers of one trade queue on the row lock until commit.
    Raises:
        AssertionError: If lock clause is missing or misplaced.
    Side Effects:
        None.
    """
    session = _ScriptedSession(one=[{"wrapped_dek": None}, None])
    repository = PostgresTradesRepository(session=session, codecs=_codecs(session))

    trade = repository.get(
        tradebook_id=_TRADEBOOK_ID,
        trade_id=_TRADE_ID,
        user_id=_USER,
        for_update=True,
    )

    assert trade is None
    select_query = _normalized(session.calls[1][0])
    assert select_query.endswith("FOR UPDATE OF tr")
    assert "m.tradebook_id = tr.tradebook_id" in select_query

def test_trade_get_propagates_tampered_ciphertext() -> None:
    tampered = bytearray(_CIPHER.encrypt(plaintext=b"AAPL"))
    tampered[20] ^= 0x01
    trade_row = {
        "id": _TRADE_ID,
        "tradebook_id": _TRADEBOOK_ID,
        "asset_class": "equities",
        "purchase_type": "cash",
        "order_type": "market",
        "symbol": bytes(tampered),
        "entry_date": _NOW,
        "entry_quantity": _CIPHER.encrypt(plaintext=b"1"),
        "entry_price": _CIPHER.encrypt(plaintext=b"1"),
        "entry_fees": None,
        "created_at": _NOW,
        "updated_at": _NOW,
    }
    session = _ScriptedSession(one=[{"wrapped_dek": None}, trade_row], many=[()])
    repository = PostgresTradesRepository(session=session, codecs=_codecs(session))

    with pytest.raises(AuthenticationError):
        repository.get(tradebook_id=_TRADEBOOK_ID, trade_id=_TRADE_ID, user_id=_USER)


def test_trade_row_with_unknown_enum_is_store_error() -> None:
    trade_row = {
        "id": _TRADE_ID,
        "tradebook_id": _TRADEBOOK_ID,
        "asset_class": "stocks",
        "purchase_type": "cash",
        "order_type": "market",
        "symbol": None,
        "entry_date": _NOW,
        "entry_quantity": _CIPHER.encrypt(plaintext=b"1"),
        "entry_price": _CIPHER.encrypt(plaintext=b"1"),
        "entry_fees": None,
        "created_at": _NOW,
        "updated_at": _NOW,
    }
    session = _ScriptedSession(one=[{"wrapped_dek": None}, trade_row], many=[()])
    repository = PostgresTradesRepository(session=session, codecs=_codecs(session))

    with pytest.raises(JournalStoreError, match="cannot map trade row"):
        repository.get(tradebook_id=_TRADEBOOK_ID, trade_id=_TRADE_ID, user_id=_USER)


def test_tradebook_create_and_get_roundtrip_encrypted_title() -> None:
    """
    Verify tradebook insert stores ciphertext title and read decrypts it with caller role.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Master-key mode stores NULL wrapped DEK.
    Raises:
        AssertionError: If title is stored in plaintext or decoded incorrectly.
    Side Effects:
        None.
    """
    session = _ScriptedSession(
        one=[{"id": _TRADEBOOK_ID, "created_at": _NOW, "updated_at": _NOW}],
    )
    repository = PostgresTradebooksRepository(session=session, codecs=_codecs(session))

    created = repository.create(
        tradebook_id=_TRADEBOOK_ID,
        owner_id=_USER,
        title="Options Wheel",
        now=_NOW,
    )

    parameters = session.calls[0][1]
    assert created.role is TradebookRole.OWNER
    assert parameters["wrapped_dek"] is None
    assert _CIPHER.decrypt(blob=parameters["title"]) == b"Options Wheel"

    read_session = _ScriptedSession(
        one=[
            {
                "id": _TRADEBOOK_ID,
                "owner_id": "user-alice",
                "title": parameters["title"],
                "wrapped_dek": None,
                "created_at": _NOW,
                "updated_at": _NOW,
                "role": "reader",
                "total_trades": 4,
            }
        ]
    )
    reader = PostgresTradebooksRepository(session=read_session, codecs=_codecs(read_session))
    tradebook = reader.get(tradebook_id=_TRADEBOOK_ID, user_id=UserId("user-bob"))

    assert tradebook is not None
    assert tradebook.title == "Options Wheel"
    assert tradebook.role is TradebookRole.READER
    assert tradebook.total_trades == 4
    assert read_session.calls[0][1] == {"tradebook_id": _TRADEBOOK_ID, "user_id": "user-bob"}


def test_tradebook_update_and_delete_use_role_predicates() -> None:
    session = _ScriptedSession(one=[{"wrapped_dek": None}, {"id": _TRADEBOOK_ID}, None])
    repository = PostgresTradebooksRepository(session=session, codecs=_codecs(session))

    assert repository.update_title(
        tradebook_id=_TRADEBOOK_ID, user_id=_USER, title="Renamed", now=_NOW
    )
    assert not repository.delete(tradebook_id=_TRADEBOOK_ID, owner_id=_USER)

    update_query = _normalized(session.calls[1][0])
    delete_query = _normalized(session.calls[2][0])
    assert _WRITE_PREDICATE.format(column="t.id") in update_query
    assert "m.role IN ('owner'))" in delete_query
    assert "t.owner_id = %(user_id)s" in delete_query


def test_members_grant_guards_owner_and_keeps_owner_row() -> None:
    session = _ScriptedSession(one=[{"tradebook_id": _TRADEBOOK_ID}])
    repository = PostgresMembersRepository(session=session)

    assert repository.grant(
        tradebook_id=_TRADEBOOK_ID,
        owner_id=_USER,
        user_id=UserId("user-bob"),
        role=TradebookRole.READER,
        now=_NOW,
    )

    query, parameters = session.calls[0]
    normalized = _normalized(query)
    assert "m.role IN ('owner'))" in normalized
    assert "ON CONFLICT (tradebook_id, user_id) DO UPDATE" in normalized
    assert "tradebook_members.role <> 'owner'" in normalized
    assert parameters["role"] == "reader"
