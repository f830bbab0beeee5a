from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from fastapi.testclient import TestClient

from apps.api.main.app import create_app
from tradebook.contexts.identity.adapters.outbound.security.jwt import Hs256JwtCodec
from tradebook.contexts.identity.application.ports.jwt_codec import AccessTokenClaims
from tradebook.platform.time import SystemClock
from tradebook.shared_kernel.primitives import UserId

_JWT_SECRET = "route-test-jwt-secret"
_INTERNAL_SECRET = "route-test-internal-secret"
_ENVIRON = {
    "TRADEBOOK_ENV": "test",
    "TRADEBOOK_JWT_SECRET": _JWT_SECRET,
    "TRADEBOOK_INTERNAL_API_SECRET": _INTERNAL_SECRET,
}
_TRADE_PAYLOAD = {
    "asset_class": "equities",
    "purchase_type": "cash",
    "order_type": "limit",
    "symbol": "aapl",
    "entry_date": "2026-09-01T14:30:00Z",
    "entry_quantity": "10",
    "entry_price": "187.25",
    "entry_fees": "1.00",
}


def _auth_headers(*, subject: str) -> dict[str, str]:
    """
    Build bearer header with a fresh HS256 token for the given subject.

    Args:
        subject: Identity provider user id.
    Returns:
        dict[str, str]: `Authorization` header mapping.
    Assumptions:
        Token is signed with the secret configured in `_ENVIRON`.
    Raises:
        None.
    Side Effects:
        None.
    """
    issued_at = datetime.now(timezone.utc).replace(microsecond=0)
    codec = Hs256JwtCodec(secret_key=_JWT_SECRET, clock=SystemClock())
    token = codec.encode(
        claims=AccessTokenClaims(
            user_id=UserId(subject),
            issued_at=issued_at,
            expires_at=issued_at + timedelta(minutes=15),
        )
    )
    return {"Authorization": f"Bearer {token}"}


_ALICE = _auth_headers(subject="user-alice")
_BOB = _auth_headers(subject="user-bob")


def _client() -> TestClient:
    return TestClient(create_app(environ=_ENVIRON))


def test_tradebook_crud_flow_is_scoped_to_authenticated_owner() -> None:
    """
    Verify create/list/get/patch/delete flow and that other users see nothing.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        App uses in-memory storage with master-key encryption in `test` env without DSN.
    Raises:
        AssertionError: If API contract or isolation is broken.
    Side Effects:
        None.
    """
    client = _client()

    created = client.post("/tradebooks", json={"title": "  Swing trades  "}, headers=_ALICE)
    assert created.status_code == 201
    body = created.json()
    tradebook_id = body["id"]
    assert body["title"] == "Swing trades"
    assert body["owner_id"] == "user-alice"
    assert body["role"] == "owner"
    assert body["total_trades"] == 0

    untitled = client.post("/tradebooks", json={}, headers=_ALICE)
    assert untitled.json()["title"] == "Untitled Tradebook"

    listed = client.get("/tradebooks", params={"limit": 500}, headers=_ALICE)
    assert listed.status_code == 200
    assert listed.json()["limit"] == 100
    assert {item["id"] for item in listed.json()["items"]} == {tradebook_id, untitled.json()["id"]}

    assert client.get("/tradebooks", headers=_BOB).json()["items"] == []
    for response in (
        client.get(f"/tradebooks/{tradebook_id}", headers=_BOB),
        client.patch(f"/tradebooks/{tradebook_id}", json={"title": "mine"}, headers=_BOB),
        client.delete(f"/tradebooks/{tradebook_id}", headers=_BOB),
    ):
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"

    patched = client.patch(
        f"/tradebooks/{tradebook_id}",
        json={"title": "Position trades"},
        headers=_ALICE,
    )
    assert patched.status_code == 200
    assert patched.json()["title"] == "Position trades"

    assert client.delete(f"/tradebooks/{tradebook_id}", headers=_ALICE).status_code == 204
    assert client.get(f"/tradebooks/{tradebook_id}", headers=_ALICE).status_code == 404

    bulk = client.delete("/tradebooks", headers=_ALICE)
    assert bulk.status_code == 200
    assert bulk.json() == {"deleted": 1}


def test_tradebook_routes_require_bearer_token_and_strict_payloads() -> None:
    client = _client()

    unauthenticated = client.get("/tradebooks")
    assert unauthenticated.status_code == 401
    assert unauthenticated.json()["error"]["code"] == "unauthorized"

    extra = client.post("/tradebooks", json={"title": "x", "owner_id": "user-bob"}, headers=_ALICE)
    assert extra.status_code == 422
    assert extra.json()["error"]["details"]["errors"][0]["path"] == "body.owner_id"

    bad_id = client.get("/tradebooks/not-a-uuid", headers=_ALICE)
    assert bad_id.status_code == 422


def test_trade_routes_record_exits_and_enforce_member_roles() -> None:
    """
    Verify trade lifecycle with exit legs and reader/editor permissions via sharing.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Readers may read trades; only owners and editors may write them.
    Raises:
        AssertionError: If permissions or derived quantities differ.
    Side Effects:
        None.
    """
    client = _client()
    tradebook_id = client.post("/tradebooks", json={"title": "Shared"}, headers=_ALICE).json()["id"]

    created = client.post(
        f"/tradebooks/{tradebook_id}/trades",
        json=_TRADE_PAYLOAD,
        headers=_ALICE,
    )
    assert created.status_code == 201
    trade = created.json()
    trade_id = trade["id"]
    assert trade["symbol"] == "AAPL"
    assert Decimal(trade["open_quantity"]) == Decimal("10")
    assert trade["exit_legs"] == []

    exit_leg = client.post(
        f"/tradebooks/{tradebook_id}/trades/{trade_id}/exits",
        json={"exit_date": "2026-09-03T15:00:00Z", "exit_quantity": "4", "exit_price": "190"},
        headers=_ALICE,
    )
    assert exit_leg.status_code == 201
    assert exit_leg.json()["exit_fees"] is None

    too_much = client.post(
        f"/tradebooks/{tradebook_id}/trades/{trade_id}/exits",
        json={"exit_date": "2026-09-04T15:00:00Z", "exit_quantity": "7", "exit_price": "191"},
        headers=_ALICE,
    )
    assert too_much.status_code == 422

    fetched = client.get(f"/tradebooks/{tradebook_id}/trades/{trade_id}", headers=_ALICE).json()
    assert Decimal(fetched["open_quantity"]) == Decimal("6")
    assert len(fetched["exit_legs"]) == 1

    assert client.get(f"/tradebooks/{tradebook_id}/trades", headers=_BOB).status_code == 404

    shared = client.put(
        f"/tradebooks/{tradebook_id}/members/user-bob",
        json={"role": "reader"},
        headers=_ALICE,
    )
    assert shared.status_code == 200
    assert shared.json() == {"tradebook_id": tradebook_id, "user_id": "user-bob", "role": "reader"}

    as_reader = client.get(f"/tradebooks/{tradebook_id}/trades", headers=_BOB)
    assert as_reader.status_code == 200
    assert [item["id"] for item in as_reader.json()["items"]] == [trade_id]
    assert client.get(f"/tradebooks/{tradebook_id}", headers=_BOB).json()["role"] == "reader"
    reader_write = client.post(
        f"/tradebooks/{tradebook_id}/trades",
        json=_TRADE_PAYLOAD,
        headers=_BOB,
    )
    assert reader_write.status_code == 404

    client.put(
        f"/tradebooks/{tradebook_id}/members/user-bob",
        json={"role": "editor"},
        headers=_ALICE,
    )
    updated = client.put(
        f"/tradebooks/{tradebook_id}/trades/{trade_id}",
        json={**_TRADE_PAYLOAD, "symbol": "msft"},
        headers=_BOB,
    )
    assert updated.status_code == 200
    assert updated.json()["symbol"] == "MSFT"
    assert client.delete(f"/tradebooks/{tradebook_id}", headers=_BOB).status_code == 404

    revoked = client.delete(f"/tradebooks/{tradebook_id}/members/user-bob", headers=_ALICE)
    assert revoked.status_code == 204
    assert client.get(f"/tradebooks/{tradebook_id}", headers=_BOB).status_code == 404

    bad_role = client.put(
        f"/tradebooks/{tradebook_id}/members/user-bob",
        json={"role": "owner"},
        headers=_ALICE,
    )
    assert bad_role.status_code == 422

    deleted = client.delete(f"/tradebooks/{tradebook_id}/trades/{trade_id}", headers=_ALICE)
    assert deleted.status_code == 204
    assert client.get(f"/tradebooks/{tradebook_id}", headers=_ALICE).json()["total_trades"] == 0


def test_trade_routes_reject_unknown_enum_values() -> None:
    client = _client()
    tradebook_id = client.post("/tradebooks", json={}, headers=_ALICE).json()["id"]

    response = client.post(
        f"/tradebooks/{tradebook_id}/trades",
        json={**_TRADE_PAYLOAD, "asset_class": "stocks"},
        headers=_ALICE,
    )

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "validation_error"


def test_internal_user_routes_require_internal_key_and_cascade_delete() -> None:
    """
    Verify user sync webhooks are gated and user deletion removes owned tradebooks.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Deleting a missing user reports `not_found`.
    Raises:
        AssertionError: If gating or cascade behavior differs.
    Side Effects:
        None.
    """
    client = _client()
    internal = {"X-Internal-Api-Key": _INTERNAL_SECRET}

    assert client.put("/internal/users/user-carol").status_code == 401
    assert client.put("/internal/users/user-carol", headers=internal).status_code == 204

    carol = _auth_headers(subject="user-carol")
    tradebook_id = client.post("/tradebooks", json={}, headers=carol).json()["id"]

    assert client.delete("/internal/users/user-carol", headers=internal).status_code == 204
    assert client.get(f"/tradebooks/{tradebook_id}", headers=carol).status_code == 404
    missing = client.delete("/internal/users/user-carol", headers=internal)
    assert missing.status_code == 404
