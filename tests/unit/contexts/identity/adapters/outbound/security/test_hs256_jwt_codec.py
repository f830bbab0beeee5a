from __future__ import annotations

import base64
import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone

import pytest

from tradebook.contexts.identity.adapters.outbound.security.current_user import (
    JwtBearerCurrentUser,
)
from tradebook.contexts.identity.adapters.outbound.security.jwt import Hs256JwtCodec
from tradebook.contexts.identity.application.ports.clock import IdentityClock
from tradebook.contexts.identity.application.ports.current_user import (
    CurrentUserUnauthorizedError,
)
from tradebook.contexts.identity.application.ports.jwt_codec import (
    AccessTokenClaims,
    JwtDecodeError,
)
from tradebook.shared_kernel.primitives import UserId

_NOW = datetime(2026, 10, 1, 12, 0, 0, tzinfo=timezone.utc)


class _FixedClock(IdentityClock):
    """
    Deterministic UTC clock used by JWT expiration tests.
    """

    def __init__(self, *, now_value: datetime) -> None:
        self._now_value = now_value

    def now(self) -> datetime:
        return self._now_value


def _claims(
    *,
    subject: str = "user-alice",
    ttl: timedelta = timedelta(minutes=15),
) -> AccessTokenClaims:
    return AccessTokenClaims(
        user_id=UserId(subject),
        issued_at=_NOW,
        expires_at=_NOW + ttl,
    )


def _codec(
    *,
    secret: str = "unit-test-secret",
    now: datetime = _NOW,
    leeway: int = 0,
) -> Hs256JwtCodec:
    return Hs256JwtCodec(
        secret_key=secret,
        clock=_FixedClock(now_value=now),
        leeway_seconds=leeway,
    )


def test_hs256_jwt_codec_round_trips_claims() -> None:
    """
    Verify encoded token decodes back into identical typed claims.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Timestamps are whole seconds.
    Raises:
        AssertionError: If decoded claims differ.
    Side Effects:
        None.
    """
    codec = _codec()
    claims = _claims()

    token = codec.encode(claims=claims)

    assert token.count(".") == 2
    assert codec.decode(token=token) == claims


def test_hs256_jwt_codec_rejects_token_signed_with_other_secret() -> None:
    token = _codec(secret="other-secret").encode(claims=_claims())

    with pytest.raises(JwtDecodeError) as error_info:
        _codec().decode(token=token)

    assert error_info.value.code == "invalid_signature"


def test_hs256_jwt_codec_rejects_swapped_payload() -> None:
    """
    Verify a payload lifted from another token fails signature verification.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Signature covers header and payload segments.
    Raises:
        AssertionError: If forged subject is accepted.
    Side Effects:
        None.
    """
    codec = _codec()
    alice_token = codec.encode(claims=_claims(subject="user-alice"))
    bob_token = codec.encode(claims=_claims(subject="user-bob"))
    header, _, signature = alice_token.split(".")
    forged = f"{header}.{bob_token.split('.')[1]}.{signature}"

    with pytest.raises(JwtDecodeError) as error_info:
        codec.decode(token=forged)

    assert error_info.value.code == "invalid_signature"


def test_hs256_jwt_codec_rejects_expired_token_and_honours_leeway() -> None:
    token = _codec().encode(claims=_claims(ttl=timedelta(minutes=1)))
    later = _NOW + timedelta(minutes=1, seconds=10)

    with pytest.raises(JwtDecodeError) as error_info:
        _codec(now=later).decode(token=token)

    assert error_info.value.code == "expired_token"
    assert _codec(now=later, leeway=30).decode(token=token).user_id == UserId("user-alice")


@pytest.mark.parametrize(
    ("token", "code"),
    [
        ("", "missing_token"),
        ("abc.def", "invalid_token_format"),
        ("e30.e30.e30", "invalid_header"),
        ("!!!.e30.e30", "invalid_token_format"),
    ],
)
def test_hs256_jwt_codec_rejects_malformed_tokens(token: str, code: str) -> None:
    with pytest.raises(JwtDecodeError) as error_info:
        _codec().decode(token=token)

    assert error_info.value.code == code


def test_hs256_jwt_codec_validates_constructor_arguments() -> None:
    with pytest.raises(ValueError):
        Hs256JwtCodec(secret_key="  ", clock=_FixedClock(now_value=_NOW))
    with pytest.raises(ValueError):
        Hs256JwtCodec(secret_key="secret", clock=None)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        Hs256JwtCodec(secret_key="secret", clock=_FixedClock(now_value=_NOW), leeway_seconds=-1)


def test_jwt_bearer_current_user_maps_token_subject_to_principal() -> None:
    """
    Verify bearer resolver returns the token subject as journal user id.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        No user lookup is performed.
    Raises:
        AssertionError: If principal or error codes differ.
    Side Effects:
        None.
    """
    codec = _codec()
    current_user = JwtBearerCurrentUser(jwt_codec=codec)

    principal = current_user.require(token=codec.encode(claims=_claims(subject="user-carol")))

    assert principal.user_id == UserId("user-carol")
    with pytest.raises(CurrentUserUnauthorizedError) as missing:
        current_user.require(token=None)
    assert missing.value.code == "missing_token"
    with pytest.raises(CurrentUserUnauthorizedError) as forged:
        current_user.require(token=_codec(secret="other").encode(claims=_claims()))
    assert forged.value.code == "invalid_signature"


def test_hs256_jwt_codec_checks_configured_issuer_and_audience() -> None:
    """
    Verify `iss`/`aud` are enforced only when the codec is configured with them.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Audience may be a string or a list containing the expected value.
    Raises:
        AssertionError: If foreign issuer or audience is accepted.
    Side Effects:
        None.
    """
    clock = _FixedClock(now_value=_NOW)
    strict = Hs256JwtCodec(
        secret_key="unit-test-secret",
        clock=clock,
        issuer="https://auth.example.test",
        audience="tradebook-api",
    )
    foreign_issuer = Hs256JwtCodec(
        secret_key="unit-test-secret",
        clock=clock,
        issuer="https://other.example.test",
        audience="tradebook-api",
    )
    foreign_audience = Hs256JwtCodec(
        secret_key="unit-test-secret",
        clock=clock,
        issuer="https://auth.example.test",
        audience="billing-api",
    )

    assert strict.decode(token=strict.encode(claims=_claims())) == _claims()
    assert _codec().decode(token=strict.encode(claims=_claims())) == _claims()

    with pytest.raises(JwtDecodeError) as issuer_error:
        strict.decode(token=foreign_issuer.encode(claims=_claims()))
    assert issuer_error.value.code == "invalid_issuer"

    with pytest.raises(JwtDecodeError) as audience_error:
        strict.decode(token=foreign_audience.encode(claims=_claims()))
    assert audience_error.value.code == "invalid_audience"

    with pytest.raises(JwtDecodeError) as missing_error:
        strict.decode(token=_codec().encode(claims=_claims()))
    assert missing_error.value.code == "invalid_issuer"


def test_hs256_jwt_codec_rejects_token_before_not_before_claim() -> None:
    header = base64.urlsafe_b64encode(b'{"alg":"HS256","typ":"JWT"}').decode().rstrip("=")
    not_before = int((_NOW + timedelta(minutes=5)).timestamp())
    payload = json.dumps(
        {
            "sub": "user-alice",
            "iat": int(_NOW.timestamp()),
            "exp": int((_NOW + timedelta(hours=1)).timestamp()),
            "nbf": not_before,
        }
    ).encode("utf-8")
    payload_segment = base64.urlsafe_b64encode(payload).decode().rstrip("=")
    signing_input = f"{header}.{payload_segment}".encode("utf-8")
    signature = hmac.new(b"unit-test-secret", signing_input, hashlib.sha256).digest()
    token = (
        f"{header}.{payload_segment}."
        f"{base64.urlsafe_b64encode(signature).decode().rstrip('=')}"
    )

    with pytest.raises(JwtDecodeError) as error_info:
        _codec().decode(token=token)

    assert error_info.value.code == "token_not_yet_valid"
    assert _codec(now=_NOW + timedelta(minutes=6)).decode(token=token).user_id == UserId(
        "user-alice"
    )
