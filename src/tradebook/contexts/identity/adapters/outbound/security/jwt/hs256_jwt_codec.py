from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
from datetime import datetime, timezone
from typing import Any, Mapping

from tradebook.contexts.identity.application.ports.clock import IdentityClock
from tradebook.contexts.identity.application.ports.jwt_codec import (
    AccessTokenClaims,
    JwtCodec,
    JwtDecodeError,
)
from tradebook.shared_kernel.primitives import UserId

_ALGORITHM = "HS256"


class Hs256JwtCodec(JwtCodec):
    """
    Hs256JwtCodec — HS256 bearer tokens shared with the identity provider.

    Verifies signature, `exp`, optional `nbf`, and, when configured, `iss` and `aud`.

    Related:
      - src/tradebook/contexts/identity/application/ports/jwt_codec.py
      - src/tradebook/contexts/identity/adapters/outbound/security/current_user/
        jwt_bearer_current_user.py
      - apps/api/wiring/modules/identity.py
    """

    def __init__(
        self,
        *,
        secret_key: str,
        clock: IdentityClock,
        leeway_seconds: int = 0,
        issuer: str | None = None,
        audience: str | None = None,
    ) -> None:
        """
        Configure signing key, clock and expected registered claims.

        Args:
            secret_key: Shared HS256 secret.
            clock: UTC clock for temporal claims.
            leeway_seconds: Allowed clock skew for `exp` and `nbf`.
            issuer: Expected `iss`; not checked when omitted.
            audience: Expected `aud` entry; not checked when omitted.
        Returns:
            None.
        Assumptions:
            Blank issuer/audience are treated as not configured.
        Raises:
            ValueError: If secret is empty, clock missing, or leeway negative.
        Side Effects:
            None.
        """
        normalized_secret = secret_key.strip()
        if not normalized_secret:
            raise ValueError("Hs256JwtCodec requires non-empty secret_key")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("Hs256JwtCodec requires clock")
        if leeway_seconds < 0:
            raise ValueError("Hs256JwtCodec requires leeway_seconds >= 0")
        self._secret_key = normalized_secret.encode("utf-8")
        self._clock = clock
        self._leeway_seconds = leeway_seconds
        self._issuer = (issuer or "").strip() or None
        self._audience = (audience or "").strip() or None

    def encode(self, *, claims: AccessTokenClaims) -> str:
        payload: dict[str, Any] = {
            "exp": int(claims.expires_at.timestamp()),
            "iat": int(claims.issued_at.timestamp()),
            "sub": str(claims.user_id),
        }
        if self._issuer is not None:
            payload["iss"] = self._issuer
        if self._audience is not None:
            payload["aud"] = self._audience
        signing_input = ".".join(
            (
                _encode_segment(payload={"alg": _ALGORITHM, "typ": "JWT"}),
                _encode_segment(payload=payload),
            )
        )
        return f"{signing_input}.{_b64url(raw=self._sign(signing_input=signing_input))}"

    def decode(self, *, token: str) -> AccessTokenClaims:
        """
        Verify a compact token and return its typed claims.

        Args:
            token: Compact JWT from the `Authorization` header.
        Returns:
            AccessTokenClaims: Verified claims.
        Assumptions:
            Signature is checked before any payload field is trusted.
        Raises:
            JwtDecodeError: On malformed token, bad signature, or rejected claims.
            ValueError: If the clock returns a non-UTC datetime.
        Side Effects:
            None.
        """
        token_value = token.strip()
        if not token_value:
            raise JwtDecodeError(code="missing_token", message="JWT token is empty")
        segments = token_value.split(".")
        if len(segments) != 3:
            raise JwtDecodeError(
                code="invalid_token_format",
                message="JWT token must contain 3 dot-separated segments",
            )
        header_segment, payload_segment, signature_segment = segments
        if _decode_segment(segment=header_segment).get("alg") != _ALGORITHM:
            raise JwtDecodeError(code="invalid_header", message="JWT header must contain alg=HS256")

        expected = self._sign(signing_input=f"{header_segment}.{payload_segment}")
        if not hmac.compare_digest(expected, _unb64url(segment=signature_segment)):
            raise JwtDecodeError(
                code="invalid_signature",
                message="JWT signature verification failed",
            )

        payload = _decode_segment(segment=payload_segment)
        claims = _claims_from_payload(payload=payload)
        self._check_temporal_claims(payload=payload)
        self._check_issuer_and_audience(payload=payload)
        return claims

    def _sign(self, *, signing_input: str) -> bytes:
        return hmac.new(self._secret_key, signing_input.encode("utf-8"), hashlib.sha256).digest()

    def _check_temporal_claims(self, *, payload: Mapping[str, Any]) -> None:
        now = self._clock.now()
        now_offset = now.utcoffset()
        if now.tzinfo is None or now_offset is None or now_offset.total_seconds() != 0:
            raise ValueError("Hs256JwtCodec clock must return timezone-aware UTC datetime")
        now_ts = int(now.timestamp())
        if int(payload["exp"]) <= now_ts - self._leeway_seconds:
            raise JwtDecodeError(code="expired_token", message="JWT token is expired")
        not_before = payload.get("nbf")
        if not_before is not None and _as_int(value=not_before) > now_ts + self._leeway_seconds:
            raise JwtDecodeError(code="token_not_yet_valid", message="JWT token is not yet valid")

    def _check_issuer_and_audience(self, *, payload: Mapping[str, Any]) -> None:
        if self._issuer is not None and payload.get("iss") != self._issuer:
            raise JwtDecodeError(code="invalid_issuer", message="JWT issuer is not accepted")
        if self._audience is None:
            return
        raw_audience = payload.get("aud")
        audiences = raw_audience if isinstance(raw_audience, list) else [raw_audience]
        if self._audience not in audiences:
            raise JwtDecodeError(code="invalid_audience", message="JWT audience is not accepted")


def _claims_from_payload(*, payload: Mapping[str, Any]) -> AccessTokenClaims:
    """
    Build typed claims from a signature-verified payload.

    Args:
        payload: Decoded JWT payload.
    Returns:
        AccessTokenClaims: Subject and issue/expiry timestamps.
    Assumptions:
        `sub`, `iat` and `exp` are mandatory.
    Raises:
        JwtDecodeError: `invalid_claims` when fields are missing or malformed.
    Side Effects:
        None.
    """
    subject = str(payload.get("sub", "")).strip()
    if not subject or payload.get("iat") is None or payload.get("exp") is None:
        raise JwtDecodeError(
            code="invalid_claims",
            message="JWT payload must contain sub, iat, and exp",
        )
    try:
        return AccessTokenClaims(
            user_id=UserId(subject),
            issued_at=datetime.fromtimestamp(_as_int(value=payload["iat"]), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(_as_int(value=payload["exp"]), tz=timezone.utc),
        )
    except (OSError, OverflowError, ValueError) as error:
        raise JwtDecodeError(
            code="invalid_claims",
            message="JWT payload claims are malformed",
        ) from error


def _as_int(*, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise JwtDecodeError(code="invalid_claims", message="JWT numeric claim is malformed")
    return int(value)


def _encode_segment(*, payload: Mapping[str, Any]) -> str:
    return _b64url(raw=json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8"))


def _decode_segment(*, segment: str) -> dict[str, Any]:
    try:
        loaded = json.loads(_unb64url(segment=segment).decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise JwtDecodeError(
            code="invalid_token_format",
            message="JWT segment is not valid JSON",
        ) from error
    if not isinstance(loaded, dict):
        raise JwtDecodeError(
            code="invalid_token_format",
            message="JWT JSON segment must be an object",
        )
    return loaded


def _b64url(*, raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _unb64url(*, segment: str) -> bytes:
    padding = "=" * (-len(segment) % 4)
    try:
        return base64.urlsafe_b64decode(f"{segment}{padding}".encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as error:
        raise JwtDecodeError(
            code="invalid_token_format",
            message="JWT segment is not valid base64url",
        ) from error


__all__ = ["Hs256JwtCodec"]
