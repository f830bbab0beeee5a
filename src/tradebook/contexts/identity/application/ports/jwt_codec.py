from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from tradebook.shared_kernel.primitives import UserId


@dataclass(frozen=True, slots=True)
class AccessTokenClaims:
    """
    AccessTokenClaims — typed claims of a bearer access token.

    Related:
      - src/tradebook/contexts/identity/adapters/outbound/security/jwt/hs256_jwt_codec.py
    """

    user_id: UserId
    issued_at: datetime
    expires_at: datetime

    def __post_init__(self) -> None:
        _ensure_utc_datetime(name="issued_at", value=self.issued_at)
        _ensure_utc_datetime(name="expires_at", value=self.expires_at)
        if self.expires_at <= self.issued_at:
            raise ValueError("AccessTokenClaims.expires_at must be after issued_at")


class JwtDecodeError(ValueError):
    """JwtDecodeError — deterministic token verification failure with stable `code`."""

    def __init__(self, *, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class JwtCodec(Protocol):
    """
    JwtCodec — port signing and verifying access tokens.

    Related:
      - src/tradebook/contexts/identity/adapters/outbound/security/jwt/hs256_jwt_codec.py
      - src/tradebook/contexts/identity/adapters/outbound/security/current_user/
        jwt_bearer_current_user.py
    """

    def encode(self, *, claims: AccessTokenClaims) -> str:
        ...

    def decode(self, *, token: str) -> AccessTokenClaims:
        """
        Verify token signature and expiration.

        Args:
            token: Compact JWT.
        Returns:
            AccessTokenClaims: Verified claims.
        Assumptions:
            Token uses HS256.
        Raises:
            JwtDecodeError: If token is malformed, forged or expired.
        Side Effects:
            None.
        """
        ...


def _ensure_utc_datetime(*, name: str, value: datetime) -> None:
    offset = value.utcoffset()
    if value.tzinfo is None or offset is None or offset.total_seconds() != 0:
        raise ValueError(f"AccessTokenClaims.{name} must be timezone-aware UTC datetime")


__all__ = ["AccessTokenClaims", "JwtCodec", "JwtDecodeError"]
