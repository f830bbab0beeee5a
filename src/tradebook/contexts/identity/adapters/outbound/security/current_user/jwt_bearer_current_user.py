from __future__ import annotations

from tradebook.contexts.identity.application.ports.current_user import (
    CurrentUser,
    CurrentUserPrincipal,
    CurrentUserUnauthorizedError,
)
from tradebook.contexts.identity.application.ports.jwt_codec import JwtCodec, JwtDecodeError


class JwtBearerCurrentUser(CurrentUser):
    """
    JwtBearerCurrentUser — resolves principal from a verified bearer JWT.

    The token subject becomes the journal `UserId`; no user lookup is performed.

    Related:
      - src/tradebook/contexts/identity/adapters/outbound/security/jwt/hs256_jwt_codec.py
      - src/tradebook/contexts/identity/adapters/inbound/api/deps/current_user.py
    """

    def __init__(self, *, jwt_codec: JwtCodec) -> None:
        if jwt_codec is None:  # type: ignore[truthy-bool]
            raise ValueError("JwtBearerCurrentUser requires jwt_codec")
        self._jwt_codec = jwt_codec

    def require(self, *, token: str | None) -> CurrentUserPrincipal:
        if token is None or not token.strip():
            raise CurrentUserUnauthorizedError(
                code="missing_token",
                message="Authentication required",
            )
        try:
            claims = self._jwt_codec.decode(token=token)
        except JwtDecodeError as error:
            raise CurrentUserUnauthorizedError(code=error.code, message=error.message) from error
        return CurrentUserPrincipal(user_id=claims.user_id)


__all__ = ["JwtBearerCurrentUser"]
