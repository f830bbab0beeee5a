from __future__ import annotations

from starlette.requests import Request

from tradebook.contexts.identity.application.ports.current_user import (
    CurrentUser,
    CurrentUserPrincipal,
    CurrentUserUnauthorizedError,
)
from tradebook.platform.errors import TradebookError

_BEARER_PREFIX = "bearer "


class RequireCurrentUserDependency:
    """
    RequireCurrentUserDependency — FastAPI dependency resolving the authenticated user.

    Related:
      - src/tradebook/contexts/identity/application/ports/current_user.py
      - src/tradebook/contexts/identity/adapters/outbound/security/current_user/
        jwt_bearer_current_user.py
      - src/tradebook/contexts/journal/adapters/inbound/api/routes/tradebooks.py
    """

    def __init__(self, *, current_user: CurrentUser) -> None:
        if current_user is None:  # type: ignore[truthy-bool]
            raise ValueError("RequireCurrentUserDependency requires current_user")
        self._current_user = current_user

    def __call__(self, request: Request) -> CurrentUserPrincipal:
        """
        Resolve authenticated principal from the `Authorization: Bearer` header.

        Args:
            request: FastAPI HTTP request.
        Returns:
            CurrentUserPrincipal: Verified user context.
        Assumptions:
            Scheme comparison is case-insensitive.
        Raises:
            TradebookError: `unauthorized` for missing or invalid tokens.
        Side Effects:
            None.
        """
        token = _bearer_token(header=request.headers.get("authorization"))
        try:
            return self._current_user.require(token=token)
        except CurrentUserUnauthorizedError as error:
            raise TradebookError(
                code="unauthorized",
                message="Authentication required",
                details={"reason": error.code},
            ) from error


def _bearer_token(*, header: str | None) -> str | None:
    if header is None:
        return None
    if not header.lower().startswith(_BEARER_PREFIX):
        return None
    return header[len(_BEARER_PREFIX) :].strip() or None


__all__ = ["RequireCurrentUserDependency"]
