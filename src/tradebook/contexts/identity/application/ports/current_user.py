from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from tradebook.shared_kernel.primitives import UserId


@dataclass(frozen=True, slots=True)
class CurrentUserPrincipal:
    """
    CurrentUserPrincipal — authenticated user context for protected API endpoints.

    Related:
      - src/tradebook/contexts/identity/adapters/inbound/api/deps/current_user.py
      - src/tradebook/contexts/identity/adapters/outbound/security/current_user/
        jwt_bearer_current_user.py
    """

    user_id: UserId


class CurrentUserUnauthorizedError(ValueError):
    """
    CurrentUserUnauthorizedError — deterministic authorization failure of CurrentUser.

    Related:
      - src/tradebook/contexts/identity/adapters/inbound/api/deps/current_user.py
    """

    def __init__(self, *, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class CurrentUser(Protocol):
    """
    CurrentUser — port resolving `CurrentUserPrincipal` from a bearer token.

    Related:
      - src/tradebook/contexts/identity/adapters/outbound/security/current_user/
        jwt_bearer_current_user.py
      - src/tradebook/contexts/identity/adapters/inbound/api/deps/current_user.py
    """

    def require(self, *, token: str | None) -> CurrentUserPrincipal:
        """
        Resolve authenticated user principal or raise unauthorized error.

        Args:
            token: Bearer token from `Authorization` header; may be missing.
        Returns:
            CurrentUserPrincipal: Authenticated user context.
        Assumptions:
            Token is signed with the deployment HS256 secret and not expired.
        Raises:
            CurrentUserUnauthorizedError: If token is missing or invalid.
        Side Effects:
            None.
        """
        ...


__all__ = ["CurrentUser", "CurrentUserPrincipal", "CurrentUserUnauthorizedError"]
