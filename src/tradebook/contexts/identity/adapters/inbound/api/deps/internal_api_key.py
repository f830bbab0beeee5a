from __future__ import annotations

import hmac

from starlette.requests import Request

from tradebook.platform.errors import TradebookError

INTERNAL_API_KEY_HEADER = "X-Internal-Api-Key"


class RequireInternalApiKeyDependency:
    """
    RequireInternalApiKeyDependency — shared-secret gate for internal user-sync webhooks.

    Related:
      - src/tradebook/contexts/journal/adapters/inbound/api/routes/users.py
      - apps/api/wiring/modules/identity.py
    """

    def __init__(self, *, secret: str) -> None:
        normalized_secret = secret.strip()
        if not normalized_secret:
            raise ValueError("RequireInternalApiKeyDependency requires non-empty secret")
        self._secret = normalized_secret.encode("utf-8")

    def __call__(self, request: Request) -> None:
        provided = request.headers.get(INTERNAL_API_KEY_HEADER, "").strip().encode("utf-8")
        if not provided or not hmac.compare_digest(provided, self._secret):
            raise TradebookError(code="unauthorized", message="Invalid internal API key")


__all__ = ["INTERNAL_API_KEY_HEADER", "RequireInternalApiKeyDependency"]
