"""
Internal user-sync webhook routes guarded by the internal API key.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from tradebook.contexts.identity.adapters.inbound.api.deps import RequireInternalApiKeyDependency
from tradebook.contexts.journal.application.use_cases import DeleteUserUseCase, UpsertUserUseCase

from ._common import parse_user_id


def build_internal_users_router(
    *,
    upsert_use_case: UpsertUserUseCase,
    delete_use_case: DeleteUserUseCase,
    internal_api_key_dependency: RequireInternalApiKeyDependency,
) -> APIRouter:
    """
    Build router for identity-provider user lifecycle webhooks.

    Args:
        upsert_use_case: User upsert use-case.
        delete_use_case: User delete use-case (cascades owned tradebooks).
        internal_api_key_dependency: Shared-secret gate.
    Returns:
        APIRouter: Configured router.
    Assumptions:
        Each call runs in a transaction bound to the subject user.
    Raises:
        ValueError: If required dependencies are missing.
    Side Effects:
        None.
    """
    if upsert_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_internal_users_router requires upsert_use_case")
    if delete_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_internal_users_router requires delete_use_case")
    if internal_api_key_dependency is None:  # type: ignore[truthy-bool]
        raise ValueError("build_internal_users_router requires internal_api_key_dependency")

    router = APIRouter(
        tags=["internal"],
        dependencies=[Depends(internal_api_key_dependency)],
    )

    @router.put("/internal/users/{user_id}", status_code=204, response_model=None)
    def put_user(user_id: str) -> Response:
        upsert_use_case.execute(user_id=parse_user_id(raw=user_id, path="path.user_id"))
        return Response(status_code=204)

    @router.delete("/internal/users/{user_id}", status_code=204, response_model=None)
    def delete_user(user_id: str) -> Response:
        delete_use_case.execute(user_id=parse_user_id(raw=user_id, path="path.user_id"))
        return Response(status_code=204)

    return router
