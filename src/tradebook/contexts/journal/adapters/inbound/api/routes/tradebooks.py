"""
Tradebook API routes: CRUD, bulk delete and membership sharing.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict

from tradebook.contexts.identity.adapters.inbound.api.deps import RequireCurrentUserDependency
from tradebook.contexts.identity.application.ports.current_user import CurrentUserPrincipal
from tradebook.contexts.journal.application.use_cases import (
    DEFAULT_PAGE_LIMIT,
    CreateTradebookUseCase,
    DeleteAllTradebooksUseCase,
    DeleteTradebookUseCase,
    GetTradebookUseCase,
    ListTradebooksUseCase,
    PageRequest,
    RevokeTradebookMemberUseCase,
    ShareTradebookUseCase,
    UpdateTradebookUseCase,
)
from tradebook.contexts.journal.domain.entities import Tradebook

from ._common import parse_user_id


class CreateTradebookRequest(BaseModel):
    """API payload for `POST /tradebooks`."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None


class UpdateTradebookRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str


class ShareTradebookRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    role: str


class TradebookResponse(BaseModel):
    """
    TradebookResponse — decrypted tradebook projection with caller role.

    Related:
      - src/tradebook/contexts/journal/domain/entities/tradebook.py
    """

    id: str
    owner_id: str
    title: str
    role: str
    total_trades: int
    created_at: datetime
    updated_at: datetime


class TradebookListResponse(BaseModel):
    items: list[TradebookResponse]
    page: int
    limit: int


class TradebookMemberResponse(BaseModel):
    tradebook_id: str
    user_id: str
    role: str


class DeletedCountResponse(BaseModel):
    deleted: int


def build_tradebooks_router(
    *,
    create_use_case: CreateTradebookUseCase,
    get_use_case: GetTradebookUseCase,
    list_use_case: ListTradebooksUseCase,
    update_use_case: UpdateTradebookUseCase,
    delete_use_case: DeleteTradebookUseCase,
    delete_all_use_case: DeleteAllTradebooksUseCase,
    share_use_case: ShareTradebookUseCase,
    revoke_use_case: RevokeTradebookMemberUseCase,
    current_user_dependency: RequireCurrentUserDependency,
) -> APIRouter:
    """
    Build router exposing tradebook endpoints for the authenticated user.

    Related:
      - src/tradebook/contexts/journal/application/use_cases
      - src/tradebook/contexts/identity/adapters/inbound/api/deps/current_user.py
      - apps/api/wiring/modules/journal.py

    Args:
        create_use_case: Tradebook create use-case.
        get_use_case: Tradebook get use-case.
        list_use_case: Tradebook list use-case.
        update_use_case: Tradebook title update use-case.
        delete_use_case: Single tradebook delete use-case.
        delete_all_use_case: Bulk delete of owned tradebooks.
        share_use_case: Membership grant use-case.
        revoke_use_case: Membership revoke use-case.
        current_user_dependency: Bearer-token principal dependency.
    Returns:
        APIRouter: Configured router.
    Assumptions:
        Use-cases raise `TradebookError` that global handlers map to HTTP responses.
    Raises:
        ValueError: If required dependencies are missing.
    Side Effects:
        None.
    """
    if create_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_tradebooks_router requires create_use_case")
    if get_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_tradebooks_router requires get_use_case")
    if list_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_tradebooks_router requires list_use_case")
    if update_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_tradebooks_router requires update_use_case")
    if delete_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_tradebooks_router requires delete_use_case")
    if delete_all_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_tradebooks_router requires delete_all_use_case")
    if share_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_tradebooks_router requires share_use_case")
    if revoke_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_tradebooks_router requires revoke_use_case")
    if current_user_dependency is None:  # type: ignore[truthy-bool]
        raise ValueError("build_tradebooks_router requires current_user_dependency")

    router = APIRouter(tags=["tradebooks"])

    @router.post("/tradebooks", response_model=TradebookResponse, status_code=201)
    def post_tradebook(
        request: CreateTradebookRequest,
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> TradebookResponse:
        tradebook = create_use_case.execute(user_id=principal.user_id, title=request.title)
        return _to_tradebook_response(tradebook=tradebook)

    @router.get("/tradebooks", response_model=TradebookListResponse)
    def get_tradebooks(
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> TradebookListResponse:
        """
        List tradebooks visible to current user.

        Args:
            page: 1-based page number; invalid values fall back to 1.
            limit: Page size; invalid values fall back to default, capped at maximum.
            principal: Authenticated principal.
        Returns:
            TradebookListResponse: Page of tradebooks with normalized window.
        Assumptions:
            Ordering is `updated_at DESC` with identifier tie-break.
        Raises:
            TradebookError: On storage failures.
        Side Effects:
            Reads storage.
        """
        page_request = PageRequest.from_raw(page=page, limit=limit)
        items = list_use_case.execute(user_id=principal.user_id, page=page_request)
        return TradebookListResponse(
            items=[_to_tradebook_response(tradebook=item) for item in items],
            page=page_request.page,
            limit=page_request.limit,
        )

    @router.delete("/tradebooks", response_model=DeletedCountResponse)
    def delete_tradebooks(
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> DeletedCountResponse:
        deleted = delete_all_use_case.execute(user_id=principal.user_id)
        return DeletedCountResponse(deleted=deleted)

    @router.get("/tradebooks/{tradebook_id}", response_model=TradebookResponse)
    def get_tradebook(
        tradebook_id: UUID,
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> TradebookResponse:
        tradebook = get_use_case.execute(user_id=principal.user_id, tradebook_id=tradebook_id)
        return _to_tradebook_response(tradebook=tradebook)

    @router.patch("/tradebooks/{tradebook_id}", response_model=TradebookResponse)
    def patch_tradebook(
        tradebook_id: UUID,
        request: UpdateTradebookRequest,
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> TradebookResponse:
        tradebook = update_use_case.execute(
            user_id=principal.user_id,
            tradebook_id=tradebook_id,
            title=request.title,
        )
        return _to_tradebook_response(tradebook=tradebook)

    @router.delete("/tradebooks/{tradebook_id}", status_code=204, response_model=None)
    def delete_tradebook(
        tradebook_id: UUID,
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> Response:
        delete_use_case.execute(user_id=principal.user_id, tradebook_id=tradebook_id)
        return Response(status_code=204)

    @router.put(
        "/tradebooks/{tradebook_id}/members/{member_id}",
        response_model=TradebookMemberResponse,
    )
    def put_tradebook_member(
        tradebook_id: UUID,
        member_id: str,
        request: ShareTradebookRequest,
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> TradebookMemberResponse:
        """
        Grant or change `editor`/`reader` membership; owner only.

        Args:
            tradebook_id: Target tradebook.
            member_id: User receiving access.
            request: Role payload.
            principal: Authenticated owner.
        Returns:
            TradebookMemberResponse: Granted membership.
        Assumptions:
            Non-owners receive the same 404 as for missing tradebooks.
        Raises:
            TradebookError: On validation, not found or storage failures.
        Side Effects:
            Writes one membership row.
        """
        member_user_id = parse_user_id(raw=member_id, path="path.member_id")
        role = share_use_case.execute(
            user_id=principal.user_id,
            tradebook_id=tradebook_id,
            member_id=member_user_id,
            role=request.role,
        )
        return TradebookMemberResponse(
            tradebook_id=str(tradebook_id),
            user_id=str(member_user_id),
            role=role.value,
        )

    @router.delete(
        "/tradebooks/{tradebook_id}/members/{member_id}",
        status_code=204,
        response_model=None,
    )
    def delete_tradebook_member(
        tradebook_id: UUID,
        member_id: str,
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> Response:
        revoke_use_case.execute(
            user_id=principal.user_id,
            tradebook_id=tradebook_id,
            member_id=parse_user_id(raw=member_id, path="path.member_id"),
        )
        return Response(status_code=204)

    return router


def _to_tradebook_response(*, tradebook: Tradebook) -> TradebookResponse:
    return TradebookResponse(
        id=str(tradebook.tradebook_id),
        owner_id=str(tradebook.owner_id),
        title=tradebook.title,
        role=tradebook.role.value,
        total_trades=tradebook.total_trades,
        created_at=tradebook.created_at,
        updated_at=tradebook.updated_at,
    )
