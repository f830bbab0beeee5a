"""
Trade API routes nested under a tradebook, including exit legs.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict

from tradebook.contexts.identity.adapters.inbound.api.deps import RequireCurrentUserDependency
from tradebook.contexts.identity.application.ports.current_user import CurrentUserPrincipal
from tradebook.contexts.journal.application.use_cases import (
    DEFAULT_PAGE_LIMIT,
    CreateTradeUseCase,
    DeleteTradeUseCase,
    ExitLegInput,
    GetTradeUseCase,
    ListTradesUseCase,
    PageRequest,
    RecordExitLegUseCase,
    TradeInput,
    UpdateTradeUseCase,
)
from tradebook.contexts.journal.domain.entities import ExitLeg, Trade


class TradeRequest(BaseModel):
    """
    TradeRequest — API payload for trade create and full update.

    Related:
      - src/tradebook/contexts/journal/application/use_cases/trade_input.py
    """

    model_config = ConfigDict(extra="forbid")

    asset_class: str
    purchase_type: str
    order_type: str
    symbol: str
    entry_date: datetime
    entry_quantity: Decimal
    entry_price: Decimal
    entry_fees: Decimal | None = None


class ExitLegRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    exit_date: datetime
    exit_quantity: Decimal
    exit_price: Decimal
    exit_fees: Decimal | None = None


class ExitLegResponse(BaseModel):
    id: str
    trade_id: str
    exit_date: datetime
    exit_quantity: Decimal
    exit_price: Decimal
    exit_fees: Decimal | None
    created_at: datetime


class TradeResponse(BaseModel):
    """TradeResponse — decrypted trade projection with derived open quantity."""

    id: str
    tradebook_id: str
    asset_class: str
    purchase_type: str
    order_type: str
    symbol: str
    entry_date: datetime
    entry_quantity: Decimal
    entry_price: Decimal
    entry_fees: Decimal | None
    open_quantity: Decimal
    exit_legs: list[ExitLegResponse]
    created_at: datetime
    updated_at: datetime


class TradeListResponse(BaseModel):
    items: list[TradeResponse]
    page: int
    limit: int


def build_trades_router(
    *,
    create_use_case: CreateTradeUseCase,
    get_use_case: GetTradeUseCase,
    list_use_case: ListTradesUseCase,
    update_use_case: UpdateTradeUseCase,
    delete_use_case: DeleteTradeUseCase,
    exit_leg_use_case: RecordExitLegUseCase,
    current_user_dependency: RequireCurrentUserDependency,
) -> APIRouter:
    """
    Build router exposing trade and exit-leg endpoints.

    Related:
      - src/tradebook/contexts/journal/application/use_cases/create_trade.py
      - src/tradebook/contexts/journal/application/use_cases/record_exit_leg.py
      - apps/api/wiring/modules/journal.py

    Args:
        create_use_case: Trade create use-case.
        get_use_case: Single trade read use-case.
        list_use_case: Trade list use-case.
        update_use_case: Trade update use-case.
        delete_use_case: Trade delete use-case.
        exit_leg_use_case: Exit leg record use-case.
        current_user_dependency: Bearer-token principal dependency.
    Returns:
        APIRouter: Configured router.
    Assumptions:
        Decimal fields are accepted as JSON strings or numbers and returned as strings.
    Raises:
        ValueError: If required dependencies are missing.
    Side Effects:
        None.
    """
    if create_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_trades_router requires create_use_case")
    if get_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_trades_router requires get_use_case")
    if list_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_trades_router requires list_use_case")
    if update_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_trades_router requires update_use_case")
    if delete_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_trades_router requires delete_use_case")
    if exit_leg_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_trades_router requires exit_leg_use_case")
    if current_user_dependency is None:  # type: ignore[truthy-bool]
        raise ValueError("build_trades_router requires current_user_dependency")

    router = APIRouter(tags=["trades"])

    @router.post(
        "/tradebooks/{tradebook_id}/trades",
        response_model=TradeResponse,
        status_code=201,
    )
    def post_trade(
        tradebook_id: UUID,
        request: TradeRequest,
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> TradeResponse:
        trade = create_use_case.execute(
            user_id=principal.user_id,
            tradebook_id=tradebook_id,
            trade_input=_to_trade_input(request=request),
        )
        return _to_trade_response(trade=trade)

    @router.get("/tradebooks/{tradebook_id}/trades", response_model=TradeListResponse)
    def get_trades(
        tradebook_id: UUID,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> TradeListResponse:
        page_request = PageRequest.from_raw(page=page, limit=limit)
        trades = list_use_case.execute(
            user_id=principal.user_id,
            tradebook_id=tradebook_id,
            page=page_request,
        )
        return TradeListResponse(
            items=[_to_trade_response(trade=trade) for trade in trades],
            page=page_request.page,
            limit=page_request.limit,
        )

    @router.get("/tradebooks/{tradebook_id}/trades/{trade_id}", response_model=TradeResponse)
    def get_trade(
        tradebook_id: UUID,
        trade_id: UUID,
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> TradeResponse:
        trade = get_use_case.execute(
            user_id=principal.user_id,
            tradebook_id=tradebook_id,
            trade_id=trade_id,
        )
        return _to_trade_response(trade=trade)

    @router.put("/tradebooks/{tradebook_id}/trades/{trade_id}", response_model=TradeResponse)
    def put_trade(
        tradebook_id: UUID,
        trade_id: UUID,
        request: TradeRequest,
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> TradeResponse:
        trade = update_use_case.execute(
            user_id=principal.user_id,
            tradebook_id=tradebook_id,
            trade_id=trade_id,
            trade_input=_to_trade_input(request=request),
        )
        return _to_trade_response(trade=trade)

    @router.delete(
        "/tradebooks/{tradebook_id}/trades/{trade_id}",
        status_code=204,
        response_model=None,
    )
    def delete_trade(
        tradebook_id: UUID,
        trade_id: UUID,
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> Response:
        delete_use_case.execute(
            user_id=principal.user_id,
            tradebook_id=tradebook_id,
            trade_id=trade_id,
        )
        return Response(status_code=204)

    @router.post(
        "/tradebooks/{tradebook_id}/trades/{trade_id}/exits",
        response_model=ExitLegResponse,
        status_code=201,
    )
    def post_exit_leg(
        tradebook_id: UUID,
        trade_id: UUID,
        request: ExitLegRequest,
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> ExitLegResponse:
        """
        Record one (partial) exit of a trade; owner or editor only.

        Args:
            tradebook_id: Owning tradebook.
            trade_id: Trade being exited.
            request: Exit leg payload.
            principal: Authenticated principal.
        Returns:
            ExitLegResponse: Recorded exit leg.
        Assumptions:
            Exit quantity cannot exceed remaining open quantity.
        Raises:
            TradebookError: On validation, not found or storage failures.
        Side Effects:
            Writes one exit leg row.
        """
        exit_leg = exit_leg_use_case.execute(
            user_id=principal.user_id,
            tradebook_id=tradebook_id,
            trade_id=trade_id,
            exit_input=ExitLegInput(
                exit_date=request.exit_date,
                exit_quantity=request.exit_quantity,
                exit_price=request.exit_price,
                exit_fees=request.exit_fees,
            ),
        )
        return _to_exit_leg_response(exit_leg=exit_leg)

    return router


def _to_trade_input(*, request: TradeRequest) -> TradeInput:
    return TradeInput(
        asset_class=request.asset_class,
        purchase_type=request.purchase_type,
        order_type=request.order_type,
        symbol=request.symbol,
        entry_date=request.entry_date,
        entry_quantity=request.entry_quantity,
        entry_price=request.entry_price,
        entry_fees=request.entry_fees,
    )


def _to_trade_response(*, trade: Trade) -> TradeResponse:
    return TradeResponse(
        id=str(trade.trade_id),
        tradebook_id=str(trade.tradebook_id),
        asset_class=trade.asset_class.value,
        purchase_type=trade.purchase_type.value,
        order_type=trade.order_type.value,
        symbol=trade.symbol,
        entry_date=trade.entry_date,
        entry_quantity=trade.entry_quantity,
        entry_price=trade.entry_price,
        entry_fees=trade.entry_fees,
        open_quantity=trade.open_quantity,
        exit_legs=[_to_exit_leg_response(exit_leg=leg) for leg in trade.exit_legs],
        created_at=trade.created_at,
        updated_at=trade.updated_at,
    )


def _to_exit_leg_response(*, exit_leg: ExitLeg) -> ExitLegResponse:
    return ExitLegResponse(
        id=str(exit_leg.exit_leg_id),
        trade_id=str(exit_leg.trade_id),
        exit_date=exit_leg.exit_date,
        exit_quantity=exit_leg.exit_quantity,
        exit_price=exit_leg.exit_price,
        exit_fees=exit_leg.exit_fees,
        created_at=exit_leg.created_at,
    )
