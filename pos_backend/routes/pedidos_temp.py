"""
Temporary (delivery) order endpoints.

Customer-facing routes are public; staff routes require a bearer token.
Routes with a literal first segment are declared before ``/{pedido_id}``.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pos_backend.core.config import Settings, get_settings
from pos_backend.core.security import require_staff
from pos_backend.database import get_db
from pos_backend.schemas import (
    ApprovalResponse,
    ConfiableUpdate,
    ErrorResponse,
    MessageResponse,
    PhoneTrustResponse,
    TempOrderCreate,
    TempOrderCreateResponse,
    TempOrderResponse,
)
from pos_backend.services import pedidos_temp
from pos_backend.services.realtime import OutboxDispatcher, get_outbox_dispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pedidos-temp", tags=["Temporary Orders"])


# =============================================================================
# INTAKE
# =============================================================================

@router.post(
    "",
    response_model=TempOrderCreateResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Submit Delivery Order (public)",
)
async def submit_temp_order(
    data: TempOrderCreate,
    db: AsyncSession = Depends(get_db),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
) -> TempOrderCreateResponse:
    """Store a customer's delivery order for staff review."""
    pedido = await pedidos_temp.submit(db, data)
    await dispatcher.dispatch_safely(db)
    return TempOrderCreateResponse(message="Pedido temporal guardado correctamente", id=pedido.id)


# =============================================================================
# REVIEW & LISTING
# =============================================================================

@router.get("", response_model=list[TempOrderResponse])
async def list_temp_orders(db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:
    """Full history, newest first."""
    return [pedidos_temp.temp_order_to_dict(p) for p in await pedidos_temp.list_all(db)]


@router.get("/pendientes", response_model=list[TempOrderResponse])
async def list_pending_temp_orders(db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:
    """Orders still waiting for a decision, newest first."""
    return [pedidos_temp.temp_order_to_dict(p) for p in await pedidos_temp.list_pending(db)]


@router.get(
    "/personDomicilios",
    response_model=list[TempOrderResponse],
    dependencies=[Depends(require_staff)],
)
async def list_for_delivery_staff(db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:
    """History with the trust flag, for delivery staff."""
    return [pedidos_temp.temp_order_to_dict(p) for p in await pedidos_temp.list_all(db)]


@router.delete(
    "/personDomicilios/{pedido_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
    dependencies=[Depends(require_staff)],
)
async def delete_temp_order(pedido_id: int, db: AsyncSession = Depends(get_db)) -> MessageResponse:
    """Hard delete without notifying anyone."""
    await pedidos_temp.delete(db, pedido_id)
    return MessageResponse(message="Pedido eliminado correctamente")


@router.patch(
    "/personDomicilios/{pedido_id}/confiable",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
    dependencies=[Depends(require_staff)],
)
async def update_confiable(
    pedido_id: int,
    data: ConfiableUpdate,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await pedidos_temp.set_confiable(db, pedido_id, data.confiable)
    return MessageResponse(message="Confiable actualizado")


@router.get(
    "/verificarTelefono/{telefono}",
    response_model=PhoneTrustResponse,
    response_model_exclude_none=True,
)
async def verify_phone(telefono: str, db: AsyncSession = Depends(get_db)) -> PhoneTrustResponse:
    """Whether the phone has ordered before and, if so, its least trusted flag."""
    existe, confiable = await pedidos_temp.check_phone(db, telefono)
    return PhoneTrustResponse(existe=existe, confiable=confiable)


# =============================================================================
# DECISIONS
# =============================================================================

@router.delete(
    "/{pedido_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def reject_temp_order(
    pedido_id: int,
    db: AsyncSession = Depends(get_db),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
) -> MessageResponse:
    """Reject a pending order; only the ordering customer's session is told."""
    await pedidos_temp.reject(db, pedido_id)
    await dispatcher.dispatch_safely(db)
    return MessageResponse(message="Pedido temporal rechazado y cliente notificado")


@router.post(
    "/{pedido_id}/aprobar",
    response_model=ApprovalResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    dependencies=[Depends(require_staff)],
)
async def approve_temp_order(
    pedido_id: int,
    db: AsyncSession = Depends(get_db),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Promote a pending order into the permanent order tables."""
    result = await pedidos_temp.approve(db, pedido_id, settings.delivery_table_id)
    await dispatcher.dispatch_safely(db)
    return {"message": "Pedido aprobado y guardado en tablas definitivas", "orderId": result.order_id}
