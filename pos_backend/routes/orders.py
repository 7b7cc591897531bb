"""Permanent order endpoints (staff only)."""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pos_backend.core.security import require_staff
from pos_backend.database import get_db
from pos_backend.schemas import (
    ErrorResponse,
    MessageResponse,
    OrderCreate,
    OrderCreateResponse,
    OrderItemUpdate,
    OrderResponse,
)
from pos_backend.services import orders
from pos_backend.services.realtime import OutboxDispatcher, get_outbox_dispatcher

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
    dependencies=[Depends(require_staff)],
)


@router.get("", response_model=list[OrderResponse])
async def list_orders(db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:
    """All orders, newest first, each with its items."""
    return [orders.order_to_dict(o) for o in await orders.list_orders(db)]


@router.get("/{table_id}", response_model=list[OrderResponse])
async def get_table_order(table_id: int, db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:
    """The table's open order as a one-element list, or an empty list."""
    order = await orders.get_open_order_for_table(db, table_id)
    return [orders.order_to_dict(order)] if order else []


@router.post(
    "",
    response_model=OrderCreateResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_order(
    data: OrderCreate,
    db: AsyncSession = Depends(get_db),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
) -> dict[str, Any]:
    lines = [line.model_dump(mode="json") for line in data.items] if data.items else None
    order = await orders.create_order(db, data.table_id, lines)
    await dispatcher.dispatch_safely(db)
    return {"orderId": order.id, "total": order.total, "message": "Pedido creado correctamente"}


@router.put(
    "/order-items/{item_id}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_order_item(
    item_id: int,
    data: OrderItemUpdate,
    db: AsyncSession = Depends(get_db),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
) -> MessageResponse:
    await orders.update_order_item(db, item_id, data)
    await dispatcher.dispatch_safely(db)
    return MessageResponse(message="Item actualizado correctamente")


@router.delete(
    "/order-items/{item_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_order_item(
    item_id: int,
    db: AsyncSession = Depends(get_db),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
) -> MessageResponse:
    await orders.delete_order_item(db, item_id)
    await dispatcher.dispatch_safely(db)
    return MessageResponse(message="Item eliminado correctamente")


@router.put(
    "/{order_id}/close",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def close_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
) -> MessageResponse:
    await orders.close_order(db, order_id)
    await dispatcher.dispatch_safely(db)
    return MessageResponse(message="Pedido cerrado correctamente")
