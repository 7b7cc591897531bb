"""
Temporary Order Workflow

Delivery orders submitted by customers without an account. They wait in
``pedidos_temp`` until staff either approve them (promotion into the
permanent order tables) or reject them (the customer's own session is told).

Lifecycle:
    pendiente ──approve──▶ facturado
        │
        └──────reject────▶ rechazado

Both transitions are conditional updates on ``estado = 'pendiente'`` inside
the same transaction as their side effects, so a record is promoted or
rejected at most once even when two staff sessions act on it concurrently.

The ``confiable`` flag belongs to the customer's phone rather than to one
order: the phone lookup reports the least trusted value found across all of
that phone's records.

Author: POS Backend Team
Version: 1.0.0
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pos_backend.core.errors import ConflictError, NotFoundError, ValidationError
from pos_backend.database import unit_of_work
from pos_backend.models import Order, OrderStatus, TemporaryOrder, TempOrderStatus, utcnow
from pos_backend.schemas import TempOrderCreate
from pos_backend.services.orders import add_order_lines, compute_total
from pos_backend.services.realtime import enqueue_event

logger = logging.getLogger(__name__)

NEW_TEMP_ORDER_EVENT = "nuevoPedidoTemp"
APPROVED_EVENT = "pedidoAprobado"
REJECTED_EVENT = "pedidoTemporalRechazado"


@dataclass
class ApprovalResult:
    """Outcome of promoting a temporary order."""
    temp_order_id: int
    order_id: int
    total: float


def temp_order_to_dict(pedido: TemporaryOrder) -> dict[str, Any]:
    """Record as returned to clients, with the snapshot deserialized."""
    return {
        "id": pedido.id,
        "nombre_cliente": pedido.nombre_cliente,
        "direccion_cliente": pedido.direccion_cliente,
        "telefono_cliente": pedido.telefono_cliente,
        "detalles_pedido": pedido.lines,
        "total": pedido.total,
        "estado": pedido.estado.value,
        "confiable": pedido.confiable,
        "creado_en": pedido.creado_en.isoformat() if pedido.creado_en else None,
    }


def _newest_first(stmt):
    return stmt.order_by(TemporaryOrder.creado_en.desc(), TemporaryOrder.id.desc())


async def _raise_not_pending(session: AsyncSession, pedido_id: int) -> None:
    """Explain why a conditional transition matched no row."""
    pedido = await session.get(TemporaryOrder, pedido_id)
    if pedido is None:
        raise NotFoundError("Pedido no encontrado")
    await session.refresh(pedido, ["estado"])
    raise ConflictError(f"El pedido ya fue procesado ({pedido.estado.value})")


# =============================================================================
# INTAKE
# =============================================================================

async def submit(session: AsyncSession, data: TempOrderCreate) -> TemporaryOrder:
    """
    Store a customer submission as a pending temporary order.

    The line items are stored exactly as submitted; the new record is
    announced to every client once the transaction commits.

    Raises:
        ValidationError: name missing/blank or no line items
    """
    nombre = (data.nombre_cliente or "").strip()
    if not nombre or not data.detalles_pedido:
        raise ValidationError("Datos incompletos del pedido")

    lines = [line.model_dump(mode="json", exclude_unset=True) for line in data.detalles_pedido]
    total = data.total if data.total is not None else compute_total(lines)

    async with unit_of_work(session):
        pedido = TemporaryOrder(
            nombre_cliente=nombre,
            direccion_cliente=data.direccion_cliente or "",
            telefono_cliente=data.telefono_cliente or "",
            detalles_pedido=json.dumps(lines),
            total=total,
            estado=TempOrderStatus.PENDIENTE,
            confiable=True,
            creado_en=utcnow(),
        )
        session.add(pedido)
        await session.flush()

        enqueue_event(session, NEW_TEMP_ORDER_EVENT, {"data": temp_order_to_dict(pedido)})

    logger.info(f"Temporary order #{pedido.id} received from {pedido.nombre_cliente}")
    return pedido


# =============================================================================
# REVIEW & LISTING
# =============================================================================

async def list_all(session: AsyncSession) -> list[TemporaryOrder]:
    result = await session.execute(_newest_first(select(TemporaryOrder)))
    return list(result.scalars().all())


async def list_pending(session: AsyncSession) -> list[TemporaryOrder]:
    result = await session.execute(
        _newest_first(select(TemporaryOrder).where(TemporaryOrder.estado == TempOrderStatus.PENDIENTE))
    )
    return list(result.scalars().all())


async def delete(session: AsyncSession, pedido_id: int) -> None:
    """Hard delete. Unlike rejection nobody is notified and no history remains."""
    async with unit_of_work(session):
        pedido = await session.get(TemporaryOrder, pedido_id)
        if pedido is None:
            raise NotFoundError("Pedido no encontrado")
        await session.delete(pedido)

    logger.info(f"Temporary order #{pedido_id} deleted")


async def set_confiable(session: AsyncSession, pedido_id: int, confiable: bool) -> TemporaryOrder:
    """Set the trust flag on one record."""
    async with unit_of_work(session):
        pedido = await session.get(TemporaryOrder, pedido_id)
        if pedido is None:
            raise NotFoundError("Pedido no encontrado")
        pedido.confiable = confiable

    logger.info(f"Temporary order #{pedido_id} marked confiable={confiable}")
    return pedido


async def check_phone(session: AsyncSession, telefono: str) -> tuple[bool, Optional[bool]]:
    """
    Trust status of a phone across its whole history.

    Returns:
        (exists, confiable) where confiable is False as soon as any record of
        that phone is untrusted, and None when the phone is unknown
    """
    result = await session.execute(
        select(TemporaryOrder.confiable)
        .where(TemporaryOrder.telefono_cliente == telefono)
        .order_by(TemporaryOrder.confiable.asc())
        .limit(1)
    )
    row = result.first()
    if row is None:
        return False, None
    return True, bool(row[0])


# =============================================================================
# REJECTION
# =============================================================================

async def reject(session: AsyncSession, pedido_id: int) -> TemporaryOrder:
    """
    Mark a pending order rejected and notify its customer only.

    The notification is addressed to the record's phone; it reaches the
    customer's session if one is registered at dispatch time and is dropped
    otherwise. The record stays in history.

    Raises:
        NotFoundError: no record with that id
        ConflictError: the record is already approved or rejected
    """
    async with unit_of_work(session):
        result = await session.execute(
            update(TemporaryOrder)
            .where(TemporaryOrder.id == pedido_id, TemporaryOrder.estado == TempOrderStatus.PENDIENTE)
            .values(estado=TempOrderStatus.RECHAZADO)
        )
        if result.rowcount != 1:
            await _raise_not_pending(session, pedido_id)

        pedido = await session.get(TemporaryOrder, pedido_id)
        enqueue_event(session, REJECTED_EVENT, {"id": pedido_id}, target_phone=pedido.telefono_cliente)

    logger.info(f"Temporary order #{pedido_id} rejected")
    return pedido


# =============================================================================
# APPROVAL & PROMOTION
# =============================================================================

async def approve(session: AsyncSession, pedido_id: int, delivery_table_id: int) -> ApprovalResult:
    """
    Promote a pending temporary order into the permanent order tables.

    One transaction:
        1. load the record (must exist and be pending)
        2. recompute the total from the stored snapshot
        3. insert an OPEN order on the delivery table
        4. insert one order item per snapshot line at the snapshot price
        5. mark the record facturado, only if it is still pending
        6. queue the ``pedidoAprobado`` broadcast

    Nothing is visible to other readers unless every step succeeds.

    Raises:
        NotFoundError: no record with that id, or a snapshot product no longer exists
        ConflictError: the record is already approved or rejected
    """
    async with unit_of_work(session):
        pedido = await session.get(TemporaryOrder, pedido_id)
        if pedido is None:
            raise NotFoundError("Pedido no encontrado")
        if pedido.estado.is_terminal:
            raise ConflictError(f"El pedido ya fue procesado ({pedido.estado.value})")

        lines = pedido.lines
        if not lines:
            raise ValidationError("El pedido no tiene productos")

        order = Order(
            table_id=delivery_table_id,
            status=OrderStatus.OPEN,
            total=compute_total(lines),
            created_at=utcnow(),
            items=[],
        )
        session.add(order)
        await add_order_lines(session, order, lines)
        await session.flush()

        result = await session.execute(
            update(TemporaryOrder)
            .where(TemporaryOrder.id == pedido_id, TemporaryOrder.estado == TempOrderStatus.PENDIENTE)
            .values(estado=TempOrderStatus.FACTURADO)
        )
        if result.rowcount != 1:
            # Another session finished first; our order and items roll back.
            await _raise_not_pending(session, pedido_id)

        enqueue_event(session, APPROVED_EVENT, {"id": pedido_id})

    logger.info(f"Temporary order #{pedido_id} approved as order #{order.id} (total {order.total})")
    return ApprovalResult(temp_order_id=pedido_id, order_id=order.id, total=order.total)
