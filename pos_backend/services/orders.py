"""
Order Service

Permanent orders and their line items.

Rules:
    - an order is created OPEN and closed exactly once
    - ``total`` always equals the sum of its items' subtotals
    - items keep the unit price they were inserted with
    - items can only be changed while their order is OPEN

Author: POS Backend Team
Version: 1.0.0
"""

import logging
from typing import Any, Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pos_backend.core.errors import ConflictError, NotFoundError, ValidationError
from pos_backend.database import unit_of_work
from pos_backend.models import Order, OrderItem, OrderStatus, Product, Table
from pos_backend.schemas import OrderItemUpdate
from pos_backend.services.realtime import enqueue_event

logger = logging.getLogger(__name__)


# =============================================================================
# HELPERS
# =============================================================================

def line_price(line: dict[str, Any]) -> float:
    return float(line.get("price") or 0)


def line_quantity(line: dict[str, Any]) -> int:
    return int(line.get("quantity") or 1)


def compute_total(lines: Iterable[dict[str, Any]]) -> float:
    """Σ price × quantity; a missing price counts as 0, a missing quantity as 1."""
    return round(sum(line_price(line) * line_quantity(line) for line in lines), 2)


def order_item_to_dict(item: OrderItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "orderId": item.order_id,
        "productId": item.product_id,
        "productName": item.product.name if item.product is not None else None,
        "quantity": item.quantity,
        "unitPrice": item.unit_price,
        "subtotal": item.subtotal,
    }


def order_to_dict(order: Order) -> dict[str, Any]:
    return {
        "id": order.id,
        "tableId": order.table_id,
        "total": order.total,
        "status": order.status.value,
        "createdAt": order.created_at.isoformat() if order.created_at else None,
        "items": [order_item_to_dict(item) for item in order.items],
    }


def _refresh_total(order: Order) -> None:
    order.total = round(sum(item.subtotal for item in order.items), 2)


async def add_order_lines(
    session: AsyncSession,
    order: Order,
    lines: list[dict[str, Any]],
) -> None:
    """
    Attach one OrderItem per line using the line's own price.

    Raises:
        NotFoundError: a line references a product that does not exist
    """
    product_ids = {int(line["id"]) for line in lines}
    result = await session.execute(select(Product).where(Product.id.in_(product_ids)))
    products = {product.id: product for product in result.scalars().all()}

    missing = sorted(product_ids - products.keys())
    if missing:
        raise NotFoundError(f"Producto no encontrado: {', '.join(str(m) for m in missing)}")

    for line in lines:
        price = line_price(line)
        quantity = line_quantity(line)
        order.items.append(
            OrderItem(
                product=products[int(line["id"])],
                quantity=quantity,
                unit_price=price,
                subtotal=round(price * quantity, 2),
            )
        )
    _refresh_total(order)


async def _get_open_order(session: AsyncSession, order_id: int) -> Order:
    order = await session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Pedido no encontrado")
    if order.status is not OrderStatus.OPEN:
        raise ConflictError("El pedido está cerrado")
    return order


# =============================================================================
# QUERIES
# =============================================================================

async def list_orders(session: AsyncSession) -> list[Order]:
    result = await session.execute(
        select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    )
    return list(result.scalars().all())


async def get_open_order_for_table(session: AsyncSession, table_id: int) -> Optional[Order]:
    """Newest OPEN order of a table, if any."""
    result = await session.execute(
        select(Order)
        .where(Order.table_id == table_id, Order.status == OrderStatus.OPEN)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


# =============================================================================
# COMMANDS
# =============================================================================

async def create_order(
    session: AsyncSession,
    table_id: Optional[int],
    lines: Optional[list[dict[str, Any]]],
) -> Order:
    if not table_id or not lines:
        raise ValidationError("Datos incompletos para crear pedido")

    async with unit_of_work(session):
        if await session.get(Table, table_id) is None:
            raise NotFoundError("La mesa no existe.")

        order = Order(table_id=table_id, status=OrderStatus.OPEN, total=0.0, items=[])
        session.add(order)
        await add_order_lines(session, order, lines)
        await session.flush()

        enqueue_event(session, "pedido_creado", {
            "orderId": order.id,
            "tableId": table_id,
            "total": order.total,
            "items": lines,
            "status": order.status.value,
        })

    logger.info(f"Order #{order.id} created for table {table_id} (total {order.total})")
    return order


async def update_order_item(session: AsyncSession, item_id: int, data: OrderItemUpdate) -> OrderItem:
    if not data.product_id or not data.quantity or not data.unit_price:
        raise ValidationError("Faltan datos para actualizar item")

    async with unit_of_work(session):
        item = await session.get(OrderItem, item_id)
        if item is None:
            raise NotFoundError("Item no encontrado")

        order = await _get_open_order(session, item.order_id)

        product = await session.get(Product, data.product_id)
        if product is None:
            raise NotFoundError("Producto no encontrado")

        item.product = product
        item.quantity = data.quantity
        item.unit_price = data.unit_price
        item.subtotal = round(data.unit_price * data.quantity, 2)
        _refresh_total(order)

        enqueue_event(session, "pedido_actualizado", {
            "itemId": item_id,
            "productId": data.product_id,
            "quantity": data.quantity,
            "unitPrice": data.unit_price,
            "subtotal": item.subtotal,
        })

    return item


async def delete_order_item(session: AsyncSession, item_id: int) -> None:
    async with unit_of_work(session):
        item = await session.get(OrderItem, item_id)
        if item is None:
            raise NotFoundError("Item no encontrado")

        order = await _get_open_order(session, item.order_id)
        order.items.remove(item)
        _refresh_total(order)

        enqueue_event(session, "pedido_item_eliminado", {"itemId": item_id})

    logger.info(f"Item #{item_id} removed from order #{order.id}")


async def close_order(session: AsyncSession, order_id: int) -> None:
    """OPEN → CLOSED. Closing is terminal; a second close is refused."""
    async with unit_of_work(session):
        result = await session.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == OrderStatus.OPEN)
            .values(status=OrderStatus.CLOSED)
        )
        if result.rowcount != 1:
            if await session.get(Order, order_id) is None:
                raise NotFoundError("Pedido no encontrado")
            raise ConflictError("El pedido ya está cerrado")

        enqueue_event(session, "pedido_cerrado", {"id": order_id})

    logger.info(f"Order #{order_id} closed")
