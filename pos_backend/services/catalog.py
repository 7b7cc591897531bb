"""
Catalog Service

Products, tables and the single-row configuration. Each write runs in one
unit of work together with the realtime event it produces.

Referential guards:
    - a product referenced by any order item cannot be deleted
    - a table referenced by any order, or the delivery table, cannot be deleted

Author: POS Backend Team
Version: 1.0.0
"""

import logging
from typing import Any, Optional

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from pos_backend.core.config import Settings
from pos_backend.core.errors import ConflictError, NotFoundError, ValidationError
from pos_backend.database import unit_of_work
from pos_backend.models import Configuracion, Order, OrderItem, Product, ProductType, Table
from pos_backend.schemas import ProductWrite
from pos_backend.services.realtime import enqueue_event

logger = logging.getLogger(__name__)

CONFIG_ROW_ID = 1


# =============================================================================
# SERIALIZATION
# =============================================================================

def product_to_dict(product: Product) -> dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "price": product.price,
        "type": product.type.value,
        "image": product.image,
    }


def table_to_dict(table: Table) -> dict[str, Any]:
    return {"id": table.id, "name": table.name}


# =============================================================================
# PRODUCTS
# =============================================================================

def list_product_types() -> list[str]:
    """Values of the schema-defined product type enumeration."""
    return [t.value for t in ProductType]


def _validate_product(data: ProductWrite, require_image: bool = False) -> tuple[str, float, ProductType]:
    name = (data.name or "").strip()
    if not name or data.price is None or not data.type:
        raise ValidationError("Faltan datos")
    if require_image and not data.image:
        raise ValidationError("Faltan datos")
    if data.price <= 0:
        raise ValidationError("El precio debe ser un número válido")
    try:
        product_type = ProductType(data.type)
    except ValueError:
        raise ValidationError(f"Tipo de producto inválido. Opciones: {list_product_types()}")
    return name, data.price, product_type


async def list_products(session: AsyncSession) -> list[Product]:
    result = await session.execute(select(Product).order_by(Product.id))
    return list(result.scalars().all())


async def create_product(session: AsyncSession, data: ProductWrite) -> Product:
    name, price, product_type = _validate_product(data)

    async with unit_of_work(session):
        product = Product(name=name, price=price, type=product_type, image=data.image)
        session.add(product)
        await session.flush()
        enqueue_event(session, "producto_creado", product_to_dict(product))

    logger.info(f"Product #{product.id} created: {product.name}")
    return product


async def update_product(session: AsyncSession, product_id: int, data: ProductWrite) -> Product:
    name, price, product_type = _validate_product(data, require_image=True)

    async with unit_of_work(session):
        product = await session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Producto no encontrado")

        product.name = name
        product.price = price
        product.type = product_type
        product.image = data.image
        enqueue_event(session, "producto_actualizado", product_to_dict(product))

    logger.info(f"Product #{product_id} updated")
    return product


async def delete_product(session: AsyncSession, product_id: int) -> None:
    async with unit_of_work(session):
        product = await session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Producto no encontrado")

        references = await session.scalar(
            select(func.count(OrderItem.id)).where(OrderItem.product_id == product_id)
        )
        if references:
            raise ConflictError("No se puede eliminar este producto porque ya está en pedidos.")

        await session.delete(product)
        enqueue_event(session, "producto_eliminado", {"id": product_id})

    logger.info(f"Product #{product_id} deleted")


# =============================================================================
# TABLES
# =============================================================================

def _clean_table_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("El nombre de la mesa es obligatorio.")
    return cleaned


async def list_tables(session: AsyncSession) -> list[Table]:
    result = await session.execute(select(Table).order_by(Table.id))
    return list(result.scalars().all())


async def create_table(session: AsyncSession, name: Optional[str]) -> Table:
    cleaned = _clean_table_name(name)

    async with unit_of_work(session):
        table = Table(name=cleaned)
        session.add(table)
        await session.flush()
        enqueue_event(session, "mesa_creada", table_to_dict(table))

    logger.info(f"Table #{table.id} created: {table.name}")
    return table


async def update_table(session: AsyncSession, table_id: int, name: Optional[str]) -> Table:
    cleaned = _clean_table_name(name)

    async with unit_of_work(session):
        table = await session.get(Table, table_id)
        if table is None:
            raise NotFoundError("La mesa no existe.")

        table.name = cleaned
        enqueue_event(session, "mesa_actualizada", table_to_dict(table))

    return table


async def delete_table(session: AsyncSession, table_id: int, delivery_table_id: int) -> None:
    async with unit_of_work(session):
        table = await session.get(Table, table_id)
        if table is None:
            raise NotFoundError("Mesa no encontrada.")

        if table_id == delivery_table_id:
            raise ConflictError("La mesa de domicilios no se puede eliminar.")

        orders = await session.scalar(
            select(func.count(Order.id)).where(Order.table_id == table_id)
        )
        if orders:
            raise ConflictError("No se puede eliminar la mesa porque tiene pedidos asociados.")

        await session.delete(table)
        enqueue_event(session, "mesa_eliminada", {"id": table_id})

    logger.info(f"Table #{table_id} deleted")


# =============================================================================
# CONFIGURATION
# =============================================================================

async def get_configuracion(session: AsyncSession) -> Configuracion:
    config = await session.get(Configuracion, CONFIG_ROW_ID)
    if config is None:
        raise NotFoundError("Configuración no encontrada")
    return config


async def set_domicilios_activos(session: AsyncSession, activo: bool) -> Configuracion:
    """Toggle delivery intake and tell every client."""
    async with unit_of_work(session):
        config = await session.get(Configuracion, CONFIG_ROW_ID)
        if config is None:
            raise NotFoundError("Configuración no encontrada")

        config.domicilios_activos = activo
        enqueue_event(session, "estadoDomicilios", {"activo": activo})

    logger.info(f"Delivery intake {'enabled' if activo else 'disabled'}")
    return config


# =============================================================================
# STARTUP DEFAULTS
# =============================================================================

async def ensure_defaults(session: AsyncSession, settings: Settings) -> None:
    """
    Create the configuration row and the delivery table when missing.

    The delivery table is inserted with its fixed id; on PostgreSQL the id
    sequence is moved past it so later tables never collide.
    """
    async with unit_of_work(session):
        if await session.get(Configuracion, CONFIG_ROW_ID) is None:
            session.add(Configuracion(id=CONFIG_ROW_ID, domicilios_activos=True))
            logger.info("Configuration row created")

        if await session.get(Table, settings.delivery_table_id) is None:
            session.add(Table(id=settings.delivery_table_id, name=settings.delivery_table_name))
            await session.flush()
            if session.bind.dialect.name == "postgresql":
                await session.execute(text(
                    "SELECT setval(pg_get_serial_sequence('\"table\"', 'id'), "
                    "(SELECT MAX(id) FROM \"table\"))"
                ))
            logger.info(f"Delivery table #{settings.delivery_table_id} created")
