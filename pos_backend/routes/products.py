"""Product catalog endpoints."""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pos_backend.core.security import require_staff
from pos_backend.database import get_db
from pos_backend.schemas import ErrorResponse, MessageResponse, ProductResponse, ProductWrite
from pos_backend.services import catalog
from pos_backend.services.realtime import OutboxDispatcher, get_outbox_dispatcher

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("", response_model=list[ProductResponse], dependencies=[Depends(require_staff)])
async def list_products(db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:
    products = await catalog.list_products(db)
    return [catalog.product_to_dict(p) for p in products]


@router.get("/types", response_model=list[str], dependencies=[Depends(require_staff)])
async def list_product_types() -> list[str]:
    """Values accepted in the product ``type`` field."""
    return catalog.list_product_types()


@router.get("/public", response_model=list[ProductResponse])
async def list_public_products(db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:
    """Menu for the customer-facing page. No token required."""
    products = await catalog.list_products(db)
    return [catalog.product_to_dict(p) for p in products]


@router.post(
    "",
    response_model=ProductResponse,
    responses={400: {"model": ErrorResponse}},
    dependencies=[Depends(require_staff)],
)
async def create_product(
    data: ProductWrite,
    db: AsyncSession = Depends(get_db),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
) -> dict[str, Any]:
    product = await catalog.create_product(db, data)
    await dispatcher.dispatch_safely(db)
    return catalog.product_to_dict(product)


@router.put(
    "/{product_id}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    dependencies=[Depends(require_staff)],
)
async def update_product(
    product_id: int,
    data: ProductWrite,
    db: AsyncSession = Depends(get_db),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
) -> MessageResponse:
    await catalog.update_product(db, product_id, data)
    await dispatcher.dispatch_safely(db)
    return MessageResponse(message="Producto actualizado")


@router.delete(
    "/{product_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    dependencies=[Depends(require_staff)],
)
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
) -> MessageResponse:
    """Refused while any order item references the product."""
    await catalog.delete_product(db, product_id)
    await dispatcher.dispatch_safely(db)
    return MessageResponse(message="Producto eliminado correctamente")
