"""Table management endpoints."""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pos_backend.core.config import Settings, get_settings
from pos_backend.core.security import require_staff
from pos_backend.database import get_db
from pos_backend.schemas import (
    ErrorResponse,
    MessageResponse,
    TableCreateResponse,
    TableResponse,
    TableWrite,
)
from pos_backend.services import catalog
from pos_backend.services.realtime import OutboxDispatcher, get_outbox_dispatcher

router = APIRouter(
    prefix="/tables",
    tags=["Tables"],
    dependencies=[Depends(require_staff)],
)


@router.get("", response_model=list[TableResponse])
async def list_tables(db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:
    tables = await catalog.list_tables(db)
    return [catalog.table_to_dict(t) for t in tables]


@router.post("", response_model=TableCreateResponse, responses={400: {"model": ErrorResponse}})
async def create_table(
    data: TableWrite,
    db: AsyncSession = Depends(get_db),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
) -> TableCreateResponse:
    table = await catalog.create_table(db, data.name)
    await dispatcher.dispatch_safely(db)
    return TableCreateResponse(id=table.id, name=table.name, message="Mesa creada correctamente")


@router.put(
    "/{table_id}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_table(
    table_id: int,
    data: TableWrite,
    db: AsyncSession = Depends(get_db),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
) -> MessageResponse:
    await catalog.update_table(db, table_id, data.name)
    await dispatcher.dispatch_safely(db)
    return MessageResponse(message="Mesa actualizada correctamente")


@router.delete(
    "/{table_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_table(
    table_id: int,
    db: AsyncSession = Depends(get_db),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    """Refused while any order references the table."""
    await catalog.delete_table(db, table_id, settings.delivery_table_id)
    await dispatcher.dispatch_safely(db)
    return MessageResponse(message="Mesa eliminada correctamente")
