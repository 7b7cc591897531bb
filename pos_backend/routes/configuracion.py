"""Delivery intake toggle."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pos_backend.core.security import require_staff
from pos_backend.database import get_db
from pos_backend.schemas import ConfiguracionResponse, ConfiguracionWrite, ErrorResponse
from pos_backend.services import catalog
from pos_backend.services.realtime import OutboxDispatcher, get_outbox_dispatcher

router = APIRouter(prefix="/configuracion", tags=["Configuration"])


@router.get(
    "",
    response_model=ConfiguracionResponse,
    responses={404: {"model": ErrorResponse}},
    dependencies=[Depends(require_staff)],
)
async def get_configuracion(db: AsyncSession = Depends(get_db)) -> ConfiguracionResponse:
    config = await catalog.get_configuracion(db)
    return ConfiguracionResponse(domicilios_activos=config.domicilios_activos)


@router.put("", dependencies=[Depends(require_staff)])
async def update_configuracion(
    data: ConfiguracionWrite,
    db: AsyncSession = Depends(get_db),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
) -> dict:
    """Enable or disable delivery intake; every client receives ``estadoDomicilios``."""
    await catalog.set_domicilios_activos(db, data.domicilios_activos)
    await dispatcher.dispatch_safely(db)
    return {"success": True, "message": "Configuración actualizada correctamente"}


@router.get("/public", response_model=ConfiguracionResponse, responses={404: {"model": ErrorResponse}})
async def get_public_configuracion(db: AsyncSession = Depends(get_db)) -> ConfiguracionResponse:
    """Read-only view for the customer QR page."""
    config = await catalog.get_configuracion(db)
    return ConfiguracionResponse(domicilios_activos=config.domicilios_activos)
