"""
FastAPI Application Entry Point

Restaurant point-of-sale backend.

Endpoints:
    - POST /login: Staff login
    - /products, /tables, /configuracion: Catalog management
    - /orders: Permanent orders and order items
    - /pedidos-temp: Delivery order intake, review, approval and rejection
    - GET /health: System health check

Realtime:
    Socket.IO is served from the same ASGI app (``asgi_app``). Clients call
    ``registraCliente`` with their phone to receive targeted events.

Run:
    uvicorn pos_backend.main:asgi_app --host 0.0.0.0 --port 4000

Author: POS Backend Team
Version: 1.0.0
"""

import asyncio
import contextlib
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime

import redis.asyncio as aioredis
import socketio
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from pos_backend.core.config import get_settings, setup_logging
from pos_backend.core.errors import PersistenceError, POSError
from pos_backend.database import async_session_maker, engine, get_db, init_db
from pos_backend.routes import ALL_ROUTERS
from pos_backend.schemas import HealthResponse
from pos_backend.services.catalog import ensure_defaults
from pos_backend.services.realtime import (
    get_broadcaster,
    get_outbox_dispatcher,
    get_session_registry,
    get_socketio_server,
)
from pos_backend.services.realtime.outbox import run_outbox_sweeper

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    async with async_session_maker() as session:
        await ensure_defaults(session, settings)
    logger.info("✅ Database initialized")

    broadcaster = get_broadcaster()
    logger.info(f"✅ Realtime Service: {broadcaster.provider_name}")

    missing = settings.validate_production_config()
    if missing:
        logger.warning(f"⚠️ Missing production config: {missing}")

    sweeper = asyncio.create_task(
        run_outbox_sweeper(get_outbox_dispatcher(), async_session_maker, settings.outbox_poll_seconds)
    )

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant point-of-sale backend: catalog, tables, orders and "
        "delivery order approval with realtime notifications."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in ALL_ROUTERS:
    app.include_router(router)

# Socket.IO shares the HTTP port; everything else falls through to FastAPI
asgi_app = socketio.ASGIApp(get_socketio_server(), other_asgi_app=app)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"{settings.app_name} funcionando correctamente",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db)
) -> HealthResponse:
    """Verify all system components are operational."""

    # Check database
    db_status = "healthy"
    try:
        await db.execute(select(func.now()))
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {type(e).__name__}"
        logger.error(f"Database health check failed: {e}")

    # Check Redis (only used as Socket.IO message queue)
    redis_status = "disabled"
    if settings.realtime_redis_enabled:
        redis_status = "healthy"
        client = aioredis.from_url(settings.redis_url, socket_timeout=2)
        try:
            await client.ping()
        except aioredis.RedisError as e:
            redis_status = f"unhealthy: {type(e).__name__}"
            logger.error(f"Redis health check failed: {e}")
        finally:
            await client.aclose()

    overall = "operational" if all(
        s in ("healthy", "disabled") for s in [db_status, redis_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        realtime_provider=get_broadcaster().provider_name,
        connected_clients=len(get_session_registry()),
        timestamp=datetime.now(),
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(POSError)
async def pos_error_handler(request: Request, exc: POSError) -> JSONResponse:
    """Domain errors raised by the services."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and parameters are client errors (400)."""
    errors = exc.errors()
    detail = None
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        detail = f"{location}: {first.get('msg')}" if location else first.get("msg")

    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Datos inválidos", "detail": detail},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Storage failures outside a unit of work; never leak driver details."""
    logger.exception(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=PersistenceError().to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Error interno del servidor",
            "detail": str(exc) if settings.debug else None,
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pos_backend.main:asgi_app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
