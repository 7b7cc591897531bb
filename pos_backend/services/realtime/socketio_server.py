"""
Socket.IO Realtime Transport

python-socketio AsyncServer mounted next to the FastAPI app. Handles the
client side of the channel:

    - ``registraCliente`` (payload: phone string) binds the session to a phone
    - ``disconnect`` releases whatever the session had bound

and implements BaseBroadcaster for the server side.

When ``realtime_redis_enabled`` is set the server uses Redis as message
queue, so broadcasts reach clients of every instance. Targeted delivery
still depends on the local SessionRegistry.

Author: POS Backend Team
Version: 1.0.0
"""

import logging
from typing import Any, Optional

import socketio

from pos_backend.core.config import Settings, get_settings
from pos_backend.services.realtime.base import BaseBroadcaster
from pos_backend.services.realtime.registry import SessionRegistry

logger = logging.getLogger(__name__)

REGISTER_EVENT = "registraCliente"


def create_socketio_server(
    registry: SessionRegistry,
    settings: Optional[Settings] = None,
) -> socketio.AsyncServer:
    """
    Build the Socket.IO server and wire its handlers to the registry.

    Args:
        registry: Registry receiving phone bindings
        settings: Application settings (defaults to the cached ones)

    Returns:
        socketio.AsyncServer: Server ready to be wrapped in an ASGIApp
    """
    settings = settings or get_settings()
    origins = settings.cors_origins_list
    cors = "*" if origins == ["*"] else origins

    client_manager = None
    if settings.realtime_redis_enabled:
        client_manager = socketio.AsyncRedisManager(settings.redis_url)
        logger.info("Socket.IO: using Redis message queue")

    sio = socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=cors,
        client_manager=client_manager,
        logger=False,
        engineio_logger=False,
    )

    @sio.event
    async def connect(sid, environ, auth=None):
        logger.debug(f"Client connected: {sid}")

    @sio.on(REGISTER_EVENT)
    async def registra_cliente(sid, telefono=None):
        if isinstance(telefono, str) and telefono:
            registry.bind(telefono, sid)
        else:
            logger.debug(f"Ignoring {REGISTER_EVENT} with non-string payload from {sid}")

    @sio.event
    async def disconnect(sid, *args):
        registry.unbind(sid)
        logger.debug(f"Client disconnected: {sid}")

    return sio


class SocketIOBroadcaster(BaseBroadcaster):
    """Broadcaster backed by a python-socketio AsyncServer."""

    def __init__(self, server: socketio.AsyncServer):
        self.server = server

    @property
    def provider_name(self) -> str:
        return "socketio"

    async def broadcast(self, event: str, payload: dict[str, Any]) -> None:
        await self.server.emit(event, payload)
        logger.debug(f"Broadcast {event}")

    async def send_to(self, session_id: str, event: str, payload: dict[str, Any]) -> None:
        await self.server.emit(event, payload, to=session_id)
        logger.debug(f"Sent {event} to session {session_id}")
