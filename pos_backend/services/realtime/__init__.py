"""
Realtime Service Factory

Single entry point for the realtime layer. The registry, the Socket.IO
server, the broadcaster and the outbox dispatcher are process-wide
singletons created on first use; routes receive them through FastAPI
dependencies so tests can substitute their own.

Usage:
    from pos_backend.services.realtime import get_broadcaster

    broadcaster = get_broadcaster()
    await broadcaster.broadcast("estadoDomicilios", {"activo": True})

Author: POS Backend Team
Version: 1.0.0
"""

import logging
from functools import lru_cache

import socketio

from pos_backend.services.realtime.base import BaseBroadcaster
from pos_backend.services.realtime.outbox import OutboxDispatcher, enqueue_event
from pos_backend.services.realtime.registry import SessionRegistry
from pos_backend.services.realtime.socketio_server import (
    SocketIOBroadcaster,
    create_socketio_server,
)

logger = logging.getLogger(__name__)


@lru_cache()
def get_session_registry() -> SessionRegistry:
    """Get the process-local phone → session registry."""
    return SessionRegistry()


@lru_cache()
def get_socketio_server() -> socketio.AsyncServer:
    """Get the Socket.IO server bound to the session registry."""
    return create_socketio_server(get_session_registry())


@lru_cache()
def get_broadcaster() -> BaseBroadcaster:
    """
    Get the configured broadcaster instance.

    Returns:
        BaseBroadcaster: Socket.IO backed broadcaster
    """
    broadcaster = SocketIOBroadcaster(get_socketio_server())
    logger.info(f"Realtime Service: Using {broadcaster.provider_name}")
    return broadcaster


@lru_cache()
def get_outbox_dispatcher() -> OutboxDispatcher:
    """Get the dispatcher publishing committed outbox events."""
    return OutboxDispatcher(get_broadcaster(), get_session_registry())


def reset_realtime_services() -> None:
    """
    Clear the cached instances.

    The next call to any factory builds a fresh one.
    """
    get_outbox_dispatcher.cache_clear()
    get_broadcaster.cache_clear()
    get_socketio_server.cache_clear()
    get_session_registry.cache_clear()
    logger.debug("Realtime service cache cleared")


__all__ = [
    "get_session_registry",
    "get_socketio_server",
    "get_broadcaster",
    "get_outbox_dispatcher",
    "reset_realtime_services",
    "BaseBroadcaster",
    "SessionRegistry",
    "SocketIOBroadcaster",
    "OutboxDispatcher",
    "enqueue_event",
]
