"""
Realtime Broadcaster Abstract Base Class

Defines the interface for pushing named events to connected clients,
either to everyone or to a single session.

Design Pattern: Strategy Pattern
    - The Socket.IO implementation is used by the running server
    - Tests plug in a recording implementation
    - Callers never depend on the transport

Author: POS Backend Team
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from typing import Any


class BaseBroadcaster(ABC):
    """
    Abstract base class for realtime broadcasters.

    Example:
        >>> broadcaster = get_broadcaster()
        >>> await broadcaster.broadcast("pedidoAprobado", {"id": 12})
        >>> await broadcaster.send_to(session_id, "pedidoTemporalRechazado", {"id": 12})
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the transport.

        Returns:
            str: Provider name (e.g., "socketio")
        """
        pass

    @abstractmethod
    async def broadcast(self, event: str, payload: dict[str, Any]) -> None:
        """
        Push an event to every connected session.

        Args:
            event: Event name understood by the clients
            payload: JSON-serializable body
        """
        pass

    @abstractmethod
    async def send_to(self, session_id: str, event: str, payload: dict[str, Any]) -> None:
        """
        Push an event to one session only.

        Args:
            session_id: Transport session identifier
            event: Event name understood by the clients
            payload: JSON-serializable body
        """
        pass
