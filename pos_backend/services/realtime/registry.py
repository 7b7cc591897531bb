"""
Connected client registry.

Maps a customer phone to the live Socket.IO session that registered it, so
a rejection can be delivered to that customer only. The mapping lives in
process memory: it does not survive a restart and is not shared between
server instances.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Phone → session id mapping, mutated only from the event loop."""

    def __init__(self) -> None:
        self._sessions: dict[str, str] = {}

    def bind(self, phone: str, session_id: str) -> None:
        """Bind a phone to a session. A later bind for the same phone wins."""
        previous = self._sessions.get(phone)
        self._sessions[phone] = session_id
        if previous and previous != session_id:
            logger.debug(f"Phone {phone} moved from session {previous} to {session_id}")
        else:
            logger.debug(f"Phone {phone} bound to session {session_id}")

    def unbind(self, session_id: str) -> list[str]:
        """
        Remove every phone bound to a session.

        Returns:
            The phones that were released
        """
        released = [phone for phone, sid in self._sessions.items() if sid == session_id]
        for phone in released:
            del self._sessions[phone]
        if released:
            logger.debug(f"Session {session_id} released phones {released}")
        return released

    def lookup(self, phone: str) -> Optional[str]:
        if not phone:
            return None
        return self._sessions.get(phone)

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, phone: str) -> bool:
        return phone in self._sessions
