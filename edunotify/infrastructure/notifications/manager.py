"""Track notification-center websockets and fan pushes out to them."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)

MAX_CONNECTIONS_PER_USER = 5
# Policy violation, used when a newer tab takes over an old connection.
EVICTED_CLOSE_CODE = 1008


class NotificationConnectionManager:
    """Open websockets per user, oldest first.

    A user may keep at most ``max_connections_per_user`` sockets (one per
    open tab); connecting past the limit closes the oldest one.
    """

    def __init__(self, max_connections_per_user: int = MAX_CONNECTIONS_PER_USER) -> None:
        if max_connections_per_user < 1:
            raise ValueError("max_connections_per_user must be at least 1")
        self.max_connections_per_user = max_connections_per_user
        self._connections: dict[int, list[WebSocket]] = {}

    def is_connected(self, user_id: int) -> bool:
        return bool(self._connections.get(user_id))

    def connection_count(self, user_id: int) -> int:
        return len(self._connections.get(user_id, ()))

    async def connect(self, user_id: int, websocket: WebSocket) -> None:
        await websocket.accept()
        connections = self._connections.setdefault(user_id, [])
        connections.append(websocket)
        while len(connections) > self.max_connections_per_user:
            oldest = connections.pop(0)
            logger.info("Closing oldest notification websocket of user %s", user_id)
            try:
                await oldest.close(code=EVICTED_CLOSE_CODE)
            except Exception:
                logger.debug("Evicted websocket of user %s was already closed", user_id)

    def disconnect(self, user_id: int, websocket: WebSocket) -> None:
        connections = self._connections.get(user_id)
        if connections is None:
            return
        if websocket in connections:
            connections.remove(websocket)
        if not connections:
            self._connections.pop(user_id, None)

    async def send_to_user(self, user_id: int, message: dict[str, Any]) -> int:
        """Send ``message`` to every open socket of ``user_id``; return how many got it."""

        reached = 0
        for connection in list(self._connections.get(user_id, ())):
            try:
                await connection.send_json(message)
            except Exception:
                logger.debug("Dropping stale websocket for user %s", user_id)
                self.disconnect(user_id, connection)
                continue
            reached += 1
        return reached


notification_manager = NotificationConnectionManager()


__all__ = [
    "MAX_CONNECTIONS_PER_USER",
    "NotificationConnectionManager",
    "notification_manager",
]
