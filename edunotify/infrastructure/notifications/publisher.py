"""Push freshly stored notifications to websocket subscribers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from anyio import from_thread

from edunotify.domain.entities import Notification

from .manager import NotificationConnectionManager, notification_manager

logger = logging.getLogger(__name__)


class NotificationPublisher:
    """Serialize notifications and schedule their realtime delivery.

    Realtime push is advisory: when no event loop is reachable (Celery
    workers, scripts) the push is skipped and the row is picked up by the
    client's next poll or websocket ``init`` snapshot.
    """

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager
        self._tasks: set[asyncio.Task] = set()

    def dispatch(self, notification: Notification, *, sound: str | None = None) -> bool:
        """Schedule ``notification`` for its owner; return ``False`` if skipped."""

        if not self._manager.is_connected(notification.user_id):
            return False

        message = {
            "type": "notification",
            "data": serialize_notification(notification),
            "sound": sound,
        }
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                from_thread.run(self._manager.send_to_user, notification.user_id, message)
            except RuntimeError:
                logger.debug(
                    "No event loop available; skipping realtime push of %s",
                    notification.id,
                )
                return False
        else:
            task = loop.create_task(self._manager.send_to_user(notification.user_id, message))
            self._tasks.add(task)
            task.add_done_callback(self._push_done)
        return True

    def _push_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Realtime push failed", exc_info=error)


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "data": notification.data or {},
        "created_at": notification.created_at.isoformat()
        if notification.created_at
        else None,
        "read_at": notification.read_at.isoformat() if notification.read_at else None,
    }


notification_publisher = NotificationPublisher(notification_manager)


def dispatch_notification(notification: Notification, *, sound: str | None = None) -> bool:
    """Public helper that delegates to the shared publisher instance."""

    return notification_publisher.dispatch(notification, sound=sound)


__all__ = [
    "NotificationPublisher",
    "dispatch_notification",
    "notification_publisher",
    "serialize_notification",
]
