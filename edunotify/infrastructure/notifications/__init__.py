"""Realtime notification helpers for the infrastructure layer."""

from .manager import MAX_CONNECTIONS_PER_USER, NotificationConnectionManager, notification_manager
from .publisher import (
    NotificationPublisher,
    dispatch_notification,
    notification_publisher,
    serialize_notification,
)

__all__ = [
    "MAX_CONNECTIONS_PER_USER",
    "NotificationConnectionManager",
    "notification_manager",
    "NotificationPublisher",
    "notification_publisher",
    "dispatch_notification",
    "serialize_notification",
]
