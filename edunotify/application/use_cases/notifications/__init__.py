"""Use cases for the notification center."""

from .center import (
    DEFAULT_PER_PAGE,
    MAX_PER_PAGE,
    bulk_delete,
    bulk_mark_as_read,
    delete_all_read,
    delete_notification,
    get_notification_stats,
    list_notification_types,
    list_notifications,
    mark_all_as_read,
    mark_as_read,
    mark_as_unread,
    notification_color,
    notification_icon,
    notification_type_label,
)

__all__ = [
    "DEFAULT_PER_PAGE",
    "MAX_PER_PAGE",
    "list_notifications",
    "list_notification_types",
    "mark_as_read",
    "mark_as_unread",
    "mark_all_as_read",
    "delete_notification",
    "bulk_mark_as_read",
    "bulk_delete",
    "delete_all_read",
    "get_notification_stats",
    "notification_icon",
    "notification_color",
    "notification_type_label",
]
