"""Domain entities exposed by the application."""

from .notification import (
    SORTABLE_COLUMNS,
    STATUS_READ,
    STATUS_UNREAD,
    Notification,
    NotificationFilters,
    NotificationPage,
    NotificationStats,
)
from .user import (
    ROLE_ADMIN,
    ROLE_PARENT,
    ROLE_STUDENT,
    ROLE_TEACHER,
    USER_ROLES,
    User,
)

__all__ = [
    "Notification",
    "NotificationFilters",
    "NotificationPage",
    "NotificationStats",
    "SORTABLE_COLUMNS",
    "STATUS_READ",
    "STATUS_UNREAD",
    "User",
    "USER_ROLES",
    "ROLE_ADMIN",
    "ROLE_TEACHER",
    "ROLE_PARENT",
    "ROLE_STUDENT",
]
