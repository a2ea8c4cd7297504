from .notification import (
    AffectedCountResponse,
    DispatchRequest,
    DispatchResponse,
    NotificationIdsRequest,
    NotificationPageRead,
    NotificationRead,
    NotificationStatsRead,
    NotificationTypeRead,
)

__all__ = [
    "AffectedCountResponse",
    "DispatchRequest",
    "DispatchResponse",
    "NotificationIdsRequest",
    "NotificationPageRead",
    "NotificationRead",
    "NotificationStatsRead",
    "NotificationTypeRead",
]
