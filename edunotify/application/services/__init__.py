"""Application services for sending and maintaining notifications."""

from .delivery import (
    DeliveryJob,
    DeliveryQueue,
    InlineDeliveryQueue,
    NotificationDeliverer,
    default_inline_queue,
    get_delivery_queue,
    session_deliverer,
)
from .notification_service import (
    CleanupSummary,
    DispatchResult,
    NotificationService,
    Recipient,
)

__all__ = [
    "CleanupSummary",
    "DeliveryJob",
    "DeliveryQueue",
    "DispatchResult",
    "InlineDeliveryQueue",
    "NotificationDeliverer",
    "NotificationService",
    "Recipient",
    "default_inline_queue",
    "get_delivery_queue",
    "session_deliverer",
]
