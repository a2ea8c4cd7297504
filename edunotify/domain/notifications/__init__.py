"""Notification kinds, mail template and delivery policy."""

from .channels import DEFAULT_CHANNELS, Channel
from .kinds import (
    NOTIFICATION_KINDS,
    AssignmentDueNotification,
    EventReminderNotification,
    NewMessageNotification,
    NotificationKind,
    PaymentReceivedNotification,
    SystemMaintenanceNotification,
    WelcomeNotification,
    format_amount,
)
from .mail import MailAction, MailMessage
from .policy import DeliveryPlan, resolve_delivery
from .registry import (
    KIND_REGISTRY,
    build_kind,
    parse_record_payload,
    resolve_kind,
)

__all__ = [
    "AssignmentDueNotification",
    "Channel",
    "DEFAULT_CHANNELS",
    "DeliveryPlan",
    "EventReminderNotification",
    "KIND_REGISTRY",
    "MailAction",
    "MailMessage",
    "NOTIFICATION_KINDS",
    "NewMessageNotification",
    "NotificationKind",
    "PaymentReceivedNotification",
    "SystemMaintenanceNotification",
    "WelcomeNotification",
    "build_kind",
    "format_amount",
    "parse_record_payload",
    "resolve_delivery",
    "resolve_kind",
]
