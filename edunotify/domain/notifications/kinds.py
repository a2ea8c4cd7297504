"""Closed set of notification kinds and their rendering rules.

Each kind is a frozen dataclass holding the inputs supplied by the caller.
The shared :class:`NotificationKind` base assembles the persisted payload and
the :class:`MailMessage`; subclasses only provide their wording and override
the delivery hooks they need (channels, staleness, delay, sound).
"""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Mapping, Sequence
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, ClassVar, TypeVar

from edunotify.config import get_settings
from edunotify.domain.exceptions import ValidationError
from edunotify.utils import ensure_app_timezone, parse_app_datetime

from .channels import DEFAULT_CHANNELS, Channel
from .mail import MailAction, MailMessage

PRIORITY_LOW = "low"
PRIORITY_NORMAL = "normal"
PRIORITY_HIGH = "high"
PRIORITY_URGENT = "urgent"
PRIORITIES = (PRIORITY_LOW, PRIORITY_NORMAL, PRIORITY_HIGH, PRIORITY_URGENT)

MAINTENANCE_SCHEDULED = "scheduled"
MAINTENANCE_EMERGENCY = "emergency"

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}

STALE_ASSIGNMENT_AGE = timedelta(weeks=1)
MAINTENANCE_BATCH_DELAY = timedelta(minutes=5)

K = TypeVar("K", bound="NotificationKind")


def format_amount(amount: float, currency: str) -> str:
    """Format ``amount`` with the symbol of ``currency`` and two decimals."""

    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    return f"{symbol}{amount:,.2f}"


def _format_timestamp(value: datetime) -> str:
    hour = value.hour % 12 or 12
    return f"{value:%b %d, %Y} {hour}:{value:%M %p}"


@dataclasses.dataclass(frozen=True)
class NotificationKind:
    """Shared template for every notification kind."""

    type_tag: ClassVar[str]
    label: ClassVar[str]
    icon: ClassVar[str]
    color: ClassVar[str]
    required_fields: ClassVar[tuple[str, ...]]
    typed_fields: ClassVar[tuple[str, ...]] = ()
    action_text: ClassVar[str | None] = None
    mail_action_label: ClassVar[str | None] = None
    salutation: ClassVar[str] = "Regards, The School Team"

    def __post_init__(self) -> None:
        # typed_fields are checked by the kind's own validate()
        for name in self.required_fields:
            if name not in self.typed_fields:
                self._require_text(name)
        self.validate()

    def validate(self) -> None:
        """Hook for kind-specific field checks."""

    # -- delivery hooks -------------------------------------------------

    def channels(self) -> frozenset[Channel]:
        return DEFAULT_CHANNELS

    def should_send(self, now: datetime) -> bool:
        return True

    def delay_until(self, now: datetime) -> datetime | None:
        return None

    def sound_hint(self) -> str | None:
        return None

    # -- rendering hooks ------------------------------------------------

    def title(self) -> str:
        raise NotImplementedError

    def message(self) -> str:
        raise NotImplementedError

    def action_url_value(self) -> str | None:
        return getattr(self, "action_url", None)

    def extra_fields(self) -> dict[str, Any]:
        """Rendered values persisted next to the raw inputs."""

        return {}

    def mail_subject(self) -> str:
        return self.title()

    def mail_greeting(self) -> str:
        return self.label

    def mail_lines(self, now: datetime) -> list[str]:
        raise NotImplementedError

    def mail_outro(self) -> list[str]:
        return []

    # -- assembled payloads ---------------------------------------------

    def to_database(self, now: datetime) -> dict[str, Any]:
        """Return the flat, JSON-safe payload stored on the notification row."""

        payload: dict[str, Any] = {
            "title": self.title(),
            "message": self.message(),
            "action_text": self.action_text,
        }
        payload.update(self.to_data())
        payload.update(self.extra_fields())
        payload["action_url"] = self.action_url_value()
        payload["type"] = self.type_tag
        payload["icon"] = self.icon
        return payload

    def to_mail(self, now: datetime) -> MailMessage:
        url = self.action_url_value()
        action = None
        if url and self.mail_action_label:
            action = MailAction(label=self.mail_action_label, url=url)
        return MailMessage(
            subject=self.mail_subject(),
            greeting=self.mail_greeting(),
            lines=tuple(self.mail_lines(now)),
            action=action,
            outro_lines=tuple(self.mail_outro()),
            salutation=self.salutation,
        )

    def to_data(self) -> dict[str, Any]:
        """Return the caller-supplied inputs as a JSON-safe mapping."""

        data: dict[str, Any] = {}
        for item in dataclasses.fields(self):
            value = getattr(self, item.name)
            data[item.name] = list(value) if isinstance(value, tuple) else value
        return data

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(item.name for item in dataclasses.fields(cls))

    @classmethod
    def from_data(cls: type[K], data: Mapping[str, Any], *, strict: bool = True) -> K:
        """Build the kind from a mapping of its input fields.

        With ``strict`` unknown keys are rejected; otherwise they are ignored,
        which is how persisted payloads (that also hold rendered fields) are
        read back.
        """

        if not isinstance(data, Mapping):
            raise ValidationError(cls.type_tag, "data must be a mapping")
        names = cls.field_names()
        unknown = sorted(set(data) - set(names))
        if strict and unknown:
            raise ValidationError(
                cls.type_tag, f"unexpected fields: {', '.join(unknown)}"
            )
        missing = [
            item.name
            for item in dataclasses.fields(cls)
            if item.default is dataclasses.MISSING
            and item.default_factory is dataclasses.MISSING
            and data.get(item.name) is None
        ]
        if missing:
            raise ValidationError(
                cls.type_tag, f"missing required fields: {', '.join(missing)}"
            )
        values = {name: data[name] for name in names if name in data}
        return cls(**values)

    # -- validation helpers ---------------------------------------------

    def _require_text(self, name: str) -> None:
        value = getattr(self, name)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(self.type_tag, f"'{name}' must be a non-empty string")

    def _optional_text(self, *names: str) -> None:
        for name in names:
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise ValidationError(self.type_tag, f"'{name}' must be a string")

    def _require_priority(self) -> None:
        priority = getattr(self, "priority")
        if priority not in PRIORITIES:
            raise ValidationError(
                self.type_tag,
                f"'priority' must be one of {', '.join(PRIORITIES)}",
            )

    def _set(self, name: str, value: Any) -> None:
        object.__setattr__(self, name, value)


@dataclasses.dataclass(frozen=True)
class WelcomeNotification(NotificationKind):
    type_tag: ClassVar[str] = "welcome"
    label: ClassVar[str] = "Welcome"
    icon: ClassVar[str] = "hand-raised"
    color: ClassVar[str] = "text-emerald-600"
    required_fields: ClassVar[tuple[str, ...]] = ("user_name",)
    action_text: ClassVar[str | None] = "Get Started"
    mail_action_label: ClassVar[str | None] = "Get Started"

    user_name: str
    action_url: str | None = None

    def validate(self) -> None:
        self._optional_text("action_url")

    def action_url_value(self) -> str:
        if self.action_url:
            return self.action_url
        return f"{get_settings().app_url.rstrip('/')}/dashboard"

    def title(self) -> str:
        return "Welcome to our platform!"

    def message(self) -> str:
        return (
            f"Hello {self.user_name}! Welcome to our platform. "
            "We're excited to have you on board."
        )

    def mail_greeting(self) -> str:
        return f"Hello {self.user_name}!"

    def mail_lines(self, now: datetime) -> list[str]:
        return ["Welcome to our platform. We're excited to have you on board."]

    def mail_outro(self) -> list[str]:
        return ["If you have any questions, feel free to contact our support team."]


@dataclasses.dataclass(frozen=True)
class EventReminderNotification(NotificationKind):
    type_tag: ClassVar[str] = "event_reminder"
    label: ClassVar[str] = "Event Reminder"
    icon: ClassVar[str] = "calendar"
    color: ClassVar[str] = "text-purple-600"
    required_fields: ClassVar[tuple[str, ...]] = ("event_title", "event_date")
    action_text: ClassVar[str | None] = "View Event"
    mail_action_label: ClassVar[str | None] = "View Event Details"
    salutation: ClassVar[str] = "Best regards, The Events Team"

    event_title: str
    event_date: str
    event_location: str | None = None
    action_url: str | None = None
    reminder_type: str | None = "upcoming"

    def validate(self) -> None:
        self._optional_text("event_location", "action_url", "reminder_type")

    def title(self) -> str:
        return f"Event Reminder: {self.event_title}"

    def message(self) -> str:
        message = f"Don't forget about the upcoming event on {self.event_date}"
        if self.event_location:
            message += f" at {self.event_location}"
        return message + "."

    def mail_lines(self, now: datetime) -> list[str]:
        lines = [
            f"Don't forget about the upcoming event: {self.event_title}",
            f"📅 Date: {self.event_date}",
        ]
        if self.event_location:
            lines.append(f"📍 Location: {self.event_location}")
        return lines

    def mail_outro(self) -> list[str]:
        return ["We look forward to seeing you there!"]


@dataclasses.dataclass(frozen=True)
class PaymentReceivedNotification(NotificationKind):
    type_tag: ClassVar[str] = "payment_received"
    label: ClassVar[str] = "Payment Received"
    icon: ClassVar[str] = "credit-card"
    color: ClassVar[str] = "text-green-600"
    required_fields: ClassVar[tuple[str, ...]] = ("amount", "payment_method", "reference")
    typed_fields: ClassVar[tuple[str, ...]] = ("amount",)
    action_text: ClassVar[str | None] = "View Payment"
    mail_action_label: ClassVar[str | None] = "View Payment Details"
    salutation: ClassVar[str] = "Best regards, The Finance Team"

    amount: float
    payment_method: str
    reference: str
    action_url: str | None = None
    currency: str | None = "USD"
    description: str | None = None

    def validate(self) -> None:
        amount = self.amount
        if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
            raise ValidationError(self.type_tag, "'amount' must be a number")
        amount = float(amount)
        if not math.isfinite(amount):
            raise ValidationError(self.type_tag, "'amount' must be a finite number")
        self._set("amount", amount)
        self._optional_text("action_url", "currency", "description")
        self._set("currency", (self.currency or "USD").strip().upper() or "USD")

    @property
    def formatted_amount(self) -> str:
        return format_amount(self.amount, self.currency or "USD")

    def title(self) -> str:
        return "Payment Received"

    def message(self) -> str:
        return f"Your payment of {self.formatted_amount} has been successfully processed."

    def extra_fields(self) -> dict[str, Any]:
        return {"formatted_amount": self.formatted_amount}

    def mail_subject(self) -> str:
        return "Payment Received - Confirmation"

    def mail_greeting(self) -> str:
        return "Payment Confirmation"

    def mail_lines(self, now: datetime) -> list[str]:
        lines = [
            f"We have successfully received your payment of {self.formatted_amount}",
            f"💳 Payment Method: {self.payment_method}",
            f"🔗 Reference: {self.reference}",
            f"📅 Date: {_format_timestamp(now)}",
        ]
        if self.description:
            lines.append(f"📝 Description: {self.description}")
        return lines

    def mail_outro(self) -> list[str]:
        return ["Thank you for your payment!", "Keep this email for your records."]


@dataclasses.dataclass(frozen=True)
class AssignmentDueNotification(NotificationKind):
    type_tag: ClassVar[str] = "assignment_due"
    label: ClassVar[str] = "Assignment Due"
    icon: ClassVar[str] = "document-text"
    color: ClassVar[str] = "text-red-600"
    required_fields: ClassVar[tuple[str, ...]] = (
        "assignment_title",
        "due_date",
        "course_name",
    )
    typed_fields: ClassVar[tuple[str, ...]] = ("due_date",)
    action_text: ClassVar[str | None] = "View Assignment"
    mail_action_label: ClassVar[str | None] = "View Assignment"
    salutation: ClassVar[str] = "Best regards, Your Academic Team"

    assignment_title: str
    due_date: str
    course_name: str
    action_url: str | None = None
    time_remaining: str | None = None
    instructions: str | None = None
    priority: str = PRIORITY_NORMAL

    def validate(self) -> None:
        due_date = self.due_date
        if isinstance(due_date, (date, datetime)):
            self._set("due_date", due_date.isoformat())
        else:
            self._require_text("due_date")
        try:
            parse_app_datetime(self.due_date)
        except ValueError as exc:
            raise ValidationError(
                self.type_tag, f"'due_date' is not an ISO date: {self.due_date!r}"
            ) from exc
        self._optional_text("action_url", "time_remaining", "instructions")
        self._require_priority()

    @property
    def is_urgent(self) -> bool:
        return self.priority == PRIORITY_URGENT

    def due_at(self) -> datetime:
        return parse_app_datetime(self.due_date)

    def should_send(self, now: datetime) -> bool:
        # More than a week overdue is stale.
        return self.due_at() >= ensure_app_timezone(now) - STALE_ASSIGNMENT_AGE

    def title(self) -> str:
        return f"Assignment Due: {self.assignment_title}"

    def message(self) -> str:
        message = f"Your assignment for {self.course_name} is due on {self.due_date}"
        if self.time_remaining:
            message += f". Time remaining: {self.time_remaining}"
        return message + "."

    def mail_subject(self) -> str:
        prefix = "URGENT: " if self.is_urgent else ""
        return f"{prefix}Assignment Due: {self.assignment_title}"

    def mail_greeting(self) -> str:
        return "Assignment Reminder"

    def mail_lines(self, now: datetime) -> list[str]:
        lines = [
            f"Your assignment '{self.assignment_title}' for {self.course_name} "
            f"is due on {self.due_date}."
        ]
        if self.time_remaining:
            lines.append(f"⏰ Time remaining: {self.time_remaining}")
        if self.instructions:
            lines.append(f"📋 Instructions: {self.instructions}")
        return lines

    def mail_outro(self) -> list[str]:
        lines = ["Make sure to submit it on time to avoid any penalties."]
        if self.is_urgent:
            lines.append(
                "⚠️ This is an urgent reminder - the deadline is approaching soon!"
            )
        return lines


@dataclasses.dataclass(frozen=True)
class SystemMaintenanceNotification(NotificationKind):
    type_tag: ClassVar[str] = "system_maintenance"
    label: ClassVar[str] = "System Maintenance"
    icon: ClassVar[str] = "cog-6-tooth"
    color: ClassVar[str] = "text-orange-600"
    required_fields: ClassVar[tuple[str, ...]] = (
        "maintenance_date",
        "start_time",
        "end_time",
        "description",
        "maintenance_type",
    )
    salutation: ClassVar[str] = "Best regards, The Technical Team"

    maintenance_date: str
    start_time: str
    end_time: str
    description: str
    impact: str | None = None
    affected_services: tuple[str, ...] | None = None
    maintenance_type: str = MAINTENANCE_SCHEDULED

    def validate(self) -> None:
        self._optional_text("impact")
        services = self.affected_services
        if services is not None:
            if isinstance(services, str) or not isinstance(services, Sequence):
                raise ValidationError(
                    self.type_tag, "'affected_services' must be a list of strings"
                )
            if not all(isinstance(service, str) for service in services):
                raise ValidationError(
                    self.type_tag, "'affected_services' must be a list of strings"
                )
            self._set("affected_services", tuple(services))

    @property
    def is_emergency(self) -> bool:
        return self.maintenance_type == MAINTENANCE_EMERGENCY

    def delay_until(self, now: datetime) -> datetime | None:
        if self.is_emergency:
            return None
        return now + MAINTENANCE_BATCH_DELAY

    def title(self) -> str:
        if self.is_emergency:
            return "Emergency System Maintenance"
        return "Scheduled System Maintenance"

    def message(self) -> str:
        return (
            f"{self.maintenance_type.capitalize()} maintenance scheduled for "
            f"{self.maintenance_date} from {self.start_time} to {self.end_time}. "
            f"{self.description}"
        )

    def extra_fields(self) -> dict[str, Any]:
        return {"priority": PRIORITY_HIGH if self.is_emergency else PRIORITY_NORMAL}

    def mail_subject(self) -> str:
        if self.is_emergency:
            return "URGENT: Emergency System Maintenance"
        return "Scheduled System Maintenance"

    def mail_greeting(self) -> str:
        return "System Maintenance Notice"

    def mail_lines(self, now: datetime) -> list[str]:
        lines: list[str] = []
        if self.is_emergency:
            lines.append("⚠️ EMERGENCY MAINTENANCE NOTICE ⚠️")
        lines.append(
            f"We will be performing {self.maintenance_type} maintenance on "
            f"{self.maintenance_date} from {self.start_time} to {self.end_time}."
        )
        lines.append(f"🔧 Description: {self.description}")
        if self.impact:
            lines.append(f"📋 Expected Impact: {self.impact}")
        if self.affected_services:
            lines.append("🎯 Affected Services:")
            lines.append("\n".join(f"• {service}" for service in self.affected_services))
        lines.append("During this time, some features may be temporarily unavailable.")
        if self.is_emergency:
            lines.append(
                "We sincerely apologize for the short notice and any "
                "inconvenience this may cause."
            )
        else:
            lines.append("We apologize for any inconvenience this may cause.")
        lines.append("We will notify you once the maintenance is complete.")
        return lines


@dataclasses.dataclass(frozen=True)
class NewMessageNotification(NotificationKind):
    type_tag: ClassVar[str] = "new_message"
    label: ClassVar[str] = "New Message"
    icon: ClassVar[str] = "chat-bubble-left"
    color: ClassVar[str] = "text-indigo-600"
    required_fields: ClassVar[tuple[str, ...]] = (
        "sender_name",
        "subject",
        "preview",
        "message_type",
    )
    action_text: ClassVar[str | None] = "Read Message"
    mail_action_label: ClassVar[str | None] = "Read Message"
    salutation: ClassVar[str] = "Best regards, The Messaging Team"

    sender_name: str
    subject: str
    preview: str
    action_url: str | None = None
    sender_email: str | None = None
    message_id: str | None = None
    message_type: str = "message"
    priority: str = PRIORITY_NORMAL

    def validate(self) -> None:
        if isinstance(self.message_id, int) and not isinstance(self.message_id, bool):
            self._set("message_id", str(self.message_id))
        self._optional_text("action_url", "sender_email", "message_id")
        self._require_priority()

    def channels(self) -> frozenset[Channel]:
        if self.priority in (PRIORITY_HIGH, PRIORITY_URGENT):
            return DEFAULT_CHANNELS
        return frozenset({Channel.DATABASE})

    def sound_hint(self) -> str:
        if self.priority == PRIORITY_URGENT:
            return "urgent-alert"
        if self.priority == PRIORITY_HIGH:
            return "priority-alert"
        return "message-tone"

    def title(self) -> str:
        return f"New Message from {self.sender_name}"

    def message(self) -> str:
        return f"Subject: {self.subject}. {self.preview}"

    def mail_subject(self) -> str:
        prefix = {PRIORITY_URGENT: "URGENT: ", PRIORITY_HIGH: "IMPORTANT: "}.get(
            self.priority, ""
        )
        return f"{prefix}New Message: {self.subject}"

    def mail_greeting(self) -> str:
        return "New Message Received"

    def mail_lines(self, now: datetime) -> list[str]:
        lines = [f"You have received a new {self.message_type} from {self.sender_name}"]
        if self.sender_email:
            lines.append(f"📧 From: {self.sender_email}")
        lines.append(f"📝 Subject: {self.subject}")
        lines.append(f"👀 Preview: {self.preview}")
        if self.priority == PRIORITY_URGENT:
            lines.append(
                "🚨 This message is marked as URGENT - please respond as soon as possible."
            )
        elif self.priority == PRIORITY_HIGH:
            lines.append("⚡ This message is marked as HIGH PRIORITY.")
        return lines

    def mail_outro(self) -> list[str]:
        return ["Reply when you get a chance!"]


NOTIFICATION_KINDS: tuple[type[NotificationKind], ...] = (
    WelcomeNotification,
    EventReminderNotification,
    PaymentReceivedNotification,
    AssignmentDueNotification,
    SystemMaintenanceNotification,
    NewMessageNotification,
)


__all__ = [
    "AssignmentDueNotification",
    "CURRENCY_SYMBOLS",
    "EventReminderNotification",
    "MAINTENANCE_BATCH_DELAY",
    "MAINTENANCE_EMERGENCY",
    "MAINTENANCE_SCHEDULED",
    "NOTIFICATION_KINDS",
    "NewMessageNotification",
    "NotificationKind",
    "PRIORITIES",
    "PRIORITY_HIGH",
    "PRIORITY_LOW",
    "PRIORITY_NORMAL",
    "PRIORITY_URGENT",
    "PaymentReceivedNotification",
    "STALE_ASSIGNMENT_AGE",
    "SystemMaintenanceNotification",
    "WelcomeNotification",
    "format_amount",
]
