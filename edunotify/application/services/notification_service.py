"""Facade used by the CRUD layer to send and maintain notifications.

Every public method reports failure through its return value and logs the
cause; none of them raises. Callers invoke these methods inline while
handling a request and must not fail because a notification could not be
delivered.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Union

from sqlalchemy.orm import Session

from edunotify.config import get_settings
from edunotify.domain.entities import NotificationStats, User
from edunotify.domain.exceptions import NotFoundError, NotificationError
from edunotify.domain.notifications import (
    AssignmentDueNotification,
    EventReminderNotification,
    NewMessageNotification,
    NotificationKind,
    PaymentReceivedNotification,
    SystemMaintenanceNotification,
    WelcomeNotification,
    build_kind,
    resolve_delivery,
)
from edunotify.infrastructure.repositories import NotificationRepository, UserRepository
from edunotify.utils import now_in_app_timezone, start_of_day, start_of_month, start_of_week

from .delivery import DeliveryJob, DeliveryQueue, get_delivery_queue

logger = logging.getLogger(__name__)

Recipient = Union[User, int]


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of a send operation; truthy when nothing failed."""

    success: bool
    count: int = 0
    errors: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return self.success


@dataclass(frozen=True)
class CleanupSummary:
    """Totals reported by :meth:`NotificationService.cleanup_all`."""

    processed_recipients: int
    total_deleted: int
    days_old: int
    failed_recipients: tuple[int, ...] = ()


class NotificationService:
    """Send notifications to users and maintain their notification records."""

    def __init__(
        self,
        session: Session,
        *,
        queue: DeliveryQueue | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.session = session
        self._queue = queue
        self._clock = clock or now_in_app_timezone
        self._users = UserRepository(session)
        self._notifications = NotificationRepository(session)

    @property
    def queue(self) -> DeliveryQueue:
        if self._queue is None:
            self._queue = get_delivery_queue()
        return self._queue

    # -- generic dispatch ---------------------------------------------------

    def send_to_one(self, kind: NotificationKind, recipient: Recipient) -> DispatchResult:
        """Send ``kind`` to a single recipient."""

        recipient_id = _recipient_id(recipient)
        try:
            user = self._resolve_recipient(recipient)
            sent = self._dispatch(kind, user)
        except Exception as exc:  # never propagate to the caller
            return self._failure(kind.type_tag, recipient_id, exc)
        return DispatchResult(success=True, count=int(sent))

    def send_to_many(
        self, kind: NotificationKind, recipients: Iterable[Recipient]
    ) -> DispatchResult:
        """Send ``kind`` to every recipient, continuing past individual failures."""

        try:
            targets = list(recipients)
        except Exception as exc:
            return self._failure(kind.type_tag, None, exc)

        count = 0
        errors: list[str] = []
        for recipient in targets:
            result = self.send_to_one(kind, recipient)
            count += result.count
            errors.extend(result.errors)

        logger.info(
            "%s notifications handed off to %s of %s recipients",
            kind.type_tag,
            count,
            len(targets),
            extra={"notification_type": kind.type_tag, "user_count": count},
        )
        return DispatchResult(success=not errors, count=count, errors=tuple(errors))

    def send_bulk(
        self,
        kind_identifier: str,
        recipients: Iterable[Recipient],
        data: Mapping[str, Any],
    ) -> DispatchResult:
        """Build the kind named ``kind_identifier`` from ``data`` and fan it out."""

        try:
            kind = build_kind(kind_identifier, data)
        except NotificationError as exc:
            return self._failure(str(kind_identifier), None, exc)
        return self.send_to_many(kind, recipients)

    # -- per-kind helpers ---------------------------------------------------

    def send_welcome(self, user: Recipient, action_url: str | None = None) -> DispatchResult:
        try:
            target = self._resolve_recipient(user)
        except Exception as exc:
            return self._failure(WelcomeNotification.type_tag, _recipient_id(user), exc)
        return self._send(
            WelcomeNotification, target, user_name=target.name, action_url=action_url
        )

    def send_event_reminder(
        self,
        users: Recipient | Iterable[Recipient],
        event_title: str,
        event_date: str,
        event_location: str | None = None,
        action_url: str | None = None,
        reminder_type: str | None = "upcoming",
    ) -> DispatchResult:
        return self._send(
            EventReminderNotification,
            users,
            event_title=event_title,
            event_date=event_date,
            event_location=event_location,
            action_url=action_url,
            reminder_type=reminder_type,
        )

    def send_payment_received(
        self,
        user: Recipient,
        amount: float,
        payment_method: str,
        reference: str,
        action_url: str | None = None,
        currency: str | None = "USD",
        description: str | None = None,
    ) -> DispatchResult:
        return self._send(
            PaymentReceivedNotification,
            user,
            amount=amount,
            payment_method=payment_method,
            reference=reference,
            action_url=action_url,
            currency=currency,
            description=description,
        )

    def send_assignment_due(
        self,
        users: Recipient | Iterable[Recipient],
        assignment_title: str,
        due_date: str,
        course_name: str,
        action_url: str | None = None,
        time_remaining: str | None = None,
        instructions: str | None = None,
        priority: str = "normal",
    ) -> DispatchResult:
        return self._send(
            AssignmentDueNotification,
            users,
            assignment_title=assignment_title,
            due_date=due_date,
            course_name=course_name,
            action_url=action_url,
            time_remaining=time_remaining,
            instructions=instructions,
            priority=priority,
        )

    def send_system_maintenance(
        self,
        maintenance_date: str,
        start_time: str,
        end_time: str,
        description: str,
        users: Iterable[Recipient] | None = None,
        impact: str | None = None,
        affected_services: Sequence[str] | None = None,
        maintenance_type: str = "scheduled",
    ) -> DispatchResult:
        """Announce maintenance to ``users`` or, by default, every active user."""

        try:
            targets = list(self._users.list_active() if users is None else users)
        except Exception as exc:
            return self._failure(SystemMaintenanceNotification.type_tag, None, exc)
        return self._send(
            SystemMaintenanceNotification,
            targets,
            maintenance_date=maintenance_date,
            start_time=start_time,
            end_time=end_time,
            description=description,
            impact=impact,
            affected_services=affected_services,
            maintenance_type=maintenance_type,
        )

    def send_new_message(
        self,
        user: Recipient,
        sender_name: str,
        subject: str,
        preview: str,
        action_url: str | None = None,
        sender_email: str | None = None,
        message_id: str | None = None,
        message_type: str = "message",
        priority: str = "normal",
    ) -> DispatchResult:
        return self._send(
            NewMessageNotification,
            user,
            sender_name=sender_name,
            subject=subject,
            preview=preview,
            action_url=action_url,
            sender_email=sender_email,
            message_id=message_id,
            message_type=message_type,
            priority=priority,
        )

    # -- record lifecycle ---------------------------------------------------

    def mark_all_read(self, recipient: Recipient) -> int:
        """Mark every unread notification of ``recipient`` as read."""

        user_id = _recipient_id(recipient)
        try:
            count = self._notifications.mark_all_as_read(user_id, read_at=self._clock())
        except Exception as exc:
            self._log_error("Failed to mark all notifications as read", None, user_id, exc)
            return 0
        logger.info("Marked %s notifications as read for user %s", count, user_id)
        return count

    def delete_old_read(self, recipient: Recipient, older_than_days: int = 30) -> int:
        """Delete notifications of ``recipient`` read more than ``older_than_days`` ago."""

        user_id = _recipient_id(recipient)
        if older_than_days < 0:
            _log_negative_retention(older_than_days)
            return 0
        try:
            return self._delete_old_read(user_id, older_than_days)
        except Exception as exc:
            self._log_error("Failed to delete old read notifications", None, user_id, exc)
            return 0

    def cleanup_all(self, older_than_days: int | None = None) -> CleanupSummary:
        """Apply :meth:`delete_old_read` to every user, tolerating per-user failures."""

        days = (
            get_settings().notification_retention_days
            if older_than_days is None
            else older_than_days
        )
        if days < 0:
            _log_negative_retention(days)
            return CleanupSummary(processed_recipients=0, total_deleted=0, days_old=days)
        try:
            user_ids = self._users.list_ids()
        except Exception as exc:
            self._log_error("Failed to list users for notification cleanup", None, None, exc)
            return CleanupSummary(processed_recipients=0, total_deleted=0, days_old=days)

        processed = 0
        total_deleted = 0
        failed: list[int] = []
        for user_id in user_ids:
            try:
                total_deleted += self._delete_old_read(user_id, days)
            except Exception as exc:
                self._log_error("Notification cleanup failed", None, user_id, exc)
                failed.append(user_id)
                continue
            processed += 1

        logger.info(
            "Notifications cleanup completed: %s users processed, %s deleted, %s failed",
            processed,
            total_deleted,
            len(failed),
            extra={"days_old": days},
        )
        return CleanupSummary(
            processed_recipients=processed,
            total_deleted=total_deleted,
            days_old=days,
            failed_recipients=tuple(failed),
        )

    def stats(self, recipient: Recipient) -> NotificationStats:
        """Return notification counters for ``recipient``; zeros on failure."""

        user_id = _recipient_id(recipient)
        now = self._clock()
        today = start_of_day(now)
        week = start_of_week(now)
        month = start_of_month(now)
        next_month = (month + timedelta(days=32)).replace(day=1)
        try:
            total = self._notifications.count(user_id)
            unread = self._notifications.count(user_id, read=False)
            return NotificationStats(
                total=total,
                unread=unread,
                read=total - unread,
                today=self._notifications.count(
                    user_id, created_from=today, created_until=today + timedelta(days=1)
                ),
                this_week=self._notifications.count(
                    user_id, created_from=week, created_until=week + timedelta(days=7)
                ),
                this_month=self._notifications.count(
                    user_id, created_from=month, created_until=next_month
                ),
            )
        except Exception as exc:
            self._log_error("Failed to compute notification stats", None, user_id, exc)
            return NotificationStats()

    # -- internals ----------------------------------------------------------

    def _send(
        self,
        kind_cls: type[NotificationKind],
        recipients: Recipient | Iterable[Recipient],
        **fields: Any,
    ) -> DispatchResult:
        try:
            kind = kind_cls(**fields)
        except NotificationError as exc:
            return self._failure(kind_cls.type_tag, None, exc)
        if isinstance(recipients, (User, int)):
            return self.send_to_one(kind, recipients)
        return self.send_to_many(kind, recipients)

    def _dispatch(self, kind: NotificationKind, user: User) -> bool:
        now = self._clock()
        plan = resolve_delivery(kind, now)
        if not plan.should_send:
            logger.info(
                "Suppressed %s notification for user %s",
                kind.type_tag,
                user.id,
                extra={"notification_type": kind.type_tag, "recipient_id": user.id},
            )
            return False

        job = DeliveryJob(
            recipient_id=user.id,
            recipient_email=user.email,
            kind=kind,
            channels=plan.channels,
            delay_until=plan.delay_until,
            sound_hint=plan.sound_hint,
        )
        self.queue.enqueue(job)
        logger.info(
            "%s notification queued for user %s",
            kind.type_tag,
            user.id,
            extra={"notification_type": kind.type_tag, "recipient_id": user.id},
        )
        return True

    def _resolve_recipient(self, recipient: Recipient) -> User:
        if isinstance(recipient, User):
            if recipient.id is None:
                raise NotFoundError("Recipient has not been saved")
            return recipient
        user = self._users.get(int(recipient))
        if user is None or not user.is_active:
            raise NotFoundError(f"User {recipient} not found")
        return user

    def _delete_old_read(self, user_id: int | None, older_than_days: int) -> int:
        cutoff = self._clock() - timedelta(days=older_than_days)
        count = self._notifications.delete_read(user_id, read_before=cutoff)
        logger.info(
            "Deleted %s read notifications older than %s days for user %s",
            count,
            older_than_days,
            user_id,
        )
        return count

    def _failure(
        self, type_tag: str, recipient_id: int | None, exc: Exception
    ) -> DispatchResult:
        self._log_error(f"Failed to send {type_tag} notification", type_tag, recipient_id, exc)
        return DispatchResult(success=False, errors=(f"{recipient_id}: {exc}",))

    @staticmethod
    def _log_error(
        message: str, type_tag: str | None, recipient_id: int | None, exc: Exception
    ) -> None:
        extra = {
            "notification_type": type_tag,
            "recipient_id": recipient_id,
            "error": str(exc),
        }
        if isinstance(exc, NotificationError):
            logger.error("%s (user %s): %s", message, recipient_id, exc, extra=extra)
        else:
            logger.exception("%s (user %s): %s", message, recipient_id, exc, extra=extra)


def _log_negative_retention(days: int) -> None:
    logger.error(
        "Refusing to delete read notifications: older_than_days must not be negative (got %s)",
        days,
        extra={"days_old": days},
    )


def _recipient_id(recipient: Recipient) -> int | None:
    if isinstance(recipient, User):
        return recipient.id
    try:
        return int(recipient)
    except (TypeError, ValueError):
        return None


__all__ = ["CleanupSummary", "DispatchResult", "NotificationService", "Recipient"]
