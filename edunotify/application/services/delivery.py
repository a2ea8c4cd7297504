"""Units of delivery work and the queues that execute them."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Any, Protocol
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from edunotify.config import get_settings
from edunotify.domain.entities import Notification
from edunotify.domain.exceptions import DeliveryError
from edunotify.domain.notifications import (
    Channel,
    MailMessage,
    NotificationKind,
    build_kind,
)
from edunotify.infrastructure.database import SessionLocal
from edunotify.infrastructure.email import is_email_configured, send_mail_message
from edunotify.infrastructure.notifications import dispatch_notification
from edunotify.infrastructure.repositories import NotificationRepository
from edunotify.utils import ensure_app_timezone, now_in_app_timezone

logger = logging.getLogger(__name__)

MailSender = Callable[[MailMessage, str], bool]
Publisher = Callable[..., bool]


@dataclass(frozen=True)
class DeliveryJob:
    """Fully resolved notification ready to be delivered to one recipient.

    ``notification_id`` is fixed when the job is created so a retried job
    never stores the same notification twice.
    """

    recipient_id: int
    recipient_email: str | None
    kind: NotificationKind
    channels: frozenset[Channel]
    delay_until: datetime | None = None
    sound_hint: str | None = None
    notification_id: str = field(default_factory=lambda: str(uuid4()))

    def to_message(self) -> dict[str, Any]:
        """Return a JSON-serializable representation for queue brokers."""

        return {
            "notification_id": self.notification_id,
            "recipient_id": self.recipient_id,
            "recipient_email": self.recipient_email,
            "kind": {"type": self.kind.type_tag, "data": self.kind.to_data()},
            "channels": sorted(channel.value for channel in self.channels),
            "delay_until": self.delay_until.isoformat() if self.delay_until else None,
            "sound_hint": self.sound_hint,
        }

    @classmethod
    def from_message(cls, message: Mapping[str, Any]) -> "DeliveryJob":
        kind_payload = message["kind"]
        delay_until = message.get("delay_until")
        return cls(
            notification_id=message["notification_id"],
            recipient_id=int(message["recipient_id"]),
            recipient_email=message.get("recipient_email"),
            kind=build_kind(kind_payload["type"], kind_payload["data"]),
            channels=frozenset(Channel(value) for value in message["channels"]),
            delay_until=datetime.fromisoformat(delay_until) if delay_until else None,
            sound_hint=message.get("sound_hint"),
        )


class NotificationDeliverer:
    """Execute a :class:`DeliveryJob`: store the row, push it, send the mail."""

    def __init__(
        self,
        session: Session,
        *,
        mail_sender: MailSender | None = None,
        publisher: Publisher = dispatch_notification,
        clock: Callable[[], datetime] = now_in_app_timezone,
    ) -> None:
        self.session = session
        self._mail_sender = mail_sender
        self._publisher = publisher
        self._clock = clock
        self._repository = NotificationRepository(session)

    @classmethod
    def from_settings(cls, session: Session) -> "NotificationDeliverer":
        """Build a deliverer that mails through SendGrid when it is configured."""

        sender = send_mail_message if is_email_configured() else None
        return cls(session, mail_sender=sender)

    def deliver(self, job: DeliveryJob, now: datetime | None = None) -> Notification | None:
        """Deliver ``job`` on each of its channels.

        Raises :class:`DeliveryError` when the database write or the mail
        transport fails.
        """

        now = now or self._clock()
        saved = None
        if Channel.DATABASE in job.channels:
            saved = self._persist(job, now)
        if Channel.MAIL in job.channels:
            self._send_mail(job, now)
        return saved

    def _persist(self, job: DeliveryJob, now: datetime) -> Notification:
        try:
            existing = self._repository.get_for_user(
                job.notification_id, user_id=job.recipient_id
            )
            if existing is not None:
                logger.info("Notification %s already stored; skipping", job.notification_id)
                return existing
            data = job.kind.to_database(now)
            saved = self._repository.create(
                Notification(
                    id=job.notification_id,
                    user_id=job.recipient_id,
                    type=job.kind.type_tag,
                    title=data["title"],
                    message=data["message"],
                    data=data,
                    created_at=now,
                )
            )
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise DeliveryError(f"Could not store notification: {exc}") from exc

        try:
            self._publisher(saved, sound=job.sound_hint)
        except Exception:  # realtime push never fails a delivery
            logger.warning("Realtime push failed for notification %s", saved.id, exc_info=True)
        return saved

    def _send_mail(self, job: DeliveryJob, now: datetime) -> None:
        if self._mail_sender is None:
            logger.info(
                "Mail delivery not configured; %s notification for user %s kept in-app only",
                job.kind.type_tag,
                job.recipient_id,
            )
            return
        if not job.recipient_email:
            raise DeliveryError(f"User {job.recipient_id} has no email address")

        message = job.kind.to_mail(now)
        try:
            sent = self._mail_sender(message, job.recipient_email)
        except Exception as exc:
            raise DeliveryError(f"Mail transport error: {exc}") from exc
        if not sent:
            raise DeliveryError(f"Mail transport rejected message to {job.recipient_email}")


class DeliveryQueue(Protocol):
    """Hands a delivery job to whatever executes it."""

    def enqueue(self, job: DeliveryJob) -> None:
        ...


DelivererFactory = Callable[[], AbstractContextManager[NotificationDeliverer]]


@contextmanager
def session_deliverer() -> Iterator[NotificationDeliverer]:
    """Yield a deliverer bound to a fresh database session."""

    session = SessionLocal()
    try:
        yield NotificationDeliverer.from_settings(session)
    finally:
        session.close()


class InlineDeliveryQueue:
    """Deliver jobs in-process.

    Jobs without a delay run synchronously inside :meth:`enqueue`, so their
    failures surface to the dispatch service. Delayed jobs are held until
    :meth:`run_due` is called with a time past their ``delay_until``.
    """

    def __init__(
        self,
        deliverer_factory: DelivererFactory = session_deliverer,
        *,
        clock: Callable[[], datetime] = now_in_app_timezone,
    ) -> None:
        self._deliverer_factory = deliverer_factory
        self._clock = clock
        self._pending: list[DeliveryJob] = []
        self._lock = Lock()

    @property
    def pending(self) -> list[DeliveryJob]:
        with self._lock:
            return list(self._pending)

    def enqueue(self, job: DeliveryJob) -> None:
        now = self._clock()
        if job.delay_until is not None and ensure_app_timezone(job.delay_until) > now:
            with self._lock:
                self._pending.append(job)
            logger.debug(
                "Deferred %s notification for user %s until %s",
                job.kind.type_tag,
                job.recipient_id,
                job.delay_until.isoformat(),
            )
            return
        with self._deliverer_factory() as deliverer:
            deliverer.deliver(job, now)

    def run_due(self, now: datetime | None = None) -> int:
        """Deliver every held job whose delay has elapsed; return how many succeeded.

        A failing job is logged and dropped; it never stops the remaining jobs.
        """

        now = now or self._clock()
        due: list[DeliveryJob] = []
        waiting: list[DeliveryJob] = []
        with self._lock:
            for job in self._pending:
                if ensure_app_timezone(job.delay_until) <= now:
                    due.append(job)
                else:
                    waiting.append(job)
            self._pending = waiting

        delivered = 0
        for job in due:
            try:
                with self._deliverer_factory() as deliverer:
                    deliverer.deliver(job, now)
            except DeliveryError as exc:
                _log_deferred_failure(job, exc)
                continue
            except Exception as exc:
                _log_deferred_failure(job, exc, exc_info=True)
                continue
            delivered += 1
        return delivered


def _log_deferred_failure(job: DeliveryJob, exc: Exception, *, exc_info: bool = False) -> None:
    logger.error(
        "Deferred %s notification for user %s failed: %s",
        job.kind.type_tag,
        job.recipient_id,
        exc,
        exc_info=exc_info,
        extra={
            "notification_type": job.kind.type_tag,
            "recipient_id": job.recipient_id,
            "error": str(exc),
        },
    )


default_inline_queue = InlineDeliveryQueue()


def get_delivery_queue() -> DeliveryQueue:
    """Return the queue selected by the ``NOTIFICATION_QUEUE`` setting."""

    if get_settings().notification_queue == "celery":
        from edunotify.infrastructure.queue import CeleryDeliveryQueue

        return CeleryDeliveryQueue()
    return default_inline_queue


__all__ = [
    "DeliveryJob",
    "DeliveryQueue",
    "InlineDeliveryQueue",
    "NotificationDeliverer",
    "default_inline_queue",
    "get_delivery_queue",
    "session_deliverer",
]
