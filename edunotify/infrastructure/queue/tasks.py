"""Celery tasks delivering notifications and pruning old ones."""

from __future__ import annotations

import logging
from typing import Any

from celery import shared_task

from edunotify.application.services import (
    DeliveryJob,
    NotificationService,
    session_deliverer,
)
from edunotify.infrastructure.database import SessionLocal

from .celery_app import celery_app  # noqa: F401  registers the app for shared tasks

logger = logging.getLogger(__name__)


@shared_task(name="edunotify.deliver_notification")
def deliver_notification(message: dict[str, Any]) -> str | None:
    """Deliver a serialized :class:`DeliveryJob`; errors are left to Celery."""

    job = DeliveryJob.from_message(message)
    try:
        with session_deliverer() as deliverer:
            saved = deliverer.deliver(job)
    except Exception as exc:
        logger.error(
            "Queued %s notification for user %s failed: %s",
            job.kind.type_tag,
            job.recipient_id,
            exc,
            extra={
                "notification_type": job.kind.type_tag,
                "recipient_id": job.recipient_id,
                "error": str(exc),
            },
        )
        raise
    return saved.id if saved else None


@shared_task(name="edunotify.cleanup_notifications")
def cleanup_notifications(older_than_days: int | None = None) -> dict[str, Any]:
    session = SessionLocal()
    try:
        summary = NotificationService(session).cleanup_all(older_than_days)
    finally:
        session.close()
    return {
        "processed_recipients": summary.processed_recipients,
        "total_deleted": summary.total_deleted,
        "failed_recipients": list(summary.failed_recipients),
        "days_old": summary.days_old,
    }


__all__ = ["cleanup_notifications", "deliver_notification"]
