"""Celery-backed delivery queue."""

from __future__ import annotations

from edunotify.application.services.delivery import DeliveryJob

from .celery_app import celery_app
from .tasks import cleanup_notifications, deliver_notification


class CeleryDeliveryQueue:
    """Hand delivery jobs to Celery workers, honouring ``delay_until`` as ``eta``."""

    def enqueue(self, job: DeliveryJob) -> None:
        deliver_notification.apply_async(args=(job.to_message(),), eta=job.delay_until)


__all__ = [
    "CeleryDeliveryQueue",
    "celery_app",
    "cleanup_notifications",
    "deliver_notification",
]
