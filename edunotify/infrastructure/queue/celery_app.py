"""Celery application used when ``NOTIFICATION_QUEUE=celery``."""

from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from edunotify.config import get_settings

settings = get_settings()

celery_app = Celery(
    "edunotify",
    broker=settings.celery_broker_url,
    include=["edunotify.infrastructure.queue.tasks"],
)
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    timezone=settings.app_timezone,
    task_acks_late=True,
)

celery_app.conf.beat_schedule = {
    "cleanup-read-notifications-nightly": {
        "task": "edunotify.cleanup_notifications",
        "schedule": crontab(minute=30, hour=2),
        "args": [settings.notification_retention_days],
    },
}


__all__ = ["celery_app"]
