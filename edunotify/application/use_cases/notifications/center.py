"""Use cases backing the per-user notification center."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from sqlalchemy.orm import Session

from edunotify.application.services import NotificationService
from edunotify.domain.entities import (
    SORTABLE_COLUMNS,
    STATUS_READ,
    STATUS_UNREAD,
    Notification,
    NotificationFilters,
    NotificationPage,
    NotificationStats,
)
from edunotify.domain.exceptions import NotificationError
from edunotify.domain.notifications import resolve_kind
from edunotify.infrastructure.repositories import NotificationRepository
from edunotify.utils import now_in_app_timezone

logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 25
MAX_PER_PAGE = 100

DEFAULT_ICON = "information-circle"
DEFAULT_COLOR = "text-gray-600"
READ_COLOR = "text-gray-500"


def _normalize_filters(filters: NotificationFilters | None) -> NotificationFilters:
    filters = filters or NotificationFilters()
    changes: dict[str, str | None] = {}
    if filters.sort_by not in SORTABLE_COLUMNS:
        logger.warning("Ignoring unsupported notification sort column '%s'", filters.sort_by)
        changes["sort_by"] = "created_at"
    direction = (filters.sort_direction or "desc").lower()
    if direction not in ("asc", "desc"):
        direction = "desc"
    if direction != filters.sort_direction:
        changes["sort_direction"] = direction
    if filters.status not in (None, STATUS_READ, STATUS_UNREAD):
        changes["status"] = None
    if filters.search is not None and not filters.search.strip():
        changes["search"] = None
    if filters.type == "":
        changes["type"] = None
    return replace(filters, **changes) if changes else filters


def list_notifications(
    session: Session,
    user_id: int,
    *,
    filters: NotificationFilters | None = None,
    page: int = 1,
    per_page: int = DEFAULT_PER_PAGE,
) -> NotificationPage:
    """Return one page of ``user_id``'s notifications matching ``filters``."""

    page = max(int(page), 1)
    per_page = min(max(int(per_page), 1), MAX_PER_PAGE)
    repository = NotificationRepository(session)
    return repository.search(
        user_id, _normalize_filters(filters), page=page, per_page=per_page
    )


def list_notification_types(session: Session, user_id: int) -> list[tuple[str, str]]:
    """Return ``(type, label)`` pairs for the types present in the user's records."""

    repository = NotificationRepository(session)
    return [(type_, notification_type_label(type_)) for type_ in repository.distinct_types(user_id)]


def mark_as_read(session: Session, user_id: int, notification_id: str) -> bool:
    """Mark one notification as read; ``False`` when it is missing or not owned."""

    repository = NotificationRepository(session)
    if repository.get_for_user(notification_id, user_id=user_id) is None:
        return False
    repository.mark_as_read([notification_id], user_id=user_id, read_at=now_in_app_timezone())
    return True


def mark_as_unread(session: Session, user_id: int, notification_id: str) -> bool:
    repository = NotificationRepository(session)
    if repository.get_for_user(notification_id, user_id=user_id) is None:
        return False
    repository.mark_as_unread([notification_id], user_id=user_id)
    return True


def delete_notification(session: Session, user_id: int, notification_id: str) -> bool:
    repository = NotificationRepository(session)
    return repository.delete([notification_id], user_id=user_id) > 0


def bulk_mark_as_read(session: Session, user_id: int, notification_ids: Iterable[str]) -> int:
    """Mark the selected unread notifications as read and return how many changed."""

    repository = NotificationRepository(session)
    count = repository.mark_as_read(
        notification_ids, user_id=user_id, read_at=now_in_app_timezone()
    )
    logger.info("Marked %s selected notifications as read for user %s", count, user_id)
    return count


def bulk_delete(session: Session, user_id: int, notification_ids: Iterable[str]) -> int:
    repository = NotificationRepository(session)
    count = repository.delete(notification_ids, user_id=user_id)
    logger.info("Deleted %s selected notifications for user %s", count, user_id)
    return count


def mark_all_as_read(session: Session, user_id: int) -> int:
    return NotificationService(session).mark_all_read(user_id)


def delete_all_read(session: Session, user_id: int) -> int:
    """Delete every read notification of ``user_id`` regardless of age."""

    repository = NotificationRepository(session)
    count = repository.delete_read(user_id)
    logger.info("Deleted %s read notifications for user %s", count, user_id)
    return count


def get_notification_stats(session: Session, user_id: int) -> NotificationStats:
    return NotificationService(session).stats(user_id)


def notification_type_label(type_: str) -> str:
    try:
        return resolve_kind(type_).label
    except NotificationError:
        return type_.replace("_", " ").title()


def notification_icon(notification: Notification) -> str:
    """Return the icon of ``notification``'s kind, or a generic one for unknown types."""

    try:
        return resolve_kind(notification.type).icon
    except NotificationError:
        return DEFAULT_ICON


def notification_color(notification: Notification) -> str:
    if notification.is_read:
        return READ_COLOR
    try:
        return resolve_kind(notification.type).color
    except NotificationError:
        return DEFAULT_COLOR


__all__ = [
    "DEFAULT_PER_PAGE",
    "MAX_PER_PAGE",
    "bulk_delete",
    "bulk_mark_as_read",
    "delete_all_read",
    "delete_notification",
    "get_notification_stats",
    "list_notification_types",
    "list_notifications",
    "mark_all_as_read",
    "mark_as_read",
    "mark_as_unread",
    "notification_color",
    "notification_icon",
    "notification_type_label",
]
