"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Iterable

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from edunotify.domain.entities import (
    SORTABLE_COLUMNS,
    STATUS_READ,
    STATUS_UNREAD,
    Notification,
    NotificationFilters,
    NotificationPage,
)
from edunotify.infrastructure.models import NotificationModel
from edunotify.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)

_LIKE_ESCAPE = "\\"


def _like_pattern(term: str) -> str:
    escaped = (
        term.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", f"{_LIKE_ESCAPE}%")
        .replace("_", f"{_LIKE_ESCAPE}_")
    )
    return f"%{escaped}%"


class NotificationRepository:
    """Provide CRUD and query operations for :class:`Notification` objects.

    Every query is scoped by ``user_id``; rows owned by someone else behave as
    if they did not exist.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel()
        if notification.id is not None:
            model.id = notification.id
        model.user_id = notification.user_id
        model.type = notification.type
        model.title = notification.title
        model.message = notification.message
        model.data = notification.data or {}
        model.created_at = ensure_app_naive_datetime(
            notification.created_at or now_in_app_timezone()
        )
        model.read_at = ensure_app_naive_datetime(notification.read_at)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def get_for_user(self, notification_id: str, *, user_id: int) -> Notification | None:
        model = self._user_query(user_id).filter(NotificationModel.id == notification_id).first()
        return self._to_entity(model) if model else None

    def list_for_user(self, user_id: int, *, limit: int | None = 50) -> Sequence[Notification]:
        query = self._user_query(user_id).order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def list_unread_for_user(
        self, user_id: int, *, limit: int | None = 50
    ) -> Sequence[Notification]:
        query = (
            self._user_query(user_id)
            .filter(NotificationModel.read_at.is_(None))
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def search(
        self,
        user_id: int,
        filters: NotificationFilters,
        *,
        page: int = 1,
        per_page: int = 25,
    ) -> NotificationPage:
        """Return one page of notifications matching every given filter."""

        if filters.sort_by not in SORTABLE_COLUMNS:
            raise ValueError(f"Cannot sort notifications by '{filters.sort_by}'")
        if filters.sort_direction not in ("asc", "desc"):
            raise ValueError("Sort direction must be 'asc' or 'desc'")

        query = self._user_query(user_id)
        if filters.search:
            pattern = _like_pattern(filters.search.strip())
            query = query.filter(
                or_(
                    NotificationModel.title.ilike(pattern, escape=_LIKE_ESCAPE),
                    NotificationModel.message.ilike(pattern, escape=_LIKE_ESCAPE),
                    NotificationModel.type.ilike(pattern, escape=_LIKE_ESCAPE),
                )
            )
        if filters.type:
            query = query.filter(NotificationModel.type == filters.type)
        if filters.status == STATUS_READ:
            query = query.filter(NotificationModel.read_at.is_not(None))
        elif filters.status == STATUS_UNREAD:
            query = query.filter(NotificationModel.read_at.is_(None))

        total = query.count()

        column = getattr(NotificationModel, filters.sort_by)
        ordering = column.asc() if filters.sort_direction == "asc" else column.desc()
        tiebreak = (
            NotificationModel.id.asc()
            if filters.sort_direction == "asc"
            else NotificationModel.id.desc()
        )
        models = (
            query.order_by(ordering, tiebreak)
            .offset((page - 1) * per_page)
            .limit(per_page)
            .all()
        )
        return NotificationPage(
            items=[self._to_entity(model) for model in models],
            total=total,
            page=page,
            per_page=per_page,
        )

    def distinct_types(self, user_id: int) -> list[str]:
        query = (
            self.session.query(NotificationModel.type)
            .filter(NotificationModel.user_id == user_id)
            .distinct()
            .order_by(NotificationModel.type)
        )
        return [type_ for (type_,) in query.all()]

    def count(
        self,
        user_id: int,
        *,
        read: bool | None = None,
        created_from: datetime | None = None,
        created_until: datetime | None = None,
    ) -> int:
        query = self._user_query(user_id)
        if read is True:
            query = query.filter(NotificationModel.read_at.is_not(None))
        elif read is False:
            query = query.filter(NotificationModel.read_at.is_(None))
        if created_from is not None:
            query = query.filter(
                NotificationModel.created_at >= ensure_app_naive_datetime(created_from)
            )
        if created_until is not None:
            query = query.filter(
                NotificationModel.created_at < ensure_app_naive_datetime(created_until)
            )
        return query.count()

    def mark_as_read(
        self, notification_ids: Iterable[str], *, user_id: int, read_at: datetime
    ) -> int:
        """Set ``read_at`` on the unread rows among ``notification_ids``."""

        ids = _clean_ids(notification_ids)
        if not ids:
            return 0
        query = self._user_query(user_id).filter(
            NotificationModel.id.in_(ids), NotificationModel.read_at.is_(None)
        )
        return self._update(query, {NotificationModel.read_at: ensure_app_naive_datetime(read_at)})

    def mark_as_unread(self, notification_ids: Iterable[str], *, user_id: int) -> int:
        ids = _clean_ids(notification_ids)
        if not ids:
            return 0
        query = self._user_query(user_id).filter(
            NotificationModel.id.in_(ids), NotificationModel.read_at.is_not(None)
        )
        return self._update(query, {NotificationModel.read_at: None})

    def mark_all_as_read(self, user_id: int, *, read_at: datetime) -> int:
        query = self._user_query(user_id).filter(NotificationModel.read_at.is_(None))
        return self._update(query, {NotificationModel.read_at: ensure_app_naive_datetime(read_at)})

    def delete(self, notification_ids: Iterable[str], *, user_id: int) -> int:
        ids = _clean_ids(notification_ids)
        if not ids:
            return 0
        query = self._user_query(user_id).filter(NotificationModel.id.in_(ids))
        return self._delete(query)

    def delete_read(self, user_id: int, *, read_before: datetime | None = None) -> int:
        """Delete read rows, optionally only those read before ``read_before``."""

        query = self._user_query(user_id).filter(NotificationModel.read_at.is_not(None))
        if read_before is not None:
            query = query.filter(
                NotificationModel.read_at < ensure_app_naive_datetime(read_before)
            )
        return self._delete(query)

    def _user_query(self, user_id: int) -> Query:
        return self.session.query(NotificationModel).filter(
            NotificationModel.user_id == user_id
        )

    def _update(self, query: Query, values: dict) -> int:
        try:
            count = query.update(values, synchronize_session=False)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return count

    def _delete(self, query: Query) -> int:
        try:
            count = query.delete(synchronize_session=False)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return count

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            user_id=model.user_id,
            type=model.type,
            title=model.title,
            message=model.message,
            data=dict(model.data or {}),
            created_at=ensure_app_timezone(model.created_at),
            read_at=ensure_app_timezone(model.read_at),
        )


def _clean_ids(notification_ids: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(str(value) for value in notification_ids if value))


__all__ = ["NotificationRepository"]
