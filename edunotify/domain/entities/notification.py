"""Domain entities describing persisted user notifications."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from edunotify.domain.exceptions import NotificationError

if TYPE_CHECKING:
    from edunotify.domain.notifications import NotificationKind

STATUS_READ = "read"
STATUS_UNREAD = "unread"

SORTABLE_COLUMNS = ("created_at", "read_at", "type", "title")


@dataclass
class Notification:
    """In-app notification owned by a single user."""

    id: str | None
    user_id: int
    type: str
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    read_at: datetime | None = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    @property
    def action_text(self) -> str | None:
        kind = self.known_kind()
        return kind.action_text if kind is not None else None

    @property
    def action_url(self) -> str | None:
        kind = self.known_kind()
        return kind.action_url_value() if kind is not None else None

    def known_kind(self) -> "NotificationKind | None":
        """Return :meth:`kind`, or ``None`` for rows that no longer parse."""

        try:
            return self.kind()
        except NotificationError:
            return None

    def kind(self) -> "NotificationKind":
        """Rebuild the typed notification kind stored in ``data``.

        Raises :class:`~edunotify.domain.exceptions.UnknownKindError` for rows
        whose ``type`` is not one of the known kinds.
        """

        from edunotify.domain.notifications import parse_record_payload

        return parse_record_payload(self.type, self.data)


@dataclass(frozen=True)
class NotificationFilters:
    """Optional criteria applied to the notification center listing."""

    search: str | None = None
    type: str | None = None
    status: str | None = None
    sort_by: str = "created_at"
    sort_direction: str = "desc"


@dataclass
class NotificationPage:
    """A page of notifications plus the information needed to paginate."""

    items: list[Notification]
    total: int
    page: int
    per_page: int

    @property
    def pages(self) -> int:
        if self.total == 0:
            return 1
        return math.ceil(self.total / self.per_page)

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


@dataclass(frozen=True)
class NotificationStats:
    """Aggregate counters shown at the top of the notification center."""

    total: int = 0
    unread: int = 0
    read: int = 0
    today: int = 0
    this_week: int = 0
    this_month: int = 0


__all__ = [
    "Notification",
    "NotificationFilters",
    "NotificationPage",
    "NotificationStats",
    "SORTABLE_COLUMNS",
    "STATUS_READ",
    "STATUS_UNREAD",
]
