"""Pydantic models describing notification center payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class NotificationIdsRequest(BaseModel):
    """Payload used to act on a selection of notifications."""

    ids: list[str] = Field(..., min_length=1, description="Notification identifiers")

    def unique_ids(self) -> list[str]:
        """Return the identifiers without duplicates preserving order."""

        return list(dict.fromkeys(self.ids))


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    id: str
    user_id: int
    type: str
    type_label: str
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    icon: str
    color: str
    action_text: str | None = None
    action_url: str | None = None
    is_read: bool
    created_at: datetime
    read_at: datetime | None = None


class NotificationPageRead(BaseModel):
    items: list[NotificationRead]
    total: int
    page: int
    per_page: int
    pages: int
    has_next: bool


class NotificationStatsRead(BaseModel):
    total: int
    unread: int
    read: int
    today: int
    this_week: int
    this_month: int


class NotificationTypeRead(BaseModel):
    type: str
    label: str


class AffectedCountResponse(BaseModel):
    count: int


class DispatchRequest(BaseModel):
    """Admin request that sends one notification kind to several users."""

    kind: str = Field(..., min_length=1, description="Type tag or class name of the kind")
    recipients: list[int] | Literal["all"] = Field(
        ..., description="User identifiers, or 'all' for every active user"
    )
    data: dict[str, Any] = Field(default_factory=dict)


class DispatchResponse(BaseModel):
    success: bool
    count: int
    errors: list[str] = Field(default_factory=list)


__all__ = [
    "AffectedCountResponse",
    "DispatchRequest",
    "DispatchResponse",
    "NotificationIdsRequest",
    "NotificationPageRead",
    "NotificationRead",
    "NotificationStatsRead",
    "NotificationTypeRead",
]
