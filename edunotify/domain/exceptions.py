"""Errors raised by the notification domain."""

from __future__ import annotations


class NotificationError(Exception):
    """Base class for notification failures."""


class ValidationError(NotificationError):
    """A required payload field is missing or malformed."""

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(f"{kind}: {message}")
        self.kind = kind


class UnknownKindError(NotificationError):
    """A kind identifier does not resolve to a known notification kind."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"Unknown notification kind '{identifier}'")
        self.identifier = identifier


class DeliveryError(NotificationError):
    """The persistence or mail collaborator reported a failure."""


class NotFoundError(NotificationError):
    """A recipient or notification does not exist for the acting user."""


__all__ = [
    "DeliveryError",
    "NotFoundError",
    "NotificationError",
    "UnknownKindError",
    "ValidationError",
]
