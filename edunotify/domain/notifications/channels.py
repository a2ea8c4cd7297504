"""Delivery channels supported by the notification center."""

from enum import Enum


class Channel(str, Enum):
    """Mechanism used to deliver a notification to its recipient."""

    DATABASE = "database"
    MAIL = "mail"


DEFAULT_CHANNELS = frozenset({Channel.DATABASE, Channel.MAIL})

__all__ = ["Channel", "DEFAULT_CHANNELS"]
