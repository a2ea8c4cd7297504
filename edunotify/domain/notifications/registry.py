"""Lookup table from kind identifiers to notification kind classes."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from edunotify.domain.exceptions import UnknownKindError

from .kinds import NOTIFICATION_KINDS, NotificationKind


def _build_registry(
    kinds: Iterable[type[NotificationKind]],
) -> dict[str, type[NotificationKind]]:
    registry: dict[str, type[NotificationKind]] = {}
    icons: set[str] = set()
    for kind in kinds:
        if kind.icon in icons:
            raise RuntimeError(f"Duplicate notification icon '{kind.icon}'")
        icons.add(kind.icon)
        short_name = kind.__name__.removesuffix("Notification")
        for key in dict.fromkeys((kind.type_tag, kind.__name__, short_name)):
            if key in registry:
                raise RuntimeError(f"Duplicate notification kind identifier '{key}'")
            registry[key] = kind
    return registry


KIND_REGISTRY: Mapping[str, type[NotificationKind]] = _build_registry(NOTIFICATION_KINDS)


def resolve_kind(identifier: str) -> type[NotificationKind]:
    """Return the kind class registered for ``identifier``.

    Both the persisted type tag (``payment_received``) and the class name
    (``PaymentReceivedNotification`` or ``PaymentReceived``) are accepted.
    """

    try:
        return KIND_REGISTRY[identifier]
    except (KeyError, TypeError):
        raise UnknownKindError(str(identifier)) from None


def build_kind(identifier: str, data: Mapping[str, Any]) -> NotificationKind:
    """Construct the kind named ``identifier`` from ``data``."""

    return resolve_kind(identifier).from_data(data)


def parse_record_payload(type_tag: str, data: Mapping[str, Any]) -> NotificationKind:
    """Rebuild a kind from a persisted ``(type, data)`` pair."""

    return resolve_kind(type_tag).from_data(data, strict=False)


__all__ = [
    "KIND_REGISTRY",
    "build_kind",
    "parse_record_payload",
    "resolve_kind",
]
