"""Pure delivery policy: channels, suppression, delay and sound hints."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .channels import Channel
from .kinds import NotificationKind


@dataclass(frozen=True)
class DeliveryPlan:
    """How and when a notification instance should be delivered."""

    channels: frozenset[Channel]
    should_send: bool = True
    delay_until: datetime | None = None
    sound_hint: str | None = None

    @property
    def persists(self) -> bool:
        return Channel.DATABASE in self.channels

    @property
    def mails(self) -> bool:
        return Channel.MAIL in self.channels


def resolve_delivery(kind: NotificationKind, now: datetime) -> DeliveryPlan:
    """Return the :class:`DeliveryPlan` for ``kind`` evaluated at ``now``."""

    return DeliveryPlan(
        channels=kind.channels(),
        should_send=kind.should_send(now),
        delay_until=kind.delay_until(now),
        sound_hint=kind.sound_hint(),
    )


__all__ = ["DeliveryPlan", "resolve_delivery"]
