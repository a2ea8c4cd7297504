"""Tests for the dispatch service and its never-raise contract."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from edunotify.application.services import (
    InlineDeliveryQueue,
    NotificationDeliverer,
    NotificationService,
)
from edunotify.domain.entities import Notification
from edunotify.domain.notifications import (
    AssignmentDueNotification,
    EventReminderNotification,
    NewMessageNotification,
    PaymentReceivedNotification,
    SystemMaintenanceNotification,
    WelcomeNotification,
)
from edunotify.infrastructure.repositories import NotificationRepository

from .conftest import FIXED_NOW, FakeMailSender, FakePublisher

ALL_KINDS = [
    WelcomeNotification(user_name="Ana"),
    EventReminderNotification(event_title="Fair", event_date="2024-06-01"),
    PaymentReceivedNotification(amount=10, payment_method="cash", reference="R"),
    AssignmentDueNotification(
        assignment_title="Essay", due_date="2024-05-20", course_name="History"
    ),
    SystemMaintenanceNotification(
        maintenance_date="2024-05-16",
        start_time="22:00",
        end_time="23:00",
        description="Upgrade",
        maintenance_type="emergency",
    ),
    NewMessageNotification(
        sender_name="Ms. Smith", subject="Hi", preview="Hello", priority="high"
    ),
]


class FailingQueue:
    def enqueue(self, job):
        raise RuntimeError("broker unavailable")


def _queue_with(session, clock, *, mail_sender=None):
    @contextmanager
    def factory():
        yield NotificationDeliverer(
            session, mail_sender=mail_sender, publisher=FakePublisher(), clock=clock
        )

    return InlineDeliveryQueue(factory, clock=clock)


def test_payment_received_scenario(service, session, make_user, mail_sender, publisher) -> None:
    user = make_user("Parent")

    result = service.send_payment_received(
        user, amount=99.9, payment_method="card", reference="REF1"
    )

    assert result
    assert result.count == 1
    stored = NotificationRepository(session).list_for_user(user.id)
    assert len(stored) == 1
    record = stored[0]
    assert record.type == "payment_received"
    assert record.data["formatted_amount"] == "$99.90"
    assert record.created_at == FIXED_NOW
    assert record.kind() == PaymentReceivedNotification(
        amount=99.9, payment_method="card", reference="REF1"
    )
    assert [recipient for recipient, _ in mail_sender.sent] == [user.email]
    assert publisher.published[0][0].id == record.id


def test_send_to_one_accepts_user_ids(service, session, make_user) -> None:
    user = make_user()

    assert service.send_to_one(WelcomeNotification(user_name="Ana"), user.id)
    assert NotificationRepository(session).count(user.id) == 1


def test_send_to_one_reports_unknown_and_inactive_recipients(service, make_user) -> None:
    inactive = make_user(is_active=False)

    missing = service.send_to_one(WelcomeNotification(user_name="Ana"), 9999)
    disabled = service.send_to_one(WelcomeNotification(user_name="Ana"), inactive.id)

    assert not missing and missing.count == 0
    assert "9999" in missing.errors[0]
    assert not disabled


def test_normal_message_is_not_mailed(service, session, make_user, mail_sender) -> None:
    user = make_user()

    result = service.send_new_message(
        user, sender_name="Ms. Smith", subject="Hi", preview="Hello"
    )

    assert result
    assert mail_sender.sent == []
    assert NotificationRepository(session).count(user.id) == 1


def test_stale_assignment_is_suppressed_without_side_effects(
    service, session, make_user, mail_sender
) -> None:
    user = make_user()
    stale_due = (FIXED_NOW - timedelta(days=8)).date().isoformat()

    result = service.send_assignment_due(
        user, assignment_title="Essay", due_date=stale_due, course_name="History"
    )

    assert result.success is True
    assert result.count == 0
    assert NotificationRepository(session).count(user.id) == 0
    assert mail_sender.sent == []


def test_send_to_many_reports_partial_failures(service, session, make_user) -> None:
    first, second = make_user(), make_user()

    result = service.send_event_reminder(
        [first, 4242, second.id], event_title="Fair", event_date="2024-06-01"
    )

    assert not result.success
    assert result.count == 2
    assert len(result.errors) == 1
    assert NotificationRepository(session).count(first.id) == 1
    assert NotificationRepository(session).count(second.id) == 1


def test_send_bulk_builds_kind_from_identifier(service, session, make_user) -> None:
    users = [make_user(), make_user()]
    data = {"amount": 25, "payment_method": "card", "reference": "B-1", "currency": "GBP"}

    result = service.send_bulk("PaymentReceivedNotification", users, data)

    assert result.success and result.count == 2
    record = NotificationRepository(session).list_for_user(users[1].id)[0]
    assert record.data["formatted_amount"] == "£25.00"


def test_send_bulk_unknown_kind_has_no_side_effects(
    service, session, make_user, mail_sender, caplog
) -> None:
    user = make_user()

    with caplog.at_level(logging.ERROR):
        result = service.send_bulk("NotARealKind", [user], {})

    assert not result.success
    assert result.count == 0
    assert NotificationRepository(session).count(user.id) == 0
    assert mail_sender.sent == []
    assert "NotARealKind" in caplog.text


def test_send_bulk_invalid_payload_fails(service, make_user) -> None:
    result = service.send_bulk("payment_received", [make_user()], {"amount": 10})

    assert not result.success
    assert "missing required fields" in result.errors[0]


@pytest.mark.parametrize("kind", ALL_KINDS, ids=lambda kind: kind.type_tag)
def test_mail_failure_is_reported_not_raised(session, clock, make_user, kind, caplog) -> None:
    service = NotificationService(
        session,
        queue=_queue_with(session, clock, mail_sender=FakeMailSender(error=RuntimeError("smtp down"))),
        clock=clock,
    )

    with caplog.at_level(logging.ERROR):
        result = service.send_to_one(kind, make_user())

    assert not result.success
    assert "smtp down" in caplog.text
    failure = [record for record in caplog.records if record.levelno == logging.ERROR][-1]
    assert failure.notification_type == kind.type_tag


@pytest.mark.parametrize("kind", ALL_KINDS, ids=lambda kind: kind.type_tag)
def test_rejected_mail_is_reported(session, clock, make_user, kind) -> None:
    service = NotificationService(
        session,
        queue=_queue_with(session, clock, mail_sender=FakeMailSender(fail=True)),
        clock=clock,
    )

    assert not service.send_to_one(kind, make_user())


@pytest.mark.parametrize("kind", ALL_KINDS, ids=lambda kind: kind.type_tag)
def test_persistence_failure_is_reported_not_raised(
    session, clock, make_user, kind, monkeypatch
) -> None:
    user = make_user()

    def broken_create(self, notification):
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(NotificationRepository, "create", broken_create)
    service = NotificationService(
        session, queue=_queue_with(session, clock, mail_sender=FakeMailSender()), clock=clock
    )

    result = service.send_to_one(kind, user)

    assert not result.success
    assert "Could not store notification" in result.errors[0]


@pytest.mark.parametrize("kind", ALL_KINDS, ids=lambda kind: kind.type_tag)
def test_queue_failure_is_reported_not_raised(session, clock, make_user, kind) -> None:
    service = NotificationService(session, queue=FailingQueue(), clock=clock)

    result = service.send_to_one(kind, make_user())

    assert not result.success
    assert "broker unavailable" in result.errors[0]


def test_unconfigured_mail_keeps_in_app_copy(session, clock, make_user) -> None:
    service = NotificationService(session, queue=_queue_with(session, clock), clock=clock)
    user = make_user()

    assert service.send_welcome(user)
    assert NotificationRepository(session).count(user.id) == 1


def test_scheduled_maintenance_goes_to_active_users_after_delay(
    service, queue, session, make_user, clock
) -> None:
    active = [make_user(), make_user()]
    inactive = make_user(is_active=False)

    result = service.send_system_maintenance(
        maintenance_date="2024-05-16",
        start_time="22:00",
        end_time="23:00",
        description="Upgrade",
    )

    assert result.success and result.count == 2
    assert len(queue.pending) == 2
    assert NotificationRepository(session).count(active[0].id) == 0

    assert queue.run_due(FIXED_NOW + timedelta(minutes=4)) == 0
    assert queue.run_due(FIXED_NOW + timedelta(minutes=5)) == 2
    assert queue.pending == []
    for user in active:
        assert NotificationRepository(session).count(user.id) == 1
    assert NotificationRepository(session).count(inactive.id) == 0


def test_maintenance_recipients_that_fail_to_iterate_are_reported(
    service, session, make_user
) -> None:
    user = make_user()

    def recipients():
        yield user
        raise OperationalError("SELECT", {}, Exception("connection reset"))

    result = service.send_system_maintenance(
        maintenance_date="2024-05-16",
        start_time="22:00",
        end_time="23:00",
        description="Upgrade",
        users=recipients(),
        maintenance_type="emergency",
    )

    assert result.success is False
    assert result.count == 0
    assert "connection reset" in result.errors[0]
    assert NotificationRepository(session).count(user.id) == 0


def _seed(session, user_id, *, created_at, read_at=None, type_="welcome", title="Hello"):
    return NotificationRepository(session).create(
        Notification(
            id=None,
            user_id=user_id,
            type=type_,
            title=title,
            message=f"{title} message",
            data={"user_name": "Ana"},
            created_at=created_at,
            read_at=read_at,
        )
    )


def test_mark_all_read_counts_only_unread(service, session, make_user) -> None:
    user = make_user()
    start = FIXED_NOW - timedelta(days=3)
    for _ in range(5):
        _seed(session, user.id, created_at=start)
    for _ in range(3):
        _seed(session, user.id, created_at=start, read_at=start + timedelta(hours=1))

    assert service.mark_all_read(user) == 5
    assert NotificationRepository(session).count(user.id, read=False) == 0
    assert service.mark_all_read(user) == 0


def test_delete_old_read_keeps_unread_and_recent(service, session, make_user) -> None:
    user = make_user()
    long_ago = FIXED_NOW - timedelta(days=90)
    old = _seed(session, user.id, created_at=long_ago, read_at=FIXED_NOW - timedelta(days=31))
    recent = _seed(session, user.id, created_at=long_ago, read_at=FIXED_NOW - timedelta(days=29))
    unread = _seed(session, user.id, created_at=long_ago)

    assert service.delete_old_read(user, 30) == 1

    repository = NotificationRepository(session)
    assert repository.get_for_user(old.id, user_id=user.id) is None
    assert repository.get_for_user(recent.id, user_id=user.id) is not None
    assert repository.get_for_user(unread.id, user_id=user.id) is not None


def test_cleanup_all_tolerates_individual_failures(
    service, session, make_user, monkeypatch
) -> None:
    first, second = make_user(), make_user()
    long_ago = FIXED_NOW - timedelta(days=90)
    for user in (first, second):
        _seed(session, user.id, created_at=long_ago, read_at=long_ago + timedelta(days=1))

    original = NotificationRepository.delete_read

    def flaky_delete_read(self, user_id, *, read_before=None):
        if user_id == first.id:
            raise OperationalError("DELETE", {}, Exception("locked"))
        return original(self, user_id, read_before=read_before)

    monkeypatch.setattr(NotificationRepository, "delete_read", flaky_delete_read)

    summary = service.cleanup_all(30)

    assert summary.processed_recipients == 1
    assert summary.total_deleted == 1
    assert summary.failed_recipients == (first.id,)
    assert summary.days_old == 30


def test_cleanup_all_uses_retention_setting(service) -> None:
    assert service.cleanup_all().days_old == 30


def test_cleanup_all_with_zero_days_deletes_every_read_record(
    service, session, make_user
) -> None:
    user = make_user()
    long_ago = FIXED_NOW - timedelta(days=10)
    _seed(session, user.id, created_at=long_ago, read_at=FIXED_NOW - timedelta(days=2))
    unread = _seed(session, user.id, created_at=long_ago)

    summary = service.cleanup_all(0)

    assert summary.days_old == 0
    assert summary.total_deleted == 1
    assert summary.processed_recipients == 1
    remaining = NotificationRepository(session).list_for_user(user.id)
    assert [record.id for record in remaining] == [unread.id]


def test_negative_retention_is_rejected(service, session, make_user, caplog) -> None:
    user = make_user()
    _seed(session, user.id, created_at=FIXED_NOW - timedelta(days=1), read_at=FIXED_NOW)

    with caplog.at_level(logging.ERROR):
        summary = service.cleanup_all(-1)
        deleted = service.delete_old_read(user, -5)

    assert summary.processed_recipients == 0
    assert summary.total_deleted == 0
    assert summary.days_old == -1
    assert deleted == 0
    assert "must not be negative" in caplog.text
    assert NotificationRepository(session).count(user.id) == 1


def test_stats_buckets_by_calendar_period(service, session, make_user) -> None:
    user = make_user()
    today = FIXED_NOW.replace(hour=8)
    monday = FIXED_NOW - timedelta(days=2)
    this_month = FIXED_NOW.replace(day=2)
    last_month = FIXED_NOW - timedelta(days=40)
    _seed(session, user.id, created_at=today)
    _seed(session, user.id, created_at=monday, read_at=monday + timedelta(hours=1))
    _seed(session, user.id, created_at=this_month)
    _seed(session, user.id, created_at=last_month, read_at=last_month + timedelta(days=1))

    stats = service.stats(user)

    assert stats.total == 4
    assert stats.unread == 2
    assert stats.read == 2
    assert stats.today == 1
    assert stats.this_week == 2
    assert stats.this_month == 3


def test_lifecycle_failures_return_zero(service, make_user, monkeypatch) -> None:
    user = make_user()

    def broken(*args, **kwargs):
        raise OperationalError("UPDATE", {}, Exception("locked"))

    monkeypatch.setattr(NotificationRepository, "mark_all_as_read", broken)
    monkeypatch.setattr(NotificationRepository, "count", broken)

    assert service.mark_all_read(user) == 0
    assert service.stats(user).total == 0
