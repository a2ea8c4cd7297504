"""Shared fixtures: a throwaway SQLite database and in-process delivery."""

from __future__ import annotations

import os
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import pytest

TEST_DB_PATH = Path(__file__).parent / "test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["APP_TIMEZONE"] = "UTC"
os.environ["APP_URL"] = "https://school.example.com"
os.environ.pop("SENDGRID_API_KEY", None)
os.environ.pop("SENDGRID_SENDER", None)
os.environ["NOTIFICATION_QUEUE"] = "inline"

from edunotify.application.services import (  # noqa: E402
    InlineDeliveryQueue,
    NotificationDeliverer,
    NotificationService,
)
from edunotify.domain.entities import User  # noqa: E402
from edunotify.infrastructure import database  # noqa: E402
from edunotify.infrastructure.repositories import UserRepository  # noqa: E402

FIXED_NOW = datetime(2024, 5, 15, 10, 30, tzinfo=timezone.utc)


class FakeMailSender:
    """Record sent messages; optionally report the transport as failing."""

    def __init__(self, *, fail: bool = False, error: Exception | None = None) -> None:
        self.sent = []
        self.fail = fail
        self.error = error

    def __call__(self, message, recipient):
        if self.error is not None:
            raise self.error
        if self.fail:
            return False
        self.sent.append((recipient, message))
        return True


class FakePublisher:
    def __init__(self) -> None:
        self.published = []

    def __call__(self, notification, *, sound=None):
        self.published.append((notification, sound))
        return True


class Clock:
    """Mutable clock shared by the service and the queue under test."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture(autouse=True)
def setup_database():
    """Create every table before a test and drop them afterwards."""

    database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)
    database.initialize_database()
    yield
    database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)


@pytest.fixture()
def session():
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def clock() -> Clock:
    return Clock()


@pytest.fixture()
def mail_sender() -> FakeMailSender:
    return FakeMailSender()


@pytest.fixture()
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture()
def queue(session, clock, mail_sender, publisher) -> InlineDeliveryQueue:
    @contextmanager
    def factory():
        yield NotificationDeliverer(
            session, mail_sender=mail_sender, publisher=publisher, clock=clock
        )

    return InlineDeliveryQueue(factory, clock=clock)


@pytest.fixture()
def service(session, queue, clock) -> NotificationService:
    return NotificationService(session, queue=queue, clock=clock)


@pytest.fixture()
def make_user(session):
    repository = UserRepository(session)
    counter = {"value": 0}

    def _make_user(name: str | None = None, *, role: str = "student", is_active: bool = True) -> User:
        counter["value"] += 1
        index = counter["value"]
        return repository.create(
            User(
                id=None,
                name=name or f"User {index}",
                email=f"user{index}@example.com",
                role=role,
                is_active=is_active,
            )
        )

    return _make_user
