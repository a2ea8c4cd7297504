"""Unit tests for the SendGrid email helper utilities."""

from __future__ import annotations

import json
import types

import pytest

from edunotify.domain.notifications import MailAction, MailMessage
from edunotify.infrastructure import email as email_module


class DummySettings:
    sendgrid_api_key = "SG.fake"
    sendgrid_sender = "sender@example.com"

    @property
    def email_enabled(self) -> bool:
        return bool(self.sendgrid_api_key and self.sendgrid_sender)


class UnconfiguredSettings(DummySettings):
    sendgrid_api_key = None
    sendgrid_sender = None


class RecordingClient:
    """Stand-in SendGrid client that records the messages it is asked to send."""

    sent: list = []

    def __init__(self, api_key: str):
        self.api_key = api_key

    def send(self, message):
        RecordingClient.sent.append(message)
        return types.SimpleNamespace(status_code=202, body=None)


@pytest.fixture(autouse=True)
def reset_recording_client():
    RecordingClient.sent = []
    yield


def test_send_email_without_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    """When SendGrid settings are missing the helper should exit early."""

    monkeypatch.setattr(email_module, "get_settings", lambda: UnconfiguredSettings())
    monkeypatch.setattr(email_module, "SendGridAPIClient", RecordingClient)

    assert email_module.send_email("Subject", "<p>Body</p>", "user@example.com") is False
    assert email_module.is_email_configured() is False
    assert RecordingClient.sent == []


def test_send_email_success(monkeypatch: pytest.MonkeyPatch) -> None:
    """A successful SendGrid response should return ``True``."""

    monkeypatch.setattr(email_module, "get_settings", lambda: DummySettings())
    monkeypatch.setattr(email_module, "SendGridAPIClient", RecordingClient)

    assert email_module.send_email("Subject", "<p>Body</p>", "user@example.com") is True
    assert len(RecordingClient.sent) == 1


def test_send_mail_message_renders_html_and_text(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = {}

    def fake_send_email(subject, html_content, recipient, *, plain_text_content=None):
        captured.update(
            subject=subject, html=html_content, recipient=recipient, text=plain_text_content
        )
        return True

    monkeypatch.setattr(email_module, "send_email", fake_send_email)
    message = MailMessage(
        subject="Payment Received - Confirmation",
        greeting="Payment Confirmation",
        lines=("We have received $10.00",),
        action=MailAction(label="View Payment Details", url="https://x.test/p?id=1&a=2"),
        outro_lines=("Thank you for your payment!",),
        salutation="Best regards, The Finance Team",
    )

    assert email_module.send_mail_message(message, "parent@example.com") is True
    assert captured["subject"] == "Payment Received - Confirmation"
    assert captured["recipient"] == "parent@example.com"
    assert '<a href="https://x.test/p?id=1&amp;a=2">View Payment Details</a>' in captured["html"]
    assert "View Payment Details: https://x.test/p?id=1&a=2" in captured["text"]
    assert captured["text"].endswith("Best regards, The Finance Team")


def test_send_email_logs_rejected_response(monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    class RejectingClient(RecordingClient):
        def send(self, message):
            return types.SimpleNamespace(
                status_code=400, body=json.dumps({"errors": [{"message": "Invalid recipient"}]})
            )

    monkeypatch.setattr(email_module, "get_settings", lambda: DummySettings())
    monkeypatch.setattr(email_module, "SendGridAPIClient", RejectingClient)

    with caplog.at_level("ERROR"):
        result = email_module.send_email("Subject", "<p>Body</p>", "user@example.com")

    assert result is False
    assert "status 400" in caplog.text
    assert "Invalid recipient" in caplog.text


def test_send_email_logs_forbidden_error(monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    """Forbidden responses from SendGrid should surface meaningful log details."""

    class FakeForbiddenError(Exception):
        status_code = 403
        body = json.dumps(
            {"errors": [{"message": "The provided authorization grant is invalid."}]}
        ).encode()

    class FailingClient(RecordingClient):
        def send(self, message):
            raise FakeForbiddenError()

    monkeypatch.setattr(email_module, "get_settings", lambda: DummySettings())
    monkeypatch.setattr(email_module, "SendGridAPIClient", FailingClient)

    with caplog.at_level("ERROR"):
        result = email_module.send_email("Subject", "<p>Body</p>", "user@example.com")

    assert result is False
    assert "status 403" in caplog.text
    assert "authorization grant is invalid" in caplog.text
