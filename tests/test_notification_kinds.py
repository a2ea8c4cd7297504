"""Tests for notification kinds: validation, persisted payloads and mail rendering."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from edunotify.domain.exceptions import UnknownKindError, ValidationError
from edunotify.domain.notifications import (
    KIND_REGISTRY,
    NOTIFICATION_KINDS,
    AssignmentDueNotification,
    EventReminderNotification,
    NewMessageNotification,
    PaymentReceivedNotification,
    SystemMaintenanceNotification,
    WelcomeNotification,
    build_kind,
    format_amount,
    parse_record_payload,
    resolve_kind,
)

from .conftest import FIXED_NOW


def test_format_amount_uses_symbol_or_currency_code() -> None:
    assert format_amount(1234.5, "EUR") == "€1,234.50"
    assert format_amount(1234.5, "XYZ") == "XYZ 1,234.50"
    assert format_amount(5, "GBP") == "£5.00"


def test_payment_received_formats_amount_for_record_and_mail() -> None:
    kind = PaymentReceivedNotification(
        amount=1234.5, payment_method="card", reference="R-1", currency="eur"
    )

    payload = kind.to_database(FIXED_NOW)
    mail = kind.to_mail(FIXED_NOW)

    assert kind.currency == "EUR"
    assert payload["formatted_amount"] == "€1,234.50"
    assert payload["message"] == "Your payment of €1,234.50 has been successfully processed."
    assert mail.subject == "Payment Received - Confirmation"
    assert "We have successfully received your payment of €1,234.50" in mail.lines
    assert "📅 Date: May 15, 2024 10:30 AM" in mail.lines


def test_payment_received_defaults_to_dollars() -> None:
    kind = PaymentReceivedNotification(amount=99.9, payment_method="card", reference="REF1")

    payload = kind.to_database(FIXED_NOW)

    assert payload["type"] == "payment_received"
    assert payload["formatted_amount"] == "$99.90"
    assert payload["currency"] == "USD"
    assert payload["icon"] == "credit-card"


@pytest.mark.parametrize("amount", ["12.50", True, float("nan"), None])
def test_payment_received_rejects_invalid_amounts(amount) -> None:
    with pytest.raises(ValidationError):
        PaymentReceivedNotification(amount=amount, payment_method="card", reference="R")


def test_required_text_fields_must_not_be_blank() -> None:
    with pytest.raises(ValidationError) as exc_info:
        EventReminderNotification(event_title="  ", event_date="2024-06-01")

    assert exc_info.value.kind == "event_reminder"
    assert "event_title" in str(exc_info.value)


def test_welcome_defaults_action_url_to_dashboard() -> None:
    payload = WelcomeNotification(user_name="Ana").to_database(FIXED_NOW)

    assert payload["title"] == "Welcome to our platform!"
    assert payload["action_url"] == "https://school.example.com/dashboard"
    assert payload["action_text"] == "Get Started"


def test_event_reminder_omits_missing_location() -> None:
    with_location = EventReminderNotification(
        event_title="Science Fair", event_date="2024-06-01", event_location="Gym"
    )
    without_location = EventReminderNotification(
        event_title="Science Fair", event_date="2024-06-01"
    )

    assert with_location.message().endswith("on 2024-06-01 at Gym.")
    assert without_location.message().endswith("on 2024-06-01.")
    assert not any(
        line.startswith("📍") for line in without_location.to_mail(FIXED_NOW).lines
    )


def test_mail_action_only_present_with_url() -> None:
    without_url = EventReminderNotification(event_title="Trip", event_date="2024-06-01")
    with_url = EventReminderNotification(
        event_title="Trip", event_date="2024-06-01", action_url="https://x.test/e/1"
    )

    assert without_url.to_mail(FIXED_NOW).action is None
    action = with_url.to_mail(FIXED_NOW).action
    assert action is not None
    assert action.label == "View Event Details"
    assert action.url == "https://x.test/e/1"


def test_assignment_due_accepts_dates_and_marks_urgent_subject() -> None:
    kind = AssignmentDueNotification(
        assignment_title="Essay",
        due_date=date(2024, 5, 20),
        course_name="History",
        priority="urgent",
    )

    assert kind.due_date == "2024-05-20"
    assert kind.to_mail(FIXED_NOW).subject == "URGENT: Assignment Due: Essay"
    assert any("urgent reminder" in line for line in kind.to_mail(FIXED_NOW).outro_lines)


def test_assignment_due_rejects_unparseable_dates_and_priorities() -> None:
    with pytest.raises(ValidationError):
        AssignmentDueNotification(
            assignment_title="Essay", due_date="next friday", course_name="History"
        )
    with pytest.raises(ValidationError):
        AssignmentDueNotification(
            assignment_title="Essay",
            due_date="2024-05-20",
            course_name="History",
            priority="critical",
        )


def test_system_maintenance_emergency_rendering() -> None:
    kind = SystemMaintenanceNotification(
        maintenance_date="2024-05-16",
        start_time="22:00",
        end_time="23:00",
        description="Database upgrade",
        affected_services=["Grades", "Payments"],
        maintenance_type="emergency",
    )

    payload = kind.to_database(FIXED_NOW)
    mail = kind.to_mail(FIXED_NOW)

    assert payload["title"] == "Emergency System Maintenance"
    assert payload["priority"] == "high"
    assert payload["affected_services"] == ["Grades", "Payments"]
    assert mail.subject == "URGENT: Emergency System Maintenance"
    assert mail.lines[0] == "⚠️ EMERGENCY MAINTENANCE NOTICE ⚠️"
    assert "• Grades\n• Payments" in mail.lines
    assert "<br>" in mail.to_html()


def test_system_maintenance_rejects_string_services() -> None:
    with pytest.raises(ValidationError):
        SystemMaintenanceNotification(
            maintenance_date="2024-05-16",
            start_time="22:00",
            end_time="23:00",
            description="Upgrade",
            affected_services="Grades",
        )


@pytest.mark.parametrize(
    ("priority", "subject", "sound"),
    [
        ("normal", "New Message: Field trip", "message-tone"),
        ("high", "IMPORTANT: New Message: Field trip", "priority-alert"),
        ("urgent", "URGENT: New Message: Field trip", "urgent-alert"),
    ],
)
def test_new_message_priority_affects_subject_and_sound(priority, subject, sound) -> None:
    kind = NewMessageNotification(
        sender_name="Ms. Smith",
        subject="Field trip",
        preview="Please sign the form",
        message_id=42,
        priority=priority,
    )

    assert kind.message_id == "42"
    assert kind.to_mail(FIXED_NOW).subject == subject
    assert kind.sound_hint() == sound
    assert kind.title() == "New Message from Ms. Smith"


def test_mail_html_escapes_user_content() -> None:
    kind = NewMessageNotification(
        sender_name="<script>", subject="Hi", preview="a & b"
    )

    html = kind.to_mail(FIXED_NOW).to_html()

    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "a &amp; b" in html


def test_registry_resolves_type_tags_and_class_names() -> None:
    assert resolve_kind("payment_received") is PaymentReceivedNotification
    assert resolve_kind("PaymentReceivedNotification") is PaymentReceivedNotification
    assert resolve_kind("PaymentReceived") is PaymentReceivedNotification
    assert len(KIND_REGISTRY) == 3 * len(NOTIFICATION_KINDS)
    assert len({kind.icon for kind in NOTIFICATION_KINDS}) == len(NOTIFICATION_KINDS)

    with pytest.raises(UnknownKindError) as exc_info:
        resolve_kind("NotARealKind")
    assert exc_info.value.identifier == "NotARealKind"


def test_build_kind_is_strict_but_record_parsing_is_not() -> None:
    data = {"user_name": "Ana", "action_url": None}
    stored = WelcomeNotification(user_name="Ana").to_database(FIXED_NOW)

    assert build_kind("welcome", data) == WelcomeNotification(user_name="Ana")
    with pytest.raises(ValidationError):
        build_kind("welcome", {"user_name": "Ana", "unexpected": 1})
    with pytest.raises(ValidationError):
        build_kind("welcome", {})
    assert parse_record_payload("welcome", stored).user_name == "Ana"


def test_defaulted_fields_are_optional_in_payloads() -> None:
    kind = build_kind(
        "system_maintenance",
        {
            "maintenance_date": "2024-05-16",
            "start_time": "22:00",
            "end_time": "23:00",
            "description": "Upgrade",
        },
    )

    assert kind.maintenance_type == "scheduled"
    assert kind.delay_until(FIXED_NOW) == FIXED_NOW + timedelta(minutes=5)
