"""Send notification emails through SendGrid."""

from __future__ import annotations

import json
import logging
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from edunotify.config import get_settings
from edunotify.domain.notifications import MailMessage

logger = logging.getLogger(__name__)


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a readable description of a SendGrid error payload."""

    if body in (None, "", b""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages = [
                str(item["message"])
                for item in errors
                if isinstance(item, dict) and item.get("message")
            ]
            if messages:
                return "; ".join(messages)
        return json.dumps(parsed, default=str)

    if isinstance(parsed, list):
        return "; ".join(str(item) for item in parsed)

    return None


def _log_failure(status_code: Any, body: Any, recipient: str) -> None:
    details = _extract_sendgrid_error_details(body)
    if details:
        logger.error(
            "SendGrid rejected email to %s with status %s: %s",
            recipient,
            status_code,
            details,
        )
    else:
        logger.error("SendGrid rejected email to %s with status %s", recipient, status_code)


def is_email_configured() -> bool:
    """Return ``True`` when SendGrid credentials are available."""

    return get_settings().email_enabled


def send_email(
    subject: str,
    html_content: str,
    recipient: str,
    *,
    plain_text_content: str | None = None,
) -> bool:
    """Send an email using the configured SendGrid credentials."""

    settings = get_settings()
    if not (settings.sendgrid_api_key and settings.sendgrid_sender):
        logger.info("SendGrid configuration incomplete; skipping email delivery")
        return False

    message = Mail(
        from_email=settings.sendgrid_sender,
        to_emails=recipient,
        subject=subject,
        html_content=html_content,
        plain_text_content=plain_text_content,
    )

    try:
        client = SendGridAPIClient(settings.sendgrid_api_key)
        response = client.send(message)
    except Exception as exc:  # pragma: no cover - network failures depend on environment
        status_code = getattr(exc, "status_code", None)
        if status_code is None:
            logger.exception("Error sending email via SendGrid to %s", recipient)
        else:
            _log_failure(status_code, getattr(exc, "body", None), recipient)
        return False

    status_code = getattr(response, "status_code", None)
    if not isinstance(status_code, int) or not 200 <= status_code < 300:
        _log_failure(status_code, getattr(response, "body", None), recipient)
        return False

    return True


def send_mail_message(message: MailMessage, recipient: str) -> bool:
    """Render ``message`` and send it to ``recipient``."""

    return send_email(
        message.subject,
        message.to_html(),
        recipient,
        plain_text_content=message.to_text(),
    )


__all__ = ["is_email_configured", "send_email", "send_mail_message"]
