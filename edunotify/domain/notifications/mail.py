"""Channel-neutral representation of a transactional email."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape


@dataclass(frozen=True)
class MailAction:
    """Call-to-action button rendered between the intro and outro lines."""

    label: str
    url: str


@dataclass(frozen=True)
class MailMessage:
    """Subject, greeting, body lines, optional action and closing of an email."""

    subject: str
    greeting: str
    lines: tuple[str, ...] = ()
    action: MailAction | None = None
    outro_lines: tuple[str, ...] = ()
    salutation: str = "Regards, The School Team"

    def to_html(self) -> str:
        """Return the HTML body handed to the mail transport."""

        parts: list[str] = [f"<h2>{escape(self.greeting)}</h2>"]
        parts.extend(_paragraph(line) for line in self.lines)
        if self.action is not None:
            parts.append(
                f'<p><a href="{escape(self.action.url, quote=True)}">'
                f"{escape(self.action.label)}</a></p>"
            )
        parts.extend(_paragraph(line) for line in self.outro_lines)
        parts.append(_paragraph(self.salutation))
        return "".join(parts)

    def to_text(self) -> str:
        """Return a plain-text rendering of the message."""

        blocks: list[str] = [self.greeting, *self.lines]
        if self.action is not None:
            blocks.append(f"{self.action.label}: {self.action.url}")
        blocks.extend(self.outro_lines)
        blocks.append(self.salutation)
        return "\n\n".join(blocks)


def _paragraph(line: str) -> str:
    return "<p>" + escape(line).replace("\n", "<br>") + "</p>"


__all__ = ["MailAction", "MailMessage"]
