"""Mail service adapters.

- :class:`SmtpMailService` sends through an SMTP relay, one attempt per
  message, and maps every refusal or transport problem to
  :class:`~sales_reports.errors.DeliveryError`.
- :class:`LoggingMailService` is the dry-run stand-in: it logs what would
  have been sent and never fails.
"""

from __future__ import annotations

import smtplib
from email.headerregistry import Address
from email.message import EmailMessage
from email.utils import formataddr

from .errors import DeliveryError
from .logging_setup import get_logger
from .models import OutboundEmail

_logger = get_logger("sales_reports.mail")


def build_email_message(
    message: OutboundEmail,
    attachment_content: bytes,
    *,
    from_address: str,
) -> EmailMessage:
    """Return the MIME message for ``message`` with the CSV attached.

    The envelope sender is ``from_address`` (the relay account); the sender
    identity's display name is used as the visible name.
    """

    if not message.recipient.email:
        raise DeliveryError(f"recipient {message.recipient.id} has no email address")
    msg = EmailMessage()
    msg["Subject"] = message.subject
    msg["From"] = formataddr((message.sender.display_name, from_address))
    msg["To"] = formataddr((message.recipient.display_name, message.recipient.email))
    if message.sender.email and message.sender.email != from_address:
        msg["Reply-To"] = message.sender.email
    msg.set_content(message.body)
    maintype, _, subtype = message.attachment.content_type.partition("/")
    msg.add_attachment(
        attachment_content,
        maintype=maintype or "application",
        subtype=subtype or "octet-stream",
        filename=message.attachment.name,
    )
    return msg


class SmtpMailService:
    """Deliver messages through an SMTP relay (optionally with STARTTLS)."""

    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        from_address: str,
        username: str | None = None,
        password: str | None = None,
        starttls: bool = True,
        timeout: float = 30.0,
    ) -> None:
        # Validate eagerly so misconfiguration fails the run, not every group.
        Address(addr_spec=from_address)
        self.host = host
        self.port = port
        self.from_address = from_address
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    def send(self, message: OutboundEmail, attachment_content: bytes) -> None:
        msg = build_email_message(message, attachment_content, from_address=self.from_address)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.starttls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                refused = smtp.send_message(msg)
        except smtplib.SMTPRecipientsRefused as exc:
            raise DeliveryError(f"recipient refused: {message.recipient.email}") from exc
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryError(f"SMTP delivery failed: {exc}") from exc
        if refused:
            raise DeliveryError(f"recipient refused: {', '.join(sorted(refused))}")


class LoggingMailService:
    """Dry-run mail service: log the message instead of sending it."""

    def __init__(self) -> None:
        self.sent: list[OutboundEmail] = []

    def send(self, message: OutboundEmail, attachment_content: bytes) -> None:
        if not message.recipient.email:
            raise DeliveryError(f"recipient {message.recipient.id} has no email address")
        self.sent.append(message)
        _logger.info(
            "DRY RUN: would send %r to %s <%s> with attachment %s (%d bytes)",
            message.subject,
            message.recipient.display_name,
            message.recipient.email,
            message.attachment.name,
            len(attachment_content),
        )


__all__ = ["LoggingMailService", "SmtpMailService", "build_email_message"]
