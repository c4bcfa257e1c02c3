"""Outbound contact-form notifications.

Two implementations satisfy ``Notifier``:

  - ``InMemoryNotifier`` keeps messages in an outbox (local dev, tests).
  - ``SmtpNotifier`` relays each message to a fixed recipient over SMTP.
"""

from __future__ import annotations

import asyncio
import smtplib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import Protocol

from docshare.observability.logging import get_logger

from ..errors import NotificationError, ValidationError

logger = get_logger(__name__)

CONTACT_SUBJECT = 'New Contact Message from QR DocShare'
SMTP_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class ContactMessage:
    email: str
    message: str
    received_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class Notifier(Protocol):
    async def send_contact(self, email: str, message: str) -> None: ...


def _validate(email: str, message: str) -> None:
    if not email or not message:
        raise ValidationError('Email and message required')


class InMemoryNotifier:
    """Collects contact messages instead of sending them."""

    def __init__(self) -> None:
        self.outbox: list[ContactMessage] = []

    async def send_contact(self, email: str, message: str) -> None:
        _validate(email, message)
        self.outbox.append(ContactMessage(email=email, message=message))
        logger.info('contact_message_recorded', reply_to=email)


class SmtpNotifier:
    """Relays contact messages to ``recipient`` via an SMTP server."""

    def __init__(
        self,
        host: str,
        port: int,
        *,
        sender: str,
        recipient: str,
        username: str = '',
        password: str = '',
        use_tls: bool = True,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._recipient = recipient
        self._username = username
        self._password = password
        self._use_tls = use_tls

    def build_message(self, email: str, message: str) -> EmailMessage:
        msg = EmailMessage()
        msg['Subject'] = CONTACT_SUBJECT
        msg['From'] = self._sender
        msg['To'] = self._recipient
        msg['Reply-To'] = email
        msg.set_content(f'From: {email}\n\n{message}')
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self._host, self._port, timeout=SMTP_TIMEOUT_SECONDS) as smtp:
            if self._use_tls:
                smtp.starttls()
            if self._username:
                smtp.login(self._username, self._password)
            smtp.send_message(msg)

    async def send_contact(self, email: str, message: str) -> None:
        _validate(email, message)
        msg = self.build_message(email, message)
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error('contact_message_failed', error=str(exc))
            raise NotificationError('Failed to send message') from exc
        logger.info('contact_message_sent', reply_to=email)
