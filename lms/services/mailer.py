"""Outgoing email.

``SmtpMailer`` sends through an SMTP server over TLS.  ``OutboxMailer``
keeps messages in memory for dev and tests, where ``sent`` can be read
back.  Message bodies can carry one-time links, so they are never logged.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol, runtime_checkable

from lms.core.errors import UpstreamError

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 10


@dataclass(frozen=True, slots=True)
class MailMessage:
    to: str
    subject: str
    body: str


@runtime_checkable
class Mailer(Protocol):
    async def send(self, message: MailMessage) -> None: ...


class OutboxMailer:
    def __init__(self) -> None:
        self.sent: list[MailMessage] = []

    async def send(self, message: MailMessage) -> None:
        self.sent.append(message)
        logger.info("Email queued in outbox subject=%r", message.subject)


class SmtpMailer:
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP_SSL(self._host, self._port, timeout=SMTP_TIMEOUT_SECONDS) as smtp:
            if self._username:
                smtp.login(self._username, self._password or "")
            smtp.send_message(msg)

    async def send(self, message: MailMessage) -> None:
        msg = EmailMessage()
        msg["Subject"] = message.subject
        msg["From"] = self._sender
        msg["To"] = message.to
        msg.set_content(message.body)

        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email delivery failed subject=%r: %s", message.subject, e)
            raise UpstreamError("Email delivery failed") from e
        logger.info("Email sent subject=%r", message.subject)
