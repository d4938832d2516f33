"""SmtpEmailSender — EmailSender over plain SMTP with STARTTLS."""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage
from functools import partial

from chat_scheduler.errors import DeliveryError

from .base import EmailSender

log = logging.getLogger("chat_scheduler.smtp_email")


class SmtpEmailSender(EmailSender):
    def __init__(
        self,
        host: str,
        port: int,
        from_address: str,
        username: str = "",
        password: str = "",
        timeout: float = 20.0,
    ) -> None:
        self._host = host
        self._port = port
        self._from_address = from_address
        self._username = username
        self._password = password
        self._timeout = timeout

    def _send_sync(self, to: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self._from_address
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        context = ssl.create_default_context()
        with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
            server.starttls(context=context)
            if self._username:
                server.login(self._username, self._password)
            server.send_message(message)

    async def send(self, to: str, subject: str, body: str) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, partial(self._send_sync, to, subject, body))
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError(f"SMTP delivery failed: {e}") from e
        log.info("Confirmation email sent via %s", self._host)
