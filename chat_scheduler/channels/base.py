"""Outbound delivery channels — SMS and email.

The conversation layer never talks to Twilio or an SMTP server directly;
it goes through these two narrow interfaces so tests can substitute
fakes and providers can be swapped without touching the routing code.
"""

from abc import ABC, abstractmethod
from typing import Any


class SmsSender(ABC):
    """Abstract SMS channel."""

    @abstractmethod
    async def send(self, to: str, body: str) -> dict[str, Any]:
        """Send ``body`` to the E.164 number ``to``.

        Returns a delivery receipt with at least ``sid``, ``status`` and
        ``to``. Raises :class:`~chat_scheduler.errors.DeliveryError` when
        the provider does not accept the message.
        """


class EmailSender(ABC):
    """Abstract email channel."""

    @abstractmethod
    async def send(self, to: str, subject: str, body: str) -> None:
        """Send a plain-text email.

        Raises :class:`~chat_scheduler.errors.DeliveryError` on failure;
        callers treat email as fire-and-forget and only log the error.
        """
