"""TwilioSmsSender — SmsSender over the Twilio Programmable Messaging REST API.

API reference:
  https://www.twilio.com/docs/messaging/api/message-resource#create-a-message-resource

  POST /2010-04-01/Accounts/{AccountSid}/Messages.json
       From=<our number>&To=<recipient>&Body=<text>
  → 201 {"sid": "SM...", "status": "queued", "to": "+49...", ...}
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from chat_scheduler.errors import DeliveryError

from .base import SmsSender

log = logging.getLogger("chat_scheduler.twilio_sms")

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"


class TwilioSmsSender(SmsSender):
    """Send SMS through Twilio using basic auth with the account credentials."""

    def __init__(self, account_sid: str, auth_token: str, from_number: str) -> None:
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._from_number = from_number

    @property
    def configured(self) -> bool:
        return bool(self._account_sid and self._auth_token and self._from_number)

    @property
    def messages_url(self) -> str:
        return f"{TWILIO_API_BASE}/Accounts/{self._account_sid}/Messages.json"

    async def send(self, to: str, body: str) -> dict[str, Any]:
        if not self.configured:
            raise DeliveryError("Twilio credentials are not configured")

        form = {"From": self._from_number, "To": to, "Body": body}

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.messages_url,
                    data=form,
                    auth=aiohttp.BasicAuth(self._account_sid, self._auth_token),
                ) as resp:
                    if resp.status != 201:
                        text = await resp.text()
                        log.error("Twilio message request failed (%d): %s", resp.status, text)
                        raise DeliveryError(f"Twilio rejected message ({resp.status})")

                    data = await resp.json()
        except aiohttp.ClientError as e:
            raise DeliveryError(f"Twilio request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise DeliveryError("Twilio request timed out") from e

        log.info("SMS %s queued (status=%s)", data.get("sid", "?"), data.get("status", "?"))
        return {
            "sid": data.get("sid", ""),
            "status": data.get("status", ""),
            "to": data.get("to", to),
        }
