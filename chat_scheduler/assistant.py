"""Scheduling assistant — ties sessions, the conversation FSM and SMS together.

Every inbound message (web chat or SMS) goes through
:meth:`SchedulingAssistant.handle_message`, which:
  1. Takes the per-user lock so two messages from one user run in order
  2. Loads the user's session (or starts a new one)
  3. Advances the conversation by one turn
  4. Stores the session and returns the reply text
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from chat_scheduler import replies
from chat_scheduler.channels.base import SmsSender
from chat_scheduler.conversation import ConversationMachine
from chat_scheduler.errors import DeliveryError
from chat_scheduler.models.lead import Lead
from chat_scheduler.models.session import BookingData, Session
from chat_scheduler.phone import normalize_phone
from chat_scheduler.session_store import SessionStore

log = logging.getLogger("chat_scheduler.assistant")


def redact_pii(value: str) -> str:
    """Mask PII for logging — show first 3 and last 2 chars only."""
    if not value or len(value) <= 5:
        return "***"
    return value[:3] + "***" + value[-2:]


class SchedulingAssistant:
    def __init__(
        self,
        machine: ConversationMachine,
        store: SessionStore,
        sms_sender: Optional[SmsSender] = None,
        *,
        bot_name: str = "Max",
        default_country_code: str = "+49",
    ) -> None:
        self._machine = machine
        self._store = store
        self._sms_sender = sms_sender
        self._bot_name = bot_name
        self._default_country_code = default_country_code

    @property
    def store(self) -> SessionStore:
        return self._store

    def normalize_phone(self, raw: str) -> str:
        return normalize_phone(raw, self._default_country_code)

    # ── Conversation ──────────────────────────────────────────

    async def handle_message(self, key: str, text: str, lang: str = "de") -> str:
        """Run one conversation turn for ``key`` and return the reply."""
        async with self._store.lock(key):
            session = self._store.get(key)
            if session is None:
                session = Session(key=key)
                log.info("New session for %s", redact_pii(key))

            snapshot = session.model_copy(deep=True)
            try:
                session, reply = await self._machine.advance(session, text, lang)
            except Exception:
                log.exception("Conversation turn failed for %s", redact_pii(key))
                self._store.put(key, snapshot)
                return replies.GENERIC_ERROR

            self._store.put(key, session)
            return reply

    # ── Leads ─────────────────────────────────────────────────

    async def register_lead(self, lead: Lead) -> dict[str, Any]:
        """Start a fresh session for a CRM lead and text them a greeting.

        Raises ValueError if the lead has no phone number and
        DeliveryError if the greeting SMS cannot be sent.
        """
        if not lead.phone or not lead.phone.strip():
            raise ValueError("Lead has no phone number")

        phone = self.normalize_phone(lead.phone)
        greeting = replies.lead_greeting(lead.display_name, self._bot_name)

        # The session is only replaced once the greeting went out.
        async with self._store.lock(phone):
            receipt = await self.send_sms(phone, greeting)
            self._store.put(
                phone,
                Session(
                    key=phone,
                    data=BookingData(
                        first_name=lead.first_name,
                        last_name=lead.last_name,
                        phone=phone,
                    ),
                ),
            )
        log.info("Lead registered for %s", redact_pii(phone))
        return receipt

    async def send_sms(self, to: str, body: str) -> dict[str, Any]:
        if self._sms_sender is None:
            raise DeliveryError("No SMS channel configured")
        return await self._sms_sender.send(to, body)

    # ── Admin ─────────────────────────────────────────────────

    def get_session(self, key: str) -> Session | None:
        return self._store.get(key)

    def list_sessions(self) -> list[Session]:
        return list(self._store.all().values())

    def reset_session(self, key: str) -> bool:
        removed = self._store.delete(key)
        if removed:
            log.info("Session reset for %s", redact_pii(key))
        return removed
