"""Booking conversation FSM — collects date, time, duration and email, then books.

Stage flow (one field per turn)::

    start ──"termin"──▶ awaiting_date ──▶ awaiting_time ──▶ awaiting_duration
                                              ▲                    │
                                    conflict  │                    ▼
    completed ◀──free── creating ◀────────────┴───────────── awaiting_email

The four collecting stages are driven by the ``FIELD_STEPS`` table
(stage → field, extractor, next stage). ``start``, ``creating`` and
``completed`` have dedicated handlers. ``ConversationMachine`` checks at
construction time that every :class:`Stage` has a handler.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional
from zoneinfo import ZoneInfo

from chat_scheduler import replies
from chat_scheduler.calendar_providers.base import CalendarEvent, CalendarProvider
from chat_scheduler.channels.base import EmailSender
from chat_scheduler.completion import CompletionProvider
from chat_scheduler.errors import CalendarNotConnected, CompletionError
from chat_scheduler.extractors import (
    Extractor,
    extract_date,
    extract_duration,
    extract_email,
    extract_time,
)
from chat_scheduler.models.booking import BookingRequest
from chat_scheduler.models.session import Session, Stage

log = logging.getLogger("chat_scheduler.conversation")

StageHandler = Callable[[Session, str, str], Awaitable[str]]


@dataclass(frozen=True)
class FieldStep:
    """One collecting stage: which field it fills and where it goes next."""

    field: str
    extract: Extractor
    next_stage: Stage
    retry_message: str


FIELD_STEPS: dict[Stage, FieldStep] = {
    Stage.AWAITING_DATE: FieldStep("date", extract_date, Stage.AWAITING_TIME, replies.RETRY_DATE),
    Stage.AWAITING_TIME: FieldStep("time", extract_time, Stage.AWAITING_DURATION, replies.RETRY_TIME),
    Stage.AWAITING_DURATION: FieldStep("duration", extract_duration, Stage.AWAITING_EMAIL, replies.RETRY_DURATION),
    Stage.AWAITING_EMAIL: FieldStep("email", extract_email, Stage.CREATING, replies.RETRY_EMAIL),
}

# field name -> stage that collects it
FIELD_STAGE: dict[str, Stage] = {step.field: stage for stage, step in FIELD_STEPS.items()}


class ConversationMachine:
    """Advances one session by one inbound message.

    Typical use::

        machine = ConversationMachine(calendar=provider, completion=llm)
        session, reply = await machine.advance(session, "Termin am 08.11.2025")

    The machine mutates the session in place and returns it together with
    the reply text. It does not store sessions; see
    :class:`~chat_scheduler.assistant.SchedulingAssistant`.
    """

    def __init__(
        self,
        calendar: CalendarProvider,
        completion: Optional[CompletionProvider] = None,
        email_sender: Optional[EmailSender] = None,
        *,
        bot_name: str = "Max",
        trigger_keywords: Iterable[str] = ("termin",),
        timezone: str = "Europe/Berlin",
    ) -> None:
        self._calendar = calendar
        self._completion = completion
        self._email_sender = email_sender
        self._bot_name = bot_name
        self._trigger_keywords = tuple(k.lower() for k in trigger_keywords if k)
        self._tz = ZoneInfo(timezone)

        self._handlers: dict[Stage, StageHandler] = {
            Stage.START: self._handle_start,
            Stage.CREATING: self._handle_creating,
            Stage.COMPLETED: self._handle_completed,
        }
        for stage in FIELD_STEPS:
            self._handlers[stage] = self._handle_field

        unhandled = set(Stage) - set(self._handlers)
        if unhandled:
            raise RuntimeError(f"No handler for stage(s): {sorted(s.value for s in unhandled)}")

    # ── Public API ────────────────────────────────────────────

    async def advance(self, session: Session, text: str, lang: str = "de") -> tuple[Session, str]:
        """Process one message and return ``(session, reply)``."""
        stage_before = session.stage
        reply = await self._handlers[session.stage](session, text or "", lang)
        if session.stage != stage_before:
            log.info("Stage advance: %s → %s", stage_before.value, session.stage.value)
        return session, reply

    # ── Stage handlers ────────────────────────────────────────

    async def _handle_start(self, session: Session, text: str, lang: str) -> str:
        lowered = text.lower()
        if any(keyword in lowered for keyword in self._trigger_keywords):
            session.stage = Stage.AWAITING_DATE
            return replies.ASK_DATE

        if self._completion is None:
            return replies.COMPLETION_FALLBACK

        try:
            return await self._completion.complete(text, lang)
        except CompletionError as e:
            log.error("Completion failed: %s", e)
            return replies.COMPLETION_FALLBACK

    async def _handle_field(self, session: Session, text: str, lang: str) -> str:
        step = FIELD_STEPS[session.stage]
        value = step.extract(text)
        if value is None:
            return step.retry_message

        setattr(session.data, step.field, value)
        session.stage = step.next_stage

        if step.next_stage is Stage.CREATING:
            return await self._handle_creating(session, text, lang)
        return replies.PROMPT_FOR_STAGE[step.next_stage]

    async def _handle_creating(self, session: Session, text: str, lang: str) -> str:
        missing = session.data.missing_fields()
        if missing:
            session.stage = FIELD_STAGE[missing[0]]
            log.warning("Booking data incomplete (%s) — back to %s", ", ".join(missing), session.stage.value)
            return f"{replies.MISSING_FIELD} {replies.PROMPT_FOR_STAGE[session.stage]}"

        data = session.data
        try:
            request = BookingRequest.from_data(
                data,
                self._tz,
                summary=self._summary(session),
                description=self._description(session),
            )
        except ValueError as e:
            log.warning("Cannot build booking window: %s", e)
            data.duration = None
            session.stage = Stage.AWAITING_DURATION
            return replies.RETRY_DURATION

        try:
            if not await self._calendar.is_free(request.start, request.end):
                session.stage = Stage.AWAITING_TIME
                log.info("Requested slot %s is busy", request.start.isoformat())
                return replies.SLOT_TAKEN

            result = await self._calendar.create_event(
                CalendarEvent(
                    summary=request.summary,
                    start=request.start,
                    end=request.end,
                    description=request.description,
                    attendees=[request.attendee_email],
                )
            )
        except CalendarNotConnected:
            log.warning("Calendar not connected — cannot book")
            return replies.NOT_CONNECTED
        except Exception:
            log.exception("Creating the calendar event failed")
            session.stage = Stage.AWAITING_EMAIL
            return replies.BOOKING_FAILED

        session.stage = Stage.COMPLETED
        join_link = result["join_link"]
        log.info("Booked event %s", result.get("event_id", "?"))

        await self._send_confirmation_email(session, join_link)
        return replies.confirmation(data.date, data.time, data.duration, data.email, join_link)

    async def _handle_completed(self, session: Session, text: str, lang: str) -> str:
        return replies.ALREADY_BOOKED

    # ── Helpers ───────────────────────────────────────────────

    def _summary(self, session: Session) -> str:
        names = " ".join(n for n in (session.data.first_name, session.data.last_name) if n)
        if names:
            return f"Beratung mit {self._bot_name} – {names}"
        return f"Beratung mit {self._bot_name}"

    @staticmethod
    def _description(session: Session) -> str:
        lines = [f"Gebucht über den Chat-Assistenten ({session.key})."]
        if session.data.phone:
            lines.append(f"Telefon: {session.data.phone}")
        return "\n".join(lines)

    async def _send_confirmation_email(self, session: Session, join_link: str) -> None:
        """Send the invitation summary by email. Failures are logged, never raised."""
        if self._email_sender is None:
            return
        data = session.data
        try:
            await self._email_sender.send(
                data.email,
                replies.EMAIL_SUBJECT.format(date=data.date, time=data.time),
                replies.email_body(self._bot_name, data.date, data.time, data.duration, join_link),
            )
        except Exception:
            log.exception("Confirmation email failed")
