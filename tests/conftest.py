"""Shared fakes for the gateway interfaces."""

from __future__ import annotations

import pytest

from chat_scheduler.calendar_providers.base import NO_LINK, CalendarEvent, CalendarProvider
from chat_scheduler.channels.base import EmailSender, SmsSender
from chat_scheduler.completion import CompletionProvider
from chat_scheduler.conversation import ConversationMachine
from chat_scheduler.errors import CalendarNotConnected, CompletionError, DeliveryError
from chat_scheduler.session_store import InMemorySessionStore
from chat_scheduler.assistant import SchedulingAssistant


class FakeCalendar(CalendarProvider):
    def __init__(self, free: bool = True, join_link: str = "https://meet.google.com/abc-defg-hij"):
        self.free = free
        self.join_link = join_link
        self.connected = True
        self.fail_create: Exception | None = None
        self.free_checks: list[tuple] = []
        self.created: list[CalendarEvent] = []

    async def is_free(self, start, end):
        if not self.connected:
            raise CalendarNotConnected("no token")
        self.free_checks.append((start, end))
        return self.free

    async def create_event(self, event):
        if not self.connected:
            raise CalendarNotConnected("no token")
        if self.fail_create:
            raise self.fail_create
        self.created.append(event)
        return {
            "event_id": f"evt_{len(self.created)}",
            "html_link": "https://calendar.google.com/event?eid=1",
            "join_link": self.join_link or NO_LINK,
        }


class FakeCompletion(CompletionProvider):
    def __init__(self, answer: str = "Gerne helfe ich Ihnen bei Ihrer Finanzierung!"):
        self.answer = answer
        self.fail = False
        self.calls: list[tuple[str, str]] = []

    async def complete(self, text, lang="de"):
        self.calls.append((text, lang))
        if self.fail:
            raise CompletionError("provider down")
        return self.answer


class FakeSms(SmsSender):
    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send(self, to, body):
        if self.fail:
            raise DeliveryError("twilio down")
        self.sent.append((to, body))
        return {"sid": f"SM{len(self.sent)}", "status": "queued", "to": to}


class FakeEmail(EmailSender):
    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    async def send(self, to, subject, body):
        if self.fail:
            raise DeliveryError("smtp down")
        self.sent.append((to, subject, body))


@pytest.fixture
def calendar() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture
def completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture
def sms() -> FakeSms:
    return FakeSms()


@pytest.fixture
def email_sender() -> FakeEmail:
    return FakeEmail()


@pytest.fixture
def machine(calendar, completion, email_sender) -> ConversationMachine:
    return ConversationMachine(
        calendar=calendar,
        completion=completion,
        email_sender=email_sender,
        bot_name="Max",
        timezone="Europe/Berlin",
    )


@pytest.fixture
def assistant(machine, sms) -> SchedulingAssistant:
    return SchedulingAssistant(
        machine=machine,
        store=InMemorySessionStore(),
        sms_sender=sms,
        bot_name="Max",
        default_country_code="+49",
    )
