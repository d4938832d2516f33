"""Tests for ConversationMachine — the booking stage FSM."""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from chat_scheduler import replies
from chat_scheduler.calendar_providers.base import NO_LINK
from chat_scheduler.conversation import FIELD_STAGE, FIELD_STEPS, ConversationMachine
from chat_scheduler.models.session import BookingData, Session, Stage


def _session(stage: Stage = Stage.START, **data) -> Session:
    return Session(key="+491701234567", stage=stage, data=BookingData(**data))


def _complete_data(**overrides) -> dict:
    data = {"date": "08.11.2025", "time": "10:00", "duration": 30, "email": "a@b.com"}
    data.update(overrides)
    return data


# ── Stage table ─────────────────────────────────────────────────

class TestStageTable:
    def test_every_stage_has_a_handler(self, machine):
        assert set(machine._handlers) == set(Stage)

    def test_field_steps_form_a_linear_chain(self):
        assert FIELD_STEPS[Stage.AWAITING_DATE].next_stage == Stage.AWAITING_TIME
        assert FIELD_STEPS[Stage.AWAITING_TIME].next_stage == Stage.AWAITING_DURATION
        assert FIELD_STEPS[Stage.AWAITING_DURATION].next_stage == Stage.AWAITING_EMAIL
        assert FIELD_STEPS[Stage.AWAITING_EMAIL].next_stage == Stage.CREATING

    def test_field_stage_lookup(self):
        assert FIELD_STAGE == {
            "date": Stage.AWAITING_DATE,
            "time": Stage.AWAITING_TIME,
            "duration": Stage.AWAITING_DURATION,
            "email": Stage.AWAITING_EMAIL,
        }


# ── start ───────────────────────────────────────────────────────

class TestStart:
    async def test_trigger_keyword_starts_booking(self, machine, completion):
        session, reply = await machine.advance(_session(), "Ich möchte einen TERMIN")
        assert session.stage == Stage.AWAITING_DATE
        assert reply == replies.ASK_DATE
        assert completion.calls == []

    async def test_other_text_goes_to_completion(self, machine, completion):
        session, reply = await machine.advance(_session(), "Wie hoch sind die Zinsen?", "en")
        assert session.stage == Stage.START
        assert reply == completion.answer
        assert completion.calls == [("Wie hoch sind die Zinsen?", "en")]

    async def test_completion_failure_uses_static_reply(self, machine, completion):
        completion.fail = True
        session, reply = await machine.advance(_session(), "Hallo")
        assert session.stage == Stage.START
        assert reply == replies.COMPLETION_FALLBACK

    async def test_no_completion_provider(self, calendar):
        machine = ConversationMachine(calendar=calendar)
        session, reply = await machine.advance(_session(), "Hallo")
        assert reply == replies.COMPLETION_FALLBACK
        assert session.stage == Stage.START

    async def test_custom_trigger_keywords(self, calendar):
        machine = ConversationMachine(calendar=calendar, trigger_keywords=["appointment"])
        session, _ = await machine.advance(_session(), "Book an Appointment please")
        assert session.stage == Stage.AWAITING_DATE


# ── Collecting stages ───────────────────────────────────────────

class TestCollectFields:
    async def test_date_stored_verbatim(self, machine):
        session, reply = await machine.advance(_session(Stage.AWAITING_DATE), "Termin am 08.11.2025")
        assert session.stage == Stage.AWAITING_TIME
        assert session.data.date == "08.11.2025"
        assert reply == replies.ASK_TIME

    @pytest.mark.parametrize("text", ["morgen", "nächste Woche", "31.02.2025", ""])
    async def test_bad_date_reprompts(self, machine, text):
        session, reply = await machine.advance(_session(Stage.AWAITING_DATE), text)
        assert session.stage == Stage.AWAITING_DATE
        assert session.data.date is None
        assert reply == replies.RETRY_DATE

    async def test_time(self, machine):
        session, reply = await machine.advance(_session(Stage.AWAITING_TIME), "um 10:00 Uhr")
        assert session.stage == Stage.AWAITING_DURATION
        assert session.data.time == "10:00"
        assert reply == replies.ASK_DURATION

    async def test_bad_time_reprompts(self, machine):
        session, reply = await machine.advance(_session(Stage.AWAITING_TIME), "25:00")
        assert session.stage == Stage.AWAITING_TIME
        assert reply == replies.RETRY_TIME

    async def test_duration(self, machine):
        session, reply = await machine.advance(_session(Stage.AWAITING_DURATION), "30 Minuten")
        assert session.stage == Stage.AWAITING_EMAIL
        assert session.data.duration == 30
        assert reply == replies.ASK_EMAIL

    async def test_bad_duration_reprompts(self, machine):
        session, reply = await machine.advance(_session(Stage.AWAITING_DURATION), "eine halbe Stunde")
        assert session.stage == Stage.AWAITING_DURATION
        assert reply == replies.RETRY_DURATION

    async def test_oversized_duration_reprompts(self, machine):
        session, reply = await machine.advance(_session(Stage.AWAITING_DURATION), "5000000000")
        assert session.stage == Stage.AWAITING_DURATION
        assert session.data.duration is None
        assert reply == replies.RETRY_DURATION

    async def test_bad_email_reprompts(self, machine):
        session, reply = await machine.advance(
            _session(Stage.AWAITING_EMAIL, **_complete_data(email=None)), "meine mail ist a at b"
        )
        assert session.stage == Stage.AWAITING_EMAIL
        assert reply == replies.RETRY_EMAIL


# ── creating ────────────────────────────────────────────────────

class TestCreating:
    async def test_free_slot_completes(self, machine, calendar):
        session, reply = await machine.advance(_session(Stage.CREATING, **_complete_data()), "")
        assert session.stage == Stage.COMPLETED
        assert "08.11.2025" in reply
        assert "10:00" in reply
        assert calendar.join_link in reply

    async def test_event_times_in_calendar_timezone(self, machine, calendar):
        await machine.advance(_session(Stage.CREATING, **_complete_data()), "")
        event = calendar.created[0]
        tz = ZoneInfo("Europe/Berlin")
        assert event.start == datetime(2025, 11, 8, 10, 0, tzinfo=tz)
        assert event.end - event.start == timedelta(minutes=30)
        assert event.attendees == ["a@b.com"]
        assert calendar.free_checks == [(event.start, event.end)]

    async def test_busy_slot_reverts_to_time(self, machine, calendar):
        calendar.free = False
        session, reply = await machine.advance(_session(Stage.CREATING, **_complete_data()), "")
        assert session.stage == Stage.AWAITING_TIME
        assert reply == replies.SLOT_TAKEN
        assert session.data.date == "08.11.2025"
        assert session.data.email == "a@b.com"
        assert calendar.created == []

    @pytest.mark.parametrize(
        "missing, expected",
        [
            ("date", Stage.AWAITING_DATE),
            ("time", Stage.AWAITING_TIME),
            ("duration", Stage.AWAITING_DURATION),
            ("email", Stage.AWAITING_EMAIL),
        ],
    )
    async def test_missing_field_reverts_to_its_stage(self, machine, calendar, missing, expected):
        session, reply = await machine.advance(
            _session(Stage.CREATING, **_complete_data(**{missing: None})), ""
        )
        assert session.stage == expected
        assert reply.startswith(replies.MISSING_FIELD)
        assert calendar.free_checks == []

    async def test_unrepresentable_end_time_asks_for_duration(self, machine, calendar):
        session, reply = await machine.advance(
            _session(Stage.CREATING, **_complete_data(date="31.12.9999", time="23:00", duration=120)), ""
        )
        assert session.stage == Stage.AWAITING_DURATION
        assert session.data.duration is None
        assert session.data.date == "31.12.9999"
        assert reply == replies.RETRY_DURATION
        assert calendar.free_checks == []

        session, _ = await machine.advance(session, "30")
        assert session.data.duration == 30
        assert session.stage == Stage.AWAITING_EMAIL

    async def test_first_missing_field_wins(self, machine):
        session, _ = await machine.advance(
            _session(Stage.CREATING, **_complete_data(time=None, email=None)), ""
        )
        assert session.stage == Stage.AWAITING_TIME

    async def test_not_connected_keeps_stage(self, machine, calendar):
        calendar.connected = False
        session, reply = await machine.advance(_session(Stage.CREATING, **_complete_data()), "")
        assert session.stage == Stage.CREATING
        assert reply == replies.NOT_CONNECTED

    async def test_create_error_reverts_to_email(self, machine, calendar):
        calendar.fail_create = RuntimeError("boom")
        session, reply = await machine.advance(_session(Stage.CREATING, **_complete_data()), "")
        assert session.stage == Stage.AWAITING_EMAIL
        assert reply == replies.BOOKING_FAILED
        assert session.data.email == "a@b.com"

    async def test_missing_join_link_uses_sentinel(self, machine, calendar):
        calendar.join_link = ""
        _, reply = await machine.advance(_session(Stage.CREATING, **_complete_data()), "")
        assert NO_LINK in reply

    async def test_summary_includes_lead_name(self, machine, calendar):
        await machine.advance(
            _session(Stage.CREATING, first_name="Anna", last_name="Schmidt", **_complete_data()), ""
        )
        assert calendar.created[0].summary == "Beratung mit Max – Anna Schmidt"

    async def test_confirmation_email_sent(self, machine, email_sender):
        await machine.advance(_session(Stage.CREATING, **_complete_data()), "")
        assert len(email_sender.sent) == 1
        to, subject, body = email_sender.sent[0]
        assert to == "a@b.com"
        assert "08.11.2025" in subject
        assert "meet.google.com" in body

    async def test_email_failure_does_not_undo_booking(self, machine, email_sender):
        email_sender.fail = True
        session, reply = await machine.advance(_session(Stage.CREATING, **_complete_data()), "")
        assert session.stage == Stage.COMPLETED
        assert "08.11.2025" in reply


# ── completed ───────────────────────────────────────────────────

class TestCompleted:
    async def test_same_reply_and_no_mutation(self, machine, calendar):
        session = _session(Stage.COMPLETED, **_complete_data())
        before = session.data.model_dump()

        _, first = await machine.advance(session, "Termin am 09.11.2025")
        _, second = await machine.advance(session, "Termin am 09.11.2025")

        assert first == second == replies.ALREADY_BOOKED
        assert session.stage == Stage.COMPLETED
        assert session.data.model_dump() == before
        assert calendar.created == []


# ── Full conversation ───────────────────────────────────────────

class TestScenario:
    async def test_happy_path(self, machine, calendar):
        session = _session()

        session, _ = await machine.advance(session, "Ich brauche einen Termin")
        assert session.stage == Stage.AWAITING_DATE

        session, _ = await machine.advance(session, "Termin am 08.11.2025")
        assert session.data.date == "08.11.2025"
        assert session.stage == Stage.AWAITING_TIME

        session, _ = await machine.advance(session, "10:00")
        assert session.data.time == "10:00"
        assert session.stage == Stage.AWAITING_DURATION

        session, _ = await machine.advance(session, "30")
        assert session.data.duration == 30
        assert session.stage == Stage.AWAITING_EMAIL

        session, reply = await machine.advance(session, "a@b.com")
        assert session.stage == Stage.COMPLETED
        assert "08.11.2025" in reply
        assert "10:00" in reply
        assert "a@b.com" in reply
        assert len(calendar.created) == 1

    async def test_conflict_then_new_time(self, machine, calendar):
        calendar.free = False
        session = _session(Stage.AWAITING_EMAIL, **_complete_data(email=None))
        session, _ = await machine.advance(session, "a@b.com")
        assert session.stage == Stage.AWAITING_TIME

        calendar.free = True
        session, _ = await machine.advance(session, "14:30")
        assert session.data.time == "14:30"
        assert session.stage == Stage.AWAITING_DURATION
