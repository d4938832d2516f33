"""Google Calendar provider implementation.

Uses the user OAuth token stored by the ``/setup/google`` flow (see
:mod:`chat_scheduler.oauth`) to talk to the Calendar API v3. The token is
reloaded from the :class:`~chat_scheduler.token_store.TokenStore` on every
call, so connecting the calendar takes effect without a restart.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from functools import partial
from typing import Any

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from chat_scheduler.errors import CalendarError, CalendarNotConnected
from chat_scheduler.oauth import SCOPES
from chat_scheduler.token_store import TokenStore

from .base import NO_LINK, CalendarEvent, CalendarProvider

logger = logging.getLogger(__name__)


def extract_join_link(event: dict[str, Any]) -> str:
    """Pick the video join URL out of an inserted event resource."""
    if event.get("hangoutLink"):
        return event["hangoutLink"]
    entry_points = (event.get("conferenceData") or {}).get("entryPoints", [])
    for entry in entry_points:
        if entry.get("entryPointType") == "video" and entry.get("uri"):
            return entry["uri"]
    return NO_LINK


class GoogleCalendarProvider(CalendarProvider):
    """CalendarProvider backed by Google Calendar API v3."""

    def __init__(self, token_store: TokenStore, calendar_id: str = "primary") -> None:
        self._token_store = token_store
        self._calendar_id = calendar_id

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run_in_executor(self, func, *args, **kwargs) -> Any:
        """Run a synchronous Google API call in the default thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, partial(func, *args, **kwargs)
        )

    @staticmethod
    def _to_rfc3339(dt: datetime) -> str:
        """Convert a datetime to an RFC 3339 string with timezone."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.isoformat()

    def _build_service(self):
        """Load the stored token, refresh it if needed, and build a client."""
        token = self._token_store.load()
        if not token:
            raise CalendarNotConnected("No Google OAuth token stored")

        try:
            creds = Credentials.from_authorized_user_info(token, SCOPES)
        except ValueError as e:
            raise CalendarError(f"Stored Google token is incomplete: {e}") from e

        if creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
            except GoogleAuthError as e:
                raise CalendarError(f"Google token refresh failed: {e}") from e
            self._token_store.save(json.loads(creds.to_json()))
            logger.info("Refreshed Google access token")

        return build("calendar", "v3", credentials=creds, cache_discovery=False)

    def _execute(self, make_request) -> dict[str, Any]:
        """Build the service, issue one request and translate API errors."""
        service = self._build_service()
        try:
            return make_request(service).execute()
        except HttpError as e:
            raise CalendarError(f"Google Calendar API error: {e}") from e

    # ------------------------------------------------------------------
    # CalendarProvider interface
    # ------------------------------------------------------------------

    async def is_free(self, start: datetime, end: datetime) -> bool:
        """List events in ``[start, end)``; the slot is free if there are none.

        The Calendar API already applies half-open semantics: it returns
        events ending after ``timeMin`` and starting before ``timeMax``.
        """
        response = await self._run_in_executor(
            self._execute,
            lambda service: service.events().list(
                calendarId=self._calendar_id,
                timeMin=self._to_rfc3339(start),
                timeMax=self._to_rfc3339(end),
                singleEvents=True,
            ),
        )

        items = [
            item for item in response.get("items", [])
            if item.get("status") != "cancelled"
        ]
        logger.info(
            "Calendar %s has %d event(s) between %s and %s",
            self._calendar_id, len(items), start.isoformat(), end.isoformat(),
        )
        return not items

    async def create_event(self, event: CalendarEvent) -> dict:
        """Insert an event, request a Meet link and invite the attendees."""
        body: dict[str, Any] = {
            "summary": event.summary,
            "start": {"dateTime": self._to_rfc3339(event.start)},
            "end": {"dateTime": self._to_rfc3339(event.end)},
        }
        if event.description:
            body["description"] = event.description
        if event.attendees:
            body["attendees"] = [
                {"email": addr} for addr in event.attendees
            ]
        if event.add_conference:
            body["conferenceData"] = {
                "createRequest": {
                    "requestId": f"meet-{uuid.uuid4().hex}",
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            }

        result = await self._run_in_executor(
            self._execute,
            lambda service: service.events().insert(
                calendarId=self._calendar_id,
                body=body,
                conferenceDataVersion=1,
                sendUpdates="all",
            ),
        )

        logger.info("Created event %s on calendar %s", result["id"], self._calendar_id)

        return {
            "event_id": result["id"],
            "html_link": result.get("htmlLink", ""),
            "join_link": extract_join_link(result),
            "status": result.get("status", "confirmed"),
        }
