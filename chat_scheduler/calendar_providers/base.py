"""Abstract base class for calendar providers.

Defines the two calls the conversation needs: a conflict check and event
creation with a generated video-conference link. Any calendar backend
(Google, a test fake, ...) implements this ABC.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

# Returned as ``join_link`` when the provider did not generate a conference.
NO_LINK = "kein Link verfügbar"


@dataclass
class CalendarEvent:
    """Represents a calendar event to be created."""

    summary: str
    start: datetime
    end: datetime
    description: str = ""
    attendees: list[str] = field(default_factory=list)  # email addresses
    add_conference: bool = True


class CalendarProvider(ABC):
    """Abstract calendar backend.

    Implementations raise :class:`~chat_scheduler.errors.CalendarNotConnected`
    when no credential is available and
    :class:`~chat_scheduler.errors.CalendarError` when the API call fails.
    """

    @abstractmethod
    async def is_free(self, start: datetime, end: datetime) -> bool:
        """Return True iff no event overlaps the half-open interval ``[start, end)``."""

    @abstractmethod
    async def create_event(self, event: CalendarEvent) -> dict:
        """Create a calendar event.

        Returns:
            Dict containing ``"event_id"``, ``"html_link"`` and
            ``"join_link"`` (``NO_LINK`` if no conference link was generated).
        """
