"""Calendar provider abstractions and implementations."""

from .base import NO_LINK, CalendarEvent, CalendarProvider

__all__ = ["CalendarProvider", "CalendarEvent", "NO_LINK"]
