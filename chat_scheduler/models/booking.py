"""Pydantic model for the ephemeral booking request sent to the calendar."""

from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from .session import BookingData


def parse_local_datetime(date_str: str, time_str: str, tz: ZoneInfo) -> datetime:
    """Combine ``DD.MM.YYYY`` and ``H[:MM]`` into an aware datetime in ``tz``.

    Raises ValueError if the parts do not form a real date and time.
    """
    day, month, year = (int(part) for part in date_str.split("."))
    hour_str, _, minute_str = time_str.partition(":")
    hour = int(hour_str)
    minute = int(minute_str) if minute_str else 0
    return datetime(year, month, day, hour, minute, tzinfo=tz)


class BookingRequest(BaseModel):
    """Start/end instants plus attendee, derived from a complete BookingData."""

    summary: str
    start: datetime
    end: datetime
    attendee_email: str
    description: str = ""

    @classmethod
    def from_data(
        cls,
        data: BookingData,
        tz: ZoneInfo,
        summary: str,
        description: str = "",
    ) -> "BookingRequest":
        if data.missing_fields():
            raise ValueError(f"Booking data incomplete: {', '.join(data.missing_fields())}")
        start = parse_local_datetime(data.date, data.time, tz)
        try:
            end = start + timedelta(minutes=data.duration)
        except OverflowError as e:
            raise ValueError(f"Booking end time out of range: {e}") from e
        return cls(
            summary=summary,
            start=start,
            end=end,
            attendee_email=data.email,
            description=description,
        )
