"""Pydantic models tracking one user's booking conversation."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class Stage(str, Enum):
    """Which field the conversation is currently collecting."""

    START = "start"
    AWAITING_DATE = "awaiting_date"
    AWAITING_TIME = "awaiting_time"
    AWAITING_DURATION = "awaiting_duration"
    AWAITING_EMAIL = "awaiting_email"
    CREATING = "creating"
    COMPLETED = "completed"


class BookingData(BaseModel):
    """Partially filled booking record.

    Fields are populated progressively as the assistant collects them and
    are never cleared during a session; a later answer may overwrite an
    earlier one (e.g. a new time after a calendar conflict).
    """

    date: Optional[str] = None  # DD.MM.YYYY, verbatim from the message
    time: Optional[str] = None  # H or HH:MM, verbatim from the message
    duration: Optional[int] = None  # minutes
    email: Optional[str] = None

    # Lead metadata (from the CRM webhook)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None

    def missing_fields(self) -> list[str]:
        """Required booking fields that are still empty, in collection order."""
        return [
            name for name in ("date", "time", "duration", "email")
            if getattr(self, name) in (None, "")
        ]


class Session(BaseModel):
    """Per-user conversation state, kept in process memory only."""

    key: str
    stage: Stage = Stage.START
    data: BookingData = Field(default_factory=BookingData)
    created_at: float = Field(default_factory=time.time)
    updated_at: float = Field(default_factory=time.time)

    def touch(self) -> None:
        self.updated_at = time.time()

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
