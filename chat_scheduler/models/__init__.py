"""Data models for the scheduling layer."""

from .booking import BookingRequest
from .lead import Lead
from .session import BookingData, Session, Stage

__all__ = ["BookingData", "BookingRequest", "Lead", "Session", "Stage"]
