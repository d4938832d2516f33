"""Outbound message delivery (SMS, email)."""

from .base import EmailSender, SmsSender

__all__ = ["EmailSender", "SmsSender"]
