"""Conversational scheduling assistant: web chat and SMS booking over Google Calendar."""

__version__ = "0.1.0"
