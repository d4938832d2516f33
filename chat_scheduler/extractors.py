"""Regex field extraction for the booking conversation.

Each extractor takes the user's raw message and returns the extracted
value, or None. Only the *first* candidate in the cleaned text is
considered; if it is not a real date/time/duration the whole extraction
fails and the user is asked again.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Callable, Optional, Union

ExtractedValue = Union[str, int]
Extractor = Callable[[str], Optional[ExtractedValue]]

# German and English filler around dates and times ("am", "um 10 Uhr",
# "around 10 o'clock"). Stripped before matching.
FILLER_WORDS = re.compile(
    r"(?<![\w.])(?:am|um|gegen|ca\.|circa|uhr|at|around|o'clock|oclock)(?![\w])",
    re.IGNORECASE,
)
_WHITESPACE = re.compile(r"\s+")

DATE_PATTERN = re.compile(r"(?<!\d)(\d{1,2})\.(\d{1,2})\.(\d{4})(?!\d)")
TIME_PATTERN = re.compile(r"(?<!\d)(?<!\d[.:])(\d{1,2})(?::(\d{2}))?(?!\d)(?![.:]\d)")
INTEGER_PATTERN = re.compile(r"\d+")
EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)*\.[A-Za-z]{2,}")

MAX_DURATION_MINUTES = 24 * 60


def clean_text(text: str) -> str:
    """Drop filler words and collapse whitespace."""
    without_filler = FILLER_WORDS.sub(" ", text or "")
    return _WHITESPACE.sub(" ", without_filler).strip()


def extract_date(text: str) -> Optional[str]:
    """First ``D.M.YYYY`` substring, returned verbatim if it is a real date.

    >>> extract_date("Termin am 08.11.2025")
    '08.11.2025'
    """
    match = DATE_PATTERN.search(clean_text(text))
    if not match:
        return None
    day, month, year = (int(g) for g in match.groups())
    try:
        date(year, month, day)
    except ValueError:
        return None
    return match.group(0)


def extract_time(text: str) -> Optional[str]:
    """First ``H`` or ``H:MM`` substring, verbatim, if it is a valid clock time."""
    match = TIME_PATTERN.search(clean_text(text))
    if not match:
        return None
    hour = int(match.group(1))
    minute = int(match.group(2)) if match.group(2) else 0
    if hour > 23 or minute > 59:
        return None
    return match.group(0)


def extract_duration(text: str) -> Optional[int]:
    """First integer in the message, as minutes, between 1 and a day."""
    match = INTEGER_PATTERN.search(clean_text(text))
    if not match:
        return None
    minutes = int(match.group(0))
    return minutes if 0 < minutes <= MAX_DURATION_MINUTES else None


def extract_email(text: str) -> Optional[str]:
    """First ``local@domain.tld`` substring."""
    match = EMAIL_PATTERN.search(text or "")
    return match.group(0) if match else None
