"""Phone number normalization to E.164-style strings."""

from __future__ import annotations

import re

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(raw: str, default_country_code: str = "+49") -> str:
    """Map a free-form phone string to ``+<country><number>``.

    Numbers already starting with ``+`` are returned unchanged. Otherwise
    every non-digit is dropped. A leading ``00`` is the international call
    prefix and becomes ``+``; else a single national trunk ``0`` is removed
    and ``default_country_code`` is prepended. No further
    validation happens here; the SMS provider rejects malformed numbers.

    >>> normalize_phone("0170 1234567", "+49")
    '+491701234567'
    """
    value = (raw or "").strip()
    if value.startswith("+"):
        return value

    digits = _NON_DIGITS.sub("", value)
    if digits.startswith("00"):
        return f"+{digits[2:]}"
    if digits.startswith("0"):
        digits = digits[1:]

    prefix = default_country_code if default_country_code.startswith("+") else f"+{default_country_code}"
    return f"{prefix}{digits}"
