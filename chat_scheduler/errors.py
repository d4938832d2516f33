"""Error types raised at the external-provider boundaries.

Each gateway (calendar, completion, delivery) raises a subclass of
``GatewayError`` so callers can tell provider failures apart from bugs.
"""


class GatewayError(Exception):
    """An external provider call failed."""


class CalendarError(GatewayError):
    """The calendar API rejected or failed a request."""


class CalendarNotConnected(CalendarError):
    """No OAuth token is stored, so the calendar cannot be reached."""


class CompletionError(GatewayError):
    """The language-model completion call failed or returned nothing."""


class DeliveryError(GatewayError):
    """An outbound SMS or email could not be handed to the provider."""
