"""Custom exception hierarchy for pubcal_lite.

Every error raised on purpose by the package derives from ``PubcalError`` so
callers can catch the whole family in one place (the CLI does exactly that).
Recoverable conditions such as a single malformed content line are never
raised; they are counted on the parse result instead.
"""

from __future__ import annotations

from typing import Optional


class PubcalError(Exception):
    """Base exception for all pubcal_lite errors."""


class MalformedInputError(PubcalError):
    """Calendar input could not be interpreted as text at all.

    Raised when:
    - The payload is neither ``str`` nor ``bytes``
    - Byte input is not valid UTF-8

    Individual malformed lines or VEVENT blocks do not raise this error.
    """


class AmbiguousTimezoneError(PubcalError):
    """Recurring events for one logical source disagree on their timezone.

    Raised by the projector in strict mode instead of silently picking the
    first-seen zone.
    """

    def __init__(self, source_id: str, timezones: list[str]):
        self.source_id = source_id
        self.timezones = timezones
        super().__init__(
            f"Recurring events for source {source_id!r} use conflicting timezones: "
            f"{', '.join(timezones)}"
        )


class LiteRRuleParseError(PubcalError):
    """RRULE string is empty or structurally invalid."""


class LiteICSFetchError(PubcalError):
    """Base exception for ICS download errors."""


class LiteICSNetworkError(LiteICSFetchError):
    """Network error during ICS download."""


class LiteICSTimeoutError(LiteICSFetchError):
    """Timeout during ICS download."""


class LiteICSHTTPError(LiteICSFetchError):
    """Server answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
