"""DateTime parsing utilities for ICS calendar processing - pubcal_lite.

ICS times arrive in two literal forms, ``YYYYMMDD`` and ``YYYYMMDDTHHMMSS[Z]``. Every
value is turned into a timezone-aware datetime here because all later comparisons
(stale-date advancement, past-event exclusion, deadline cut-off) are zone-sensitive.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

from ..core.timezone_utils import DEFAULT_EVENT_TIMEZONE, get_zoneinfo, normalize_timezone_name

logger = logging.getLogger(__name__)

_DATE_ONLY_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_DATE_TIME_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})?(Z)?$")


def is_utc_literal(value: str) -> bool:
    """Return True when an ICS date value carries the trailing UTC marker."""
    return value.strip().upper().endswith("Z")


class LiteDateTimeParser:
    """Parser for ICS date literals with timezone handling."""

    def __init__(self, default_timezone: Optional[str] = None):
        """Initialize datetime parser.

        Args:
            default_timezone: Zone for values with neither TZID nor trailing Z
        """
        self.default_timezone = default_timezone or DEFAULT_EVENT_TIMEZONE

    def extract_timezone(self, params: Any, value: str) -> str:
        """Pick the zone for a DTSTART/DTEND value.

        A TZID parameter wins; otherwise a trailing "Z" means UTC; otherwise the
        default zone applies. Unknown TZIDs fall back to the default zone.

        Args:
            params: Content-line parameters (mapping with case-insensitive keys)
            value: Raw property value

        Returns:
            IANA timezone name
        """
        tzid = params.get("TZID") if params else None
        if isinstance(tzid, (list, tuple)):
            tzid = tzid[0] if tzid else None

        if tzid:
            resolved = normalize_timezone_name(str(tzid))
            if resolved:
                return resolved
            logger.warning(
                "Unknown TZID %r, using default timezone %s", tzid, self.default_timezone
            )
            return self.default_timezone

        if is_utc_literal(value):
            return "UTC"
        return self.default_timezone

    def parse_ics_date(self, value: str, tz_name: str) -> datetime:
        """Parse an ICS date or date-time literal into an aware datetime in ``tz_name``.

        A trailing "Z" marks a UTC instant, which is converted into ``tz_name``.
        Date-only values resolve to midnight in ``tz_name``.

        Args:
            value: ``YYYYMMDD`` or ``YYYYMMDDTHHMM[SS][Z]``
            tz_name: IANA zone the result is expressed in

        Returns:
            Timezone-aware datetime

        Raises:
            ValueError: If the literal matches neither form or names an impossible date
        """
        text = value.strip().upper()
        zone = get_zoneinfo(tz_name)

        match = _DATE_ONLY_RE.match(text)
        if match:
            year, month, day = (int(part) for part in match.groups())
            return datetime(year, month, day, tzinfo=zone)

        match = _DATE_TIME_RE.match(text)
        if not match:
            raise ValueError(f"Unrecognised ICS date literal: {value!r}")

        year, month, day, hour, minute = (int(part) for part in match.groups()[:5])
        second = int(match.group(6) or 0)
        if match.group(7):
            utc_value = datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
            return utc_value.astimezone(zone)
        return datetime(year, month, day, hour, minute, second, tzinfo=zone)

    def parse_utc_timestamp(self, value: str) -> datetime:
        """Parse CREATED/LAST-MODIFIED style values, which are always UTC."""
        return self.parse_ics_date(value, "UTC")
