"""Timezone normalisation and clock utilities for pubcal_lite."""

from __future__ import annotations

import datetime
import functools
import logging
import os
import zoneinfo
from typing import ClassVar

logger = logging.getLogger(__name__)

# Zone applied to ICS times that carry neither a TZID parameter nor a trailing "Z"
DEFAULT_EVENT_TIMEZONE = "America/New_York"

TEST_TIME_ENV_VAR = "PUBCAL_TEST_TIME"


class TimezoneNormalizer:
    """Maps the zone names found in real-world ICS feeds onto IANA identifiers."""

    # Windows timezone names used by Outlook/Exchange exports
    WINDOWS_TZ_MAP: ClassVar[dict[str, str]] = {
        "Pacific Standard Time": "America/Los_Angeles",
        "Mountain Standard Time": "America/Denver",
        "Central Standard Time": "America/Chicago",
        "Eastern Standard Time": "America/New_York",
        "US Eastern Standard Time": "America/Indiana/Indianapolis",
        "Alaskan Standard Time": "America/Anchorage",
        "Hawaiian Standard Time": "Pacific/Honolulu",
        "Arizona Standard Time": "America/Phoenix",
        "Atlantic Standard Time": "America/Halifax",
        "GMT Standard Time": "Europe/London",
        "Central European Standard Time": "Europe/Warsaw",
        "W. Europe Standard Time": "Europe/Berlin",
        "Romance Standard Time": "Europe/Paris",
        "AUS Eastern Standard Time": "Australia/Sydney",
    }

    # Obsolete or informal aliases
    TZ_ALIAS_MAP: ClassVar[dict[str, str]] = {
        "US/Eastern": "America/New_York",
        "US/Central": "America/Chicago",
        "US/Mountain": "America/Denver",
        "US/Pacific": "America/Los_Angeles",
        "US/Arizona": "America/Phoenix",
        "US/Alaska": "America/Anchorage",
        "US/Hawaii": "Pacific/Honolulu",
        "GMT": "UTC",
        "Etc/UTC": "UTC",
        "Z": "UTC",
    }

    def normalize(self, tz_str: str | None) -> str | None:
        """Return the canonical IANA identifier for ``tz_str`` or None if unknown.

        Examples:
            >>> TimezoneNormalizer().normalize("Eastern Standard Time")
            'America/New_York'
            >>> TimezoneNormalizer().normalize("US/Pacific")
            'America/Los_Angeles'
            >>> TimezoneNormalizer().normalize("Not/AZone") is None
            True
        """
        if not tz_str:
            return None

        candidate = tz_str.strip().strip('"')
        candidate = self.WINDOWS_TZ_MAP.get(candidate, candidate)
        candidate = self.TZ_ALIAS_MAP.get(candidate, candidate)

        try:
            get_zoneinfo(candidate)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError):
            logger.debug("Unrecognised timezone name: %r", tz_str)
            return None
        return candidate


class TimeProvider:
    """Provides current time with test time override support."""

    def now_utc(self) -> datetime.datetime:
        """Return current UTC time with tzinfo.

        Can be overridden for testing via the PUBCAL_TEST_TIME environment variable.
        Format: ISO 8601 datetime string (e.g., "2025-10-27T08:20:00-04:00").
        Naive values are taken to be UTC.
        """
        test_time = os.environ.get(TEST_TIME_ENV_VAR)
        if test_time:
            try:
                from dateutil import parser as date_parser

                dt = date_parser.isoparse(test_time)
                if dt.tzinfo is not None:
                    return dt.astimezone(datetime.timezone.utc)
                return dt.replace(tzinfo=datetime.timezone.utc)
            except ValueError as e:
                logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV_VAR, test_time, e)

        return datetime.datetime.now(datetime.timezone.utc)


_normalizer = TimezoneNormalizer()
_time_provider = TimeProvider()


@functools.lru_cache(maxsize=64)
def get_zoneinfo(name: str) -> zoneinfo.ZoneInfo:
    """Return a cached ZoneInfo for an IANA name.

    Raises:
        zoneinfo.ZoneInfoNotFoundError: If the zone does not exist
        ValueError: If the name is not a valid key
    """
    return zoneinfo.ZoneInfo(name)


def normalize_timezone_name(tz_str: str | None) -> str | None:
    """Normalize a Windows name, alias or IANA identifier (convenience function)."""
    return _normalizer.normalize(tz_str)


def windows_tz_to_iana(windows_tz: str) -> str | None:
    """Convert Windows timezone name to IANA timezone identifier."""
    return TimezoneNormalizer.WINDOWS_TZ_MAP.get(windows_tz)


def now_utc() -> datetime.datetime:
    """Get current UTC time, honouring PUBCAL_TEST_TIME (convenience function)."""
    return _time_provider.now_utc()


def timezone_abbreviation(dt: datetime.datetime) -> str:
    """Return the zone abbreviation in effect at ``dt`` (e.g. EDT in July, EST in January).

    Falls back to the numeric offset for zones without a named abbreviation.
    """
    name = dt.tzname()
    if name:
        return name
    offset = dt.utcoffset()
    if offset is None:
        return "UTC"
    total_minutes = int(offset.total_seconds() // 60)
    sign = "+" if total_minutes >= 0 else "-"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"UTC{sign}{hours:02d}:{minutes:02d}"
