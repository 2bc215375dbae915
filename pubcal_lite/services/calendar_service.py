"""Calendar retrieval and caching service - pubcal_lite.

Fetches a publisher's ICS file, parses and resolves it, and keeps the resolved event
list in a ``LiteCalendarCache`` under ``calendar_<ics name>``.
"""

import logging
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any, Optional, Union
from urllib.parse import unquote, urlparse

from ..calendar.lite_models import ProjectedOccurrence, ResolvedEvent
from ..calendar.lite_parser import LiteICSParser
from ..calendar.lite_projector import LiteRunDateProjector, select_source_events
from ..calendar.lite_resolver import LiteRecurrenceResolver
from ..core.calendar_cache import LiteCalendarCache
from ..core.config_loader import Config
from .lite_fetcher import LiteICSFetcher

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "calendar_"
UNKNOWN_ICS_NAME = "unknown"


def extract_ics_name(url: str) -> str:
    """Return the calendar file name without ``.ics``, or ``unknown``.

    Examples:
        >>> extract_ics_name("https://example.com/static/calendar/spokesman-review.ics")
        'spokesman-review'
    """
    try:
        path = urlparse(url).path or url
    except ValueError:
        return UNKNOWN_ICS_NAME
    name = PurePosixPath(unquote(path)).name
    if name.lower().endswith(".ics"):
        name = name[: -len(".ics")]
    return name or UNKNOWN_ICS_NAME


def calendar_key(url: str) -> str:
    """Cache key for a calendar URL."""
    return f"{CACHE_KEY_PREFIX}{extract_ics_name(url)}"


class CalendarService:
    """Get-or-populate access to resolved publisher calendars."""

    def __init__(
        self,
        config: Optional[Config] = None,
        cache: Optional[LiteCalendarCache] = None,
        fetcher: Optional[LiteICSFetcher] = None,
    ) -> None:
        """Initialize calendar service.

        Args:
            config: Settings; defaults to ``Config()``
            cache: Calendar cache; a private one with the configured TTL when omitted
            fetcher: ICS fetcher; created from config when omitted
        """
        self.config = config or Config()
        self.cache = cache or LiteCalendarCache(default_ttl=self.config.cache_ttl_seconds)
        self.fetcher = fetcher or LiteICSFetcher(self.config)
        self.parser = LiteICSParser(self.config.default_timezone)
        self.resolver = LiteRecurrenceResolver(self.config.default_deadline_offset_days)
        self.projector = LiteRunDateProjector(
            display_hour=self.config.display_hour,
            horizon_days=self.config.projection_horizon_days,
            strict_timezones=self.config.strict_timezones,
            default_offset=self.config.default_deadline_offset_days,
        )

    async def __aenter__(self) -> "CalendarService":
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the fetcher's HTTP client."""
        await self.fetcher.close()

    extract_ics_name = staticmethod(extract_ics_name)
    calendar_key = staticmethod(calendar_key)

    def publisher_calendar_url(self, publisher_slug: str) -> str:
        """URL of a publisher's calendar under the configured base URL."""
        return f"{self.config.calendar_base_url}/{publisher_slug.strip()}.ics"

    def parse_calendar(
        self,
        text: Union[str, bytes],
        source_identifier: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> list[ResolvedEvent]:
        """Parse and resolve ICS text without touching the cache.

        Raises:
            MalformedInputError: If the payload cannot be decoded
        """
        result = self.parser.parse(text, source_identifier)
        resolved = self.resolver.resolve(
            result.records,
            result.rrule_table,
            now=now,
            default_source_label=result.source_label,
        )
        return list(resolved.values())

    async def get_events(self, url: str, now: Optional[datetime] = None) -> list[ResolvedEvent]:
        """Resolved events for ``url``, from cache or freshly downloaded.

        ``now`` is the reference time used to resolve the calendar on a cache miss.

        Raises:
            LiteICSFetchError: If the download fails on a cache miss
            MalformedInputError: If the downloaded payload cannot be decoded
        """
        key = calendar_key(url)

        async def load() -> list[ResolvedEvent]:
            text = await self.fetcher.fetch_ics(url)
            events = self.parse_calendar(text, source_identifier=url, now=now)
            recurring = sum(1 for event in events if event.is_recurring)
            logger.info(
                "Cached %s: %d recurring slots, %d one-time events",
                key,
                recurring,
                len(events) - recurring,
            )
            return events

        return await self.cache.get_or_populate(key, load, self.config.cache_ttl_seconds)

    def get_cached_events(self, url: str) -> Optional[list[ResolvedEvent]]:
        """Cached events for ``url`` without fetching; None on a miss."""
        return self.cache.get(calendar_key(url))

    def clear_calendar_cache(self, url: str) -> bool:
        """Drop one calendar from the cache; True if it was cached."""
        return self.cache.delete(calendar_key(url))

    def clear_all_calendars(self) -> list[str]:
        """Drop every cached calendar; returns the removed keys."""
        keys = [key for key in self.cache.keys() if key.startswith(CACHE_KEY_PREFIX)]
        for key in keys:
            self.cache.delete(key)
        logger.info("Cleared %d calendars from cache", len(keys))
        return keys

    def get_cache_stats(self) -> dict[str, Any]:
        keys = [key for key in self.cache.keys() if key.startswith(CACHE_KEY_PREFIX)]
        return {
            "total_calendars": len(keys),
            "cache_keys": keys,
            "cache_stats": self.cache.get_stats(),
        }

    async def next_run_dates(
        self,
        url: str,
        source_id: str,
        count: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[ProjectedOccurrence]:
        """Upcoming run dates of one publication in the calendar at ``url``.

        Raises:
            AmbiguousTimezoneError: If the publication's slots disagree on timezone
                and strict mode is on
        """
        events = select_source_events(await self.get_events(url, now=now), source_id)
        if count is None:
            count = self.config.default_occurrence_count
        return self.projector.project(events, count, now=now)

    async def find_events_by_date_range(
        self, url: str, start: datetime, end: datetime
    ) -> list[ResolvedEvent]:
        """Cached or fetched events whose start lies within [start, end].

        Naive bounds are taken as UTC.
        """
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        if end.tzinfo is None:
            end = end.replace(tzinfo=timezone.utc)
        events = await self.get_events(url)
        return [event for event in events if start <= event.start.date_time <= end]
