"""Next run date projection for a publication's weekly schedule - pubcal_lite."""

import logging
from datetime import datetime, time, timedelta
from typing import Iterable, Optional

from dateutil.rrule import WEEKLY, rrule

from ..core.exceptions import AmbiguousTimezoneError
from ..core.timezone_utils import get_zoneinfo, now_utc, timezone_abbreviation
from .lite_models import DEFAULT_DEADLINE_OFFSET_DAYS, ProjectedOccurrence, ResolvedEvent

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_HOUR = 12
DEFAULT_HORIZON_DAYS = 366

# Indexed by datetime.weekday()
_SHORT_DAY_NAMES = ["Mon", "Tues", "Wed", "Thurs", "Fri", "Sat", "Sun"]


def select_source_events(events: Iterable[ResolvedEvent], source_id: str) -> list[ResolvedEvent]:
    """Filter a cached event list down to one publication."""
    return [event for event in events if event.source_id == source_id]


def format_short_date(dt: datetime) -> str:
    """Render a date the way submission schedules print it.

    Examples:
        >>> format_short_date(datetime(2025, 9, 29, 12))
        'Mon 9/29/25'
    """
    return f"{_SHORT_DAY_NAMES[dt.weekday()]} {dt.month}/{dt.day}/{dt.year % 100:02d}"


def format_clock_time(dt: datetime) -> str:
    """12-hour clock time, e.g. ``12:00 PM``."""
    hour = dt.hour % 12 or 12
    meridiem = "AM" if dt.hour < 12 else "PM"
    return f"{hour}:{dt.minute:02d} {meridiem}"


def format_submission_line(occurrence: ProjectedOccurrence) -> str:
    """Render the deadline of one occurrence, e.g. ``Submit by 12:00 PM EDT on Sat 9/27/25``."""
    deadline = occurrence.deadline_at
    return (
        f"Submit by {format_clock_time(deadline)} {timezone_abbreviation(deadline)} "
        f"on {format_short_date(deadline)}"
    )


def format_run_line(occurrence: ProjectedOccurrence) -> str:
    """Render one schedule line: run date followed by its submission deadline."""
    return f"{format_short_date(occurrence.run_at)} - {format_submission_line(occurrence)}"


class LiteRunDateProjector:
    """Walks a publication's weekly slots forward and emits run dates with deadlines."""

    def __init__(
        self,
        display_hour: int = DEFAULT_DISPLAY_HOUR,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        strict_timezones: bool = True,
        default_offset: int = DEFAULT_DEADLINE_OFFSET_DAYS,
    ) -> None:
        """Initialize projector.

        Args:
            display_hour: Local hour every run (and deadline) is pinned to
            horizon_days: How far past the cursor the walk may go
            strict_timezones: Raise on mixed zones instead of using the first one
            default_offset: Deadline offset for weekdays with no recorded value
        """
        self.display_hour = display_hour
        self.horizon_days = horizon_days
        self.strict_timezones = strict_timezones
        self.default_offset = default_offset

    def project(
        self,
        events: Iterable[ResolvedEvent],
        count: int,
        now: Optional[datetime] = None,
    ) -> list[ProjectedOccurrence]:
        """Compute the next ``count`` run dates whose deadline is still ahead of ``now``.

        Args:
            events: Resolved events of a single publication; one-time events are ignored
            count: Number of occurrences wanted
            now: Reference instant (defaults to now_utc())

        Returns:
            Occurrences sorted by run date; empty when there is no weekly schedule

        Raises:
            ValueError: If the events belong to more than one publication
            AmbiguousTimezoneError: If the weekly slots disagree on timezone and
                strict mode is on
        """
        recurring = [event for event in events if event.is_recurring and event.weekday is not None]
        if count <= 0 or not recurring:
            return []

        source_ids = {event.source_id for event in recurring}
        if len(source_ids) > 1:
            raise ValueError(f"Events span multiple sources: {', '.join(sorted(source_ids))}")
        source_id = recurring[0].source_id

        tz_name = self._shared_timezone(source_id, recurring)
        zone = get_zoneinfo(tz_name)
        if now is None:
            now = now_utc()

        offsets: dict[int, int] = {}
        for event in recurring:
            offsets.setdefault(event.weekday.number, event.deadline_offset)

        today = now.astimezone(zone).date()
        earliest = min(event.start.date_time.astimezone(zone).date() for event in recurring)
        cursor = max(today, earliest)

        dtstart = datetime.combine(cursor, time(self.display_hour), tzinfo=zone)
        schedule = rrule(
            WEEKLY,
            byweekday=sorted(offsets),
            dtstart=dtstart,
            until=dtstart + timedelta(days=self.horizon_days),
        )

        occurrences: list[ProjectedOccurrence] = []
        seen: set[datetime] = set()
        skipped = 0
        for run_at in schedule:
            if run_at in seen:
                continue
            seen.add(run_at)

            offset = offsets.get(run_at.weekday(), self.default_offset)
            deadline_at = datetime.combine(run_at.date() - timedelta(days=offset), run_at.timetz())
            if deadline_at <= now:
                skipped += 1
                continue

            occurrences.append(
                ProjectedOccurrence(
                    source_id=source_id,
                    run_at=run_at,
                    deadline_at=deadline_at,
                    time_zone=tz_name,
                    tz_abbreviation=timezone_abbreviation(run_at),
                    deadline_offset=offset,
                )
            )
            if len(occurrences) >= count:
                break

        logger.debug(
            "Projected %d run dates for %s from %s (%d skipped for passed deadlines)",
            len(occurrences),
            source_id,
            cursor.isoformat(),
            skipped,
        )
        return occurrences

    def _shared_timezone(self, source_id: str, events: list[ResolvedEvent]) -> str:
        zones: list[str] = []
        for event in events:
            if event.start.time_zone not in zones:
                zones.append(event.start.time_zone)

        if len(zones) > 1:
            if self.strict_timezones:
                raise AmbiguousTimezoneError(source_id, zones)
            logger.warning(
                "Recurring events for %s use conflicting timezones %s; using %s",
                source_id,
                ", ".join(zones),
                zones[0],
            )
        return zones[0]
