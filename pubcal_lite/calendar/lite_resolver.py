"""Recurrence resolution for submission calendars - pubcal_lite.

Turns parsed VEVENT records into the deduplicated set of weekly slots (one per
publication, weekday and time of day) plus the still-upcoming one-time events.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from ..core.exceptions import LiteRRuleParseError
from ..core.timezone_utils import now_utc
from .lite_models import (
    DEFAULT_DEADLINE_OFFSET_DAYS,
    UNTITLED_EVENT,
    DedupKey,
    LiteDateTimeInfo,
    RawEventRecord,
    ResolvedEvent,
    Weekday,
)
from .lite_parser import humanize_slug
from .lite_rrule import extract_weekdays, parse_rrule_string

logger = logging.getLogger(__name__)


def governing_rule(record: RawEventRecord, rrule_table: dict[str, str]) -> Optional[str]:
    """Return the RRULE that applies to a record.

    The record's own RRULE wins; otherwise the side table is consulted by exact UID
    and then by logical id.
    """
    if record.rrule:
        return record.rrule
    return rrule_table.get(record.uid.raw) or rrule_table.get(record.uid.logical_id)


def advance_to_upcoming_weekday(
    start: datetime, end: datetime, now: datetime
) -> tuple[datetime, datetime]:
    """Move a stale recurring start to the nearest date >= today with the same weekday.

    "Today" and "stale" are judged in the start's own timezone at day granularity.
    Wall-clock time of day is preserved and the end keeps its original distance from
    the start.

    Examples:
        A Monday 09:00 start from last month, evaluated on a Thursday, moves to the
        coming Monday 09:00; evaluated on a Monday it moves to that same day.
    """
    today = now.astimezone(start.tzinfo).date()
    if start.date() >= today:
        return start, end

    days_ahead = (start.weekday() - today.weekday()) % 7
    new_start = datetime.combine(today + timedelta(days=days_ahead), start.timetz())
    new_end = (new_start + (end - start)).astimezone(end.tzinfo)
    return new_start, new_end


def _shift_days(value: datetime, days: int) -> datetime:
    """Wall-clock day shift that keeps the time of day across DST changes."""
    if not days:
        return value
    return datetime.combine(value.date() + timedelta(days=days), value.timetz())


def _is_past(start: datetime, now: datetime) -> bool:
    today: date = now.astimezone(start.tzinfo).date()
    return start.date() < today


class LiteRecurrenceResolver:
    """Classifies, advances, expands and deduplicates parsed records."""

    def __init__(self, default_deadline_offset: int = DEFAULT_DEADLINE_OFFSET_DAYS) -> None:
        """Initialize resolver.

        Args:
            default_deadline_offset: Days used when a record has no X-PUB-DEADLINE-OFFSET
        """
        self.default_deadline_offset = default_deadline_offset

    def resolve(
        self,
        records: Iterable[RawEventRecord],
        rrule_table: dict[str, str],
        now: Optional[datetime] = None,
        default_source_label: str = "",
    ) -> dict[DedupKey, ResolvedEvent]:
        """Resolve one parse pass into ResolvedEvents keyed by dedup key.

        Args:
            records: Records from LiteICSParser.parse, in file order
            rrule_table: Side table from the same parse
            now: Reference instant (defaults to now_utc())
            default_source_label: Label used when a record has no CATEGORIES

        Returns:
            Mapping of dedup key -> ResolvedEvent; first record seen for a key wins
        """
        if now is None:
            now = now_utc()

        resolved: dict[DedupKey, ResolvedEvent] = {}
        processed = past = duplicates = 0

        for record in records:
            processed += 1
            label = humanize_slug(record.categories) if record.categories else default_source_label
            rule = governing_rule(record, rrule_table)

            if rule:
                duplicates += self._add_recurring(resolved, record, rule, label, now)
            elif _is_past(record.start.date_time, now):
                past += 1
            else:
                duplicates += self._add_one_time(resolved, record, label)

        recurring = sum(1 for event in resolved.values() if event.is_recurring)
        logger.info(
            "Resolved %d records: %d past one-time events dropped, %d duplicates dropped, "
            "%d recurring slots, %d one-time events",
            processed,
            past,
            duplicates,
            recurring,
            len(resolved) - recurring,
        )
        return resolved

    def _deadline_offset(self, record: RawEventRecord) -> int:
        if record.deadline_offset is None:
            return self.default_deadline_offset
        return record.deadline_offset

    def _add_recurring(
        self,
        resolved: dict[DedupKey, ResolvedEvent],
        record: RawEventRecord,
        rule: str,
        label: str,
        now: datetime,
    ) -> int:
        """Add one entry per weekday of the rule; returns the number of duplicates dropped."""
        start = record.start.date_time
        end_info = record.end or record.start

        try:
            has_byday = "byday" in parse_rrule_string(rule)
            weekdays = extract_weekdays(rule)
        except LiteRRuleParseError as e:
            logger.warning("Ignoring unusable RRULE %r on %s: %s", rule, record.uid, e)
            has_byday, weekdays = False, []
        if not has_byday:
            weekdays = [Weekday.from_number(start.weekday())]
        elif not weekdays:
            logger.warning("RRULE %r on %s lists no known weekday; no slots created", rule, record.uid)

        dropped = 0
        for weekday in weekdays:
            shift = (weekday.number - start.weekday()) % 7
            slot_start, slot_end = advance_to_upcoming_weekday(
                _shift_days(start, shift), _shift_days(end_info.date_time, shift), now
            )
            key: DedupKey = (
                record.uid.logical_id,
                weekday.number,
                f"{slot_start.hour}:{slot_start.minute:02d}",
            )
            if key in resolved:
                dropped += 1
                logger.debug("Dropping duplicate recurring slot %s from %s", key, record.uid)
                continue

            resolved[key] = self._build_event(
                record,
                start=slot_start,
                end=slot_end,
                end_zone=end_info.time_zone,
                weekday=weekday,
                label=label,
            )
        return dropped

    def _add_one_time(
        self, resolved: dict[DedupKey, ResolvedEvent], record: RawEventRecord, label: str
    ) -> int:
        start = record.start.date_time
        key: DedupKey = (record.uid.raw, start.astimezone(timezone.utc))
        if key in resolved:
            logger.debug("Dropping duplicate one-time event %s", key)
            return 1

        end_info = record.end or record.start
        resolved[key] = self._build_event(
            record,
            start=start,
            end=end_info.date_time,
            end_zone=end_info.time_zone,
            weekday=None,
            label=label,
        )
        return 0

    def _build_event(
        self,
        record: RawEventRecord,
        start: datetime,
        end: datetime,
        end_zone: str,
        weekday: Optional[Weekday],
        label: str,
    ) -> ResolvedEvent:
        return ResolvedEvent(
            source_id=record.uid.logical_id,
            uid=record.uid.raw,
            summary=record.summary or UNTITLED_EVENT,
            description=record.description or "",
            location=record.location,
            start=LiteDateTimeInfo(date_time=start, time_zone=record.start.time_zone),
            end=LiteDateTimeInfo(date_time=end, time_zone=end_zone),
            weekday=weekday,
            is_recurring=weekday is not None,
            deadline_offset=self._deadline_offset(record),
            source_label=label,
            status=record.status,
        )
