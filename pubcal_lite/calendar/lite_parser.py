"""ICS text parser for publication submission calendars - pubcal_lite.

Scans VEVENT blocks content line by content line and keeps only the fields the
resolver consumes. Content-line splitting and RFC 5545 unfolding are delegated to
icalendar's parser primitives; everything else is deliberately lenient: a bad line
or block is counted and skipped, never fatal.
"""

import logging
import re
from pathlib import PurePosixPath
from typing import Any, Optional, Union
from urllib.parse import unquote, urlparse

from icalendar.parser import Contentline, Contentlines

from ..core.exceptions import MalformedInputError
from .lite_datetime_utils import LiteDateTimeParser
from .lite_models import (
    EventUid,
    LiteDateTimeInfo,
    LiteICSParseResult,
    PropertyKind,
    RawEventRecord,
)

logger = logging.getLogger(__name__)

_UID_LINE_RE = re.compile(r"^UID(?:;[^:\r\n]*)?:([^\r\n]+)", re.MULTILINE | re.IGNORECASE)
_RRULE_LINE_RE = re.compile(r"^RRULE(?:;[^:\r\n]*)?:([^\r\n]+)", re.MULTILINE | re.IGNORECASE)


def humanize_slug(slug: str) -> str:
    """Turn a dashed slug into a display label.

    Examples:
        >>> humanize_slug("lee-enterprises-incorporated-ppm")
        'Lee Enterprises Incorporated Ppm'
    """
    words = [word for word in slug.replace("-", " ").split(" ") if word]
    return " ".join(word[0].upper() + word[1:] for word in words)


def source_label_from_identifier(source_identifier: Optional[str]) -> str:
    """Derive a display label from the calendar's URL or path.

    Examples:
        >>> source_label_from_identifier("https://example.com/calendar/spokesman-review.ics")
        'Spokesman Review'
    """
    if not source_identifier:
        return ""
    parsed = urlparse(source_identifier)
    path = parsed.path if parsed.scheme in ("http", "https", "file") else source_identifier
    filename = PurePosixPath(unquote(path).replace("\\", "/")).name
    if filename.lower().endswith(".ics"):
        filename = filename[: -len(".ics")]
    return humanize_slug(filename)


class _BlockBuilder:
    """Collects properties of one VEVENT block."""

    def __init__(self) -> None:
        self.fields: dict[str, Any] = {}
        self.other_properties: dict[str, str] = {}

    def build(self) -> Optional[RawEventRecord]:
        if "uid" not in self.fields or "start" not in self.fields:
            return None
        return RawEventRecord(other_properties=self.other_properties, **self.fields)


class LiteICSParser:
    """Lenient VEVENT scanner producing RawEventRecords and the RRULE side table."""

    def __init__(self, default_timezone: Optional[str] = None) -> None:
        """Initialize ICS parser.

        Args:
            default_timezone: Zone for times with neither TZID nor trailing Z
        """
        self._datetime_parser = LiteDateTimeParser(default_timezone)
        logger.debug(
            "Lite ICS parser initialized (default timezone: %s)",
            self._datetime_parser.default_timezone,
        )

    def parse(
        self, raw_text: Union[str, bytes], source_identifier: Optional[str] = None
    ) -> LiteICSParseResult:
        """Parse raw calendar text into records.

        Args:
            raw_text: ICS payload as text or UTF-8 bytes
            source_identifier: URL or path the payload came from; only used for the
                default display label; X-WR-CALNAME is used when it yields none

        Returns:
            LiteICSParseResult with records, side table and skip counters

        Raises:
            MalformedInputError: If the payload cannot be decoded as text
        """
        text = self._decode(raw_text)
        lines = self._unfold(text)
        result = LiteICSParseResult(
            rrule_table=self.build_rrule_table(text),
            source_label=source_label_from_identifier(source_identifier),
        )

        builder: Optional[_BlockBuilder] = None
        nested_depth = 0

        for raw_line in lines:
            line = raw_line.strip()
            if not line:
                continue

            try:
                name, params, value = Contentline(line).parts()
            except ValueError:
                if builder is not None:
                    result.skipped_lines += 1
                    logger.debug("Skipping unparseable content line: %r", line)
                continue

            name = name.upper()
            if name == "BEGIN":
                if value.strip().upper() == "VEVENT":
                    if builder is not None:
                        self._skip_block(result, "VEVENT block not terminated before next BEGIN")
                    builder = _BlockBuilder()
                    nested_depth = 0
                    result.total_blocks += 1
                elif builder is not None:
                    nested_depth += 1
                continue

            if name == "END":
                if builder is None:
                    continue
                if nested_depth:
                    nested_depth -= 1
                elif value.strip().upper() == "VEVENT":
                    self._finish_block(result, builder)
                    builder = None
                continue

            if builder is None:
                if name == "X-WR-CALNAME":
                    result.calendar_name = value
                continue

            if nested_depth:
                # VALARM and friends carry their own DESCRIPTION/SUMMARY
                continue

            try:
                self._apply_property(builder, name, params, value)
            except ValueError as e:
                result.skipped_lines += 1
                logger.debug("Skipping malformed %s line: %s", name, e)

        if builder is not None:
            self._skip_block(result, "VEVENT block not terminated at end of input")

        if not result.source_label and result.calendar_name:
            result.source_label = result.calendar_name.strip()

        logger.info(
            "Parsed %d VEVENT blocks from %s (%s): %d records, %d skipped blocks, "
            "%d skipped lines, %d RRULE side-table entries",
            result.total_blocks,
            source_identifier or "<text>",
            result.calendar_name or "unnamed calendar",
            len(result.records),
            result.skipped_blocks,
            result.skipped_lines,
            len(result.rrule_table),
        )
        return result

    def build_rrule_table(self, text: str) -> dict[str, str]:
        """Map UIDs and their logical ids to the RRULE of the block carrying them.

        This pass runs over the whole text independently of the line scan, so an
        instance block without its own RRULE can inherit the rule declared on a
        sibling block of the same publication. The first block seen wins. Only lines
        directly inside a VEVENT count; VTIMEZONE and VALARM rules are ignored.
        """
        table: dict[str, str] = {}
        uid: Optional[str] = None
        rule: Optional[str] = None
        in_event = False
        nested_depth = 0

        for raw_line in self._unfold(text):
            line = raw_line.strip()
            upper = line.upper()
            if upper.startswith("BEGIN:"):
                if upper[len("BEGIN:") :].strip() == "VEVENT":
                    in_event, nested_depth, uid, rule = True, 0, None, None
                elif in_event:
                    nested_depth += 1
                continue
            if not in_event:
                continue
            if upper.startswith("END:"):
                if nested_depth:
                    nested_depth -= 1
                elif upper[len("END:") :].strip() == "VEVENT":
                    self._record_rule(table, uid, rule)
                    in_event = False
                continue
            if nested_depth:
                continue

            uid_match = _UID_LINE_RE.match(line)
            if uid_match:
                uid = uid if uid is not None else uid_match.group(1).strip()
                continue
            rrule_match = _RRULE_LINE_RE.match(line)
            if rrule_match and rule is None:
                rule = rrule_match.group(1).strip()

        logger.debug("Found %d recurring rule keys in raw ICS data", len(table))
        return table

    @staticmethod
    def _record_rule(table: dict[str, str], uid: Optional[str], rule: Optional[str]) -> None:
        if not uid or not rule:
            return
        event_uid = EventUid.parse(uid)
        table.setdefault(event_uid.raw, rule)
        table.setdefault(event_uid.logical_id, rule)

    def _decode(self, raw_text: Union[str, bytes]) -> str:
        if isinstance(raw_text, bytes):
            try:
                return raw_text.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise MalformedInputError(f"Calendar payload is not valid UTF-8: {e}") from e
        if isinstance(raw_text, str):
            return raw_text.lstrip("\ufeff")
        raise MalformedInputError(
            f"Calendar payload must be str or bytes, got {type(raw_text).__name__}"
        )

    def _unfold(self, text: str) -> list[str]:
        try:
            return [str(line) for line in Contentlines.from_ical(text)]
        except ValueError as e:
            raise MalformedInputError(f"Calendar payload could not be split into lines: {e}") from e

    def _apply_property(self, builder: _BlockBuilder, name: str, params: Any, value: str) -> None:
        """Store one property on the block; raises ValueError for unusable values."""
        kind = PropertyKind.from_name(name)
        fields = builder.fields
        value = value.strip()

        if kind in (PropertyKind.DTSTART, PropertyKind.DTEND):
            tz_name = self._datetime_parser.extract_timezone(params, value)
            info = LiteDateTimeInfo(
                date_time=self._datetime_parser.parse_ics_date(value, tz_name),
                time_zone=tz_name,
            )
            fields["start" if kind is PropertyKind.DTSTART else "end"] = info
        elif kind is PropertyKind.UID:
            if not value:
                raise ValueError("empty UID")
            fields["uid"] = EventUid.parse(value)
        elif kind is PropertyKind.DEADLINE_OFFSET:
            offset = int(value)
            if offset < 0:
                raise ValueError(f"negative deadline offset {offset}")
            fields["deadline_offset"] = offset
        elif kind in (PropertyKind.CREATED, PropertyKind.LAST_MODIFIED):
            key = "created" if kind is PropertyKind.CREATED else "last_modified"
            fields[key] = self._datetime_parser.parse_utc_timestamp(value)
        elif kind is PropertyKind.OTHER:
            builder.other_properties[name] = value
        else:
            # SUMMARY, DESCRIPTION, LOCATION, STATUS, RRULE, CATEGORIES
            fields[kind.name.lower()] = value

    def _finish_block(self, result: LiteICSParseResult, builder: _BlockBuilder) -> None:
        try:
            record = builder.build()
        except ValueError as e:
            self._skip_block(result, f"VEVENT block failed validation: {e}")
            return
        if record is None:
            self._skip_block(result, "VEVENT block without UID or usable DTSTART")
            return
        result.records.append(record)

    def _skip_block(self, result: LiteICSParseResult, reason: str) -> None:
        result.skipped_blocks += 1
        result.warnings.append(reason)
        logger.warning("Skipping VEVENT block: %s", reason)
