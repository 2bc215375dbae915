"""Command-line entry for pubcal_lite.

Prints the upcoming run dates and submission deadlines of one publication, read from
a local ICS file or a calendar URL.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import NoReturn, Optional

from dateutil.parser import isoparse

from . import _init_logging
from .calendar.lite_models import ResolvedEvent
from .calendar.lite_projector import format_run_line, format_short_date, select_source_events
from .core.config_loader import load_config
from .core.exceptions import PubcalError
from .core.lite_logging import configure_lite_logging
from .core.timezone_utils import now_utc
from .services.calendar_service import CalendarService
from .services.lite_fetcher import is_fetchable_url


def _parse_now(value: str) -> datetime:
    try:
        parsed = isoparse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid ISO 8601 timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for pubcal_lite CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="pubcal_lite",
        description="pubcal_lite - next run dates and submission deadlines for a publication",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m pubcal_lite calendar.ics --source-id 5409_Adpay
  python -m pubcal_lite https://example.com/calendar/spokesman-review.ics \\
      --source-id 5409_Adpay --count 4 --now 2025-09-24T12:00:00Z
        """,
    )
    parser.add_argument("source", metavar="SOURCE", help="Path or http(s) URL of an ICS file")
    parser.add_argument(
        "--source-id",
        required=True,
        metavar="ID",
        help="Logical publication id (the UID part before '--')",
    )
    parser.add_argument(
        "--count",
        type=int,
        metavar="N",
        help="Number of run dates to print (default: from config)",
    )
    parser.add_argument("--config", metavar="PATH", help="YAML/JSON config file")
    parser.add_argument(
        "--now",
        type=_parse_now,
        metavar="ISO",
        help="Reference time as ISO 8601 (default: current time or PUBCAL_TEST_TIME)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


async def _load_events(
    service: CalendarService, source: str, now: datetime
) -> list[ResolvedEvent]:
    if is_fetchable_url(source):
        async with service:
            return await service.get_events(source, now=now)
    return service.parse_calendar(Path(source).read_bytes(), source_identifier=source, now=now)


def render_schedule(
    service: CalendarService,
    events: list[ResolvedEvent],
    source_id: str,
    count: int,
    now: datetime,
) -> list[str]:
    """Build the printed lines for one publication.

    Raises:
        AmbiguousTimezoneError: If the publication's slots disagree on timezone in
            strict mode
    """
    source_events = select_source_events(events, source_id)
    if not source_events:
        return [f"No events found for source {source_id}"]

    lines = [source_events[0].source_label or source_id]
    occurrences = service.projector.project(source_events, count, now=now)
    if occurrences:
        lines.extend(format_run_line(occurrence) for occurrence in occurrences)
    else:
        lines.append("No upcoming run dates")

    one_time = sorted(
        (event for event in source_events if not event.is_recurring),
        key=lambda event: event.start.date_time,
    )
    if one_time:
        lines.append("")
        lines.append("One-time events:")
        lines.extend(
            f"{format_short_date(event.start.date_time)} - {event.summary}" for event in one_time
        )
    return lines


def main(argv: Optional[list[str]] = None) -> NoReturn:
    """Run the pubcal_lite CLI; exits 1 on calendar or file errors."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as exc:
        print(f"Error loading config: {exc}", file=sys.stderr)
        sys.exit(1)

    _init_logging(config.log_level)
    configure_lite_logging(debug_mode=args.debug)

    now = args.now or now_utc()
    count = args.count if args.count is not None else config.default_occurrence_count
    service = CalendarService(config)

    try:
        events = asyncio.run(_load_events(service, args.source, now))
        lines = render_schedule(service, events, args.source_id, count, now)
    except (PubcalError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    print("\n".join(lines))
    sys.exit(0)


if __name__ == "__main__":
    main()
