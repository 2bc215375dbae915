"""Fixtures shared by the pubcal_lite unit tests."""

from collections.abc import Generator
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Callable, Optional

import pytest

from pubcal_lite.core.timezone_utils import TEST_TIME_ENV_VAR


@pytest.fixture
def simple_settings() -> SimpleNamespace:
    """Lightweight settings object for fetcher tests.

    Fields:
      - request_timeout: HTTP timeout in seconds
      - max_retries: retry attempts for network errors
      - retry_backoff_factor: base of the exponential backoff
    """
    return SimpleNamespace(request_timeout=5, max_retries=2, retry_backoff_factor=1.5)


@pytest.fixture
def fixed_now() -> datetime:
    """Wednesday 2025-09-24 12:00 in New York (EDT)."""
    return datetime(2025, 9, 24, 16, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Keep PUBCAL_TEST_TIME from leaking between tests."""
    monkeypatch.delenv(TEST_TIME_ENV_VAR, raising=False)
    monkeypatch.delenv("PUBCAL_DEBUG", raising=False)
    monkeypatch.delenv("PUBCAL_LOG_LEVEL", raising=False)
    yield
    monkeypatch.delenv(TEST_TIME_ENV_VAR, raising=False)


def _vevent(
    uid: str,
    dtstart: str,
    tzid: Optional[str] = "America/New_York",
    dtend: Optional[str] = None,
    rrule: Optional[str] = None,
    summary: Optional[str] = "Obituary Deadline",
    categories: Optional[str] = None,
    offset: Optional[str] = None,
    extra: Optional[list[str]] = None,
) -> str:
    tz_param = f";TZID={tzid}" if tzid else ""
    lines = ["BEGIN:VEVENT", f"UID:{uid}", f"DTSTART{tz_param}:{dtstart}"]
    if dtend:
        lines.append(f"DTEND{tz_param}:{dtend}")
    if rrule:
        lines.append(f"RRULE:{rrule}")
    if summary is not None:
        lines.append(f"SUMMARY:{summary}")
    if categories:
        lines.append(f"CATEGORIES:{categories}")
    if offset is not None:
        lines.append(f"X-PUB-DEADLINE-OFFSET:{offset}")
    lines.extend(extra or [])
    lines.append("END:VEVENT")
    return "\r\n".join(lines)


def _calendar(*blocks: str, calname: Optional[str] = None) -> str:
    lines = ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//pubcal tests//EN"]
    if calname:
        lines.append(f"X-WR-CALNAME:{calname}")
    lines.extend(blocks)
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


@pytest.fixture
def make_vevent() -> Callable[..., str]:
    """Builder for one VEVENT block (CRLF line endings)."""
    return _vevent


@pytest.fixture
def make_calendar() -> Callable[..., str]:
    """Builder wrapping VEVENT blocks into a VCALENDAR."""
    return _calendar


NEW_YORK_VTIMEZONE = "\r\n".join(
    [
        "BEGIN:VTIMEZONE",
        "TZID:America/New_York",
        "BEGIN:DAYLIGHT",
        "TZOFFSETFROM:-0500",
        "TZOFFSETTO:-0400",
        "DTSTART:20070311T020000",
        "RRULE:FREQ=YEARLY;BYMONTH=3;BYDAY=2SU",
        "TZNAME:EDT",
        "END:DAYLIGHT",
        "BEGIN:STANDARD",
        "TZOFFSETFROM:-0400",
        "TZOFFSETTO:-0500",
        "DTSTART:20071104T020000",
        "RRULE:FREQ=YEARLY;BYMONTH=11;BYDAY=1SU",
        "TZNAME:EST",
        "END:STANDARD",
        "END:VTIMEZONE",
    ]
)


@pytest.fixture
def new_york_vtimezone() -> str:
    """America/New_York VTIMEZONE component whose sub-components carry yearly RRULEs."""
    return NEW_YORK_VTIMEZONE


@pytest.fixture
def weekly_calendar_text() -> str:
    """Two-publication calendar with a shared-rule instance and a one-time event."""
    return _calendar(
        _vevent(
            "5409_Adpay--aaa",
            "20250901T090000",
            dtend="20250901T100000",
            rrule="FREQ=WEEKLY;BYDAY=MO,WE",
            categories="spokesman-review",
        ),
        _vevent("5409_Adpay--bbb", "20250903T090000", summary="Instance without rule"),
        _vevent(
            "7777_Other--ccc",
            "20250905T080000",
            rrule="FREQ=WEEKLY;BYDAY=FR",
            offset="3",
        ),
        _vevent("9999_Special--ddd", "20251010T150000", summary="Special Section"),
        _vevent("9999_Special--eee", "20250910T150000", summary="Already happened"),
        calname="Publisher Submissions",
    )
