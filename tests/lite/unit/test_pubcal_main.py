"""Tests for the pubcal_lite command-line entry."""

from unittest.mock import AsyncMock, patch

import pytest

from pubcal_lite.__main__ import _create_parser, main

pytestmark = pytest.mark.unit

NOW = "2025-09-24T16:00:00Z"


@pytest.fixture
def calendar_file(tmp_path, weekly_calendar_text):
    path = tmp_path / "spokesman-review.ics"
    path.write_text(weekly_calendar_text, encoding="utf-8")
    return path


@pytest.fixture
def no_config(tmp_path) -> list[str]:
    return ["--config", str(tmp_path / "absent.yaml")]


def run_main(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


def test_create_parser_when_source_id_missing_then_usage_error() -> None:
    with pytest.raises(SystemExit) as exc_info:
        _create_parser().parse_args(["calendar.ics"])

    assert exc_info.value.code == 2


def test_main_when_local_file_then_schedule_printed(calendar_file, no_config, capsys) -> None:
    code = run_main(
        [str(calendar_file), "--source-id", "5409_Adpay", "--count", "2", "--now", NOW, *no_config]
    )

    out = capsys.readouterr().out.splitlines()
    assert code == 0
    assert out == [
        "Spokesman Review",
        "Mon 9/29/25 - Submit by 12:00 PM EDT on Sat 9/27/25",
        "Wed 10/1/25 - Submit by 12:00 PM EDT on Mon 9/29/25",
    ]


def test_main_when_source_has_only_one_time_events_then_listed(calendar_file, no_config, capsys) -> None:
    code = run_main([str(calendar_file), "--source-id", "9999_Special", "--now", NOW, *no_config])

    out = capsys.readouterr().out.splitlines()
    assert code == 0
    assert out == [
        "Spokesman Review",
        "No upcoming run dates",
        "",
        "One-time events:",
        "Fri 10/10/25 - Special Section",
    ]


def test_main_when_source_unknown_then_message_printed(calendar_file, no_config, capsys) -> None:
    code = run_main([str(calendar_file), "--source-id", "0000_None", "--now", NOW, *no_config])

    assert code == 0
    assert "No events found for source 0000_None" in capsys.readouterr().out


def test_main_when_file_missing_then_exit_code_one(tmp_path, no_config, capsys) -> None:
    code = run_main([str(tmp_path / "missing.ics"), "--source-id", "P1", "--now", NOW, *no_config])

    assert code == 1
    assert "Error" in capsys.readouterr().err


def test_main_when_timezones_conflict_then_exit_code_one(
    tmp_path, make_vevent, make_calendar, no_config, capsys
) -> None:
    path = tmp_path / "mixed.ics"
    path.write_text(
        make_calendar(
            make_vevent("P1--a", "20250929T090000", rrule="FREQ=WEEKLY;BYDAY=MO"),
            make_vevent(
                "P1--b", "20250930T090000", tzid="America/Chicago", rrule="FREQ=WEEKLY;BYDAY=TU"
            ),
        ),
        encoding="utf-8",
    )

    code = run_main([str(path), "--source-id", "P1", "--now", NOW, *no_config])

    assert code == 1
    assert "conflicting timezones" in capsys.readouterr().err


def test_main_when_now_invalid_then_usage_error(calendar_file, no_config) -> None:
    assert run_main([str(calendar_file), "--source-id", "P1", "--now", "someday", *no_config]) == 2


def test_main_when_url_source_then_fetched_through_service(weekly_calendar_text, no_config, capsys) -> None:
    fetch = AsyncMock(return_value=weekly_calendar_text)
    with patch("pubcal_lite.services.lite_fetcher.LiteICSFetcher.fetch_ics", new=fetch):
        code = run_main(
            [
                "https://example.com/static/calendar/spokesman-review.ics",
                "--source-id",
                "7777_Other",
                "--count",
                "1",
                "--now",
                NOW,
                *no_config,
            ]
        )

    out = capsys.readouterr().out.splitlines()
    assert code == 0
    fetch.assert_awaited_once()
    # Friday 9/26 is dropped: with a 3 day offset its deadline was Tuesday
    assert out[1] == "Fri 10/3/25 - Submit by 12:00 PM EDT on Tues 9/30/25"
