"""Unit tests for pubcal_lite.core.config_loader."""

import json

import pytest

from pubcal_lite.core.config_loader import DEFAULT_CALENDAR_BASE_URL, Config, load_config

pytestmark = pytest.mark.unit


def test_load_config_when_file_missing_then_defaults(tmp_path) -> None:
    cfg = load_config(str(tmp_path / "missing.yaml"))

    assert cfg == Config()
    assert cfg.cache_ttl_seconds == 86400
    assert cfg.default_timezone == "America/New_York"
    assert cfg.calendar_base_url == DEFAULT_CALENDAR_BASE_URL


def test_load_config_when_yaml_values_then_coerced(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "cache_ttl_seconds: '3600'\n"
        "default_timezone: Central Standard Time\n"
        "strict_timezones: 'no'\n"
        "calendar_base_url: https://cdn.example.com/cal/\n"
        "log_level: debug\n",
        encoding="utf-8",
    )

    cfg = load_config(str(path))

    assert cfg.cache_ttl_seconds == 3600
    assert cfg.default_timezone == "America/Chicago"
    assert cfg.strict_timezones is False
    assert cfg.calendar_base_url == "https://cdn.example.com/cal"
    assert cfg.log_level == "DEBUG"


def test_load_config_when_json_file_then_loaded(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"display_hour": 9, "max_retries": 0}), encoding="utf-8")

    cfg = load_config(str(path))

    assert cfg.display_hour == 9
    assert cfg.max_retries == 0


def test_load_config_when_top_level_not_mapping_then_value_error(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(str(path))


def test_load_config_when_file_empty_then_defaults(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config(str(path)) == Config()


@pytest.mark.parametrize(
    ("data", "field", "expected"),
    [
        ({"cache_ttl_seconds": 5}, "cache_ttl_seconds", 60),
        ({"display_hour": 30}, "display_hour", 12),
        ({"projection_horizon_days": 1}, "projection_horizon_days", 7),
        ({"default_deadline_offset_days": -3}, "default_deadline_offset_days", 2),
        ({"default_deadline_offset_days": 0}, "default_deadline_offset_days", 0),
        ({"default_occurrence_count": 0}, "default_occurrence_count", 1),
        ({"request_timeout": "abc"}, "request_timeout", 10),
        ({"retry_backoff_factor": "fast"}, "retry_backoff_factor", 1.5),
        ({"default_timezone": "Mars/Olympus"}, "default_timezone", "America/New_York"),
    ],
)
def test_from_dict_when_value_out_of_range_then_clamped(data, field, expected) -> None:
    assert getattr(Config.from_dict(data), field) == expected


def test_from_dict_when_none_then_defaults() -> None:
    assert Config.from_dict(None) == Config()
