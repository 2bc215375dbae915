"""pubcal_lite.core.config_loader

Lightweight config loader for pubcal_lite.

- Reads YAML (PyYAML ``safe_load``); JSON files load too since JSON is a YAML subset.
- Exposes a typed dataclass `Config` and a `load_config()` helper that accepts
  an optional path override.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .timezone_utils import DEFAULT_EVENT_TIMEZONE, normalize_timezone_name

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR_BASE_URL = "https://s3.amazonaws.com/obituary.datastore/prod/static/calendar"
DEFAULT_CONFIG_PATH = Path("pubcal_lite") / "config.yaml"


@dataclass
class Config:
    """Typed configuration for pubcal_lite.

    Fields:
        calendar_base_url: base URL under which publisher calendars live as `<slug>.ics`
        cache_ttl_seconds: lifetime of a parsed calendar in the cache (>= 60)
        default_timezone: zone for ICS times with neither TZID nor trailing Z
        default_deadline_offset_days: submission lead time when X-PUB-DEADLINE-OFFSET is absent
        display_hour: hour of day used for projected run timestamps (0..23)
        projection_horizon_days: how far ahead the projector walks before giving up (>= 7)
        default_occurrence_count: run dates shown when the caller does not ask for a count
        strict_timezones: raise on conflicting zones for one source instead of first-wins
        request_timeout: HTTP timeout in seconds for ICS downloads
        max_retries: retries for network errors during download
        retry_backoff_factor: base of the exponential retry backoff
        log_level: logging level name
    """

    calendar_base_url: str = DEFAULT_CALENDAR_BASE_URL
    cache_ttl_seconds: int = 86400
    default_timezone: str = DEFAULT_EVENT_TIMEZONE
    default_deadline_offset_days: int = 2
    display_hour: int = 12
    projection_horizon_days: int = 366
    default_occurrence_count: int = 10
    strict_timezones: bool = True
    request_timeout: int = 10
    max_retries: int = 2
    retry_backoff_factor: float = 1.5
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int/float, bounded fields are clamped, and
        an unknown default timezone falls back to America/New_York. Every coercion is
        logged as a warning.
        """
        if data is None:
            data = {}

        def _coerce_int(key: str, default: int) -> int:
            raw = data.get(key, default)
            try:
                return int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default

        def _coerce_float(key: str, default: float) -> float:
            raw = data.get(key, default)
            try:
                return float(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not a number; using default %s", key, raw, default)
                return default

        def _coerce_bool(key: str, default: bool) -> bool:
            raw = data.get(key, default)
            if isinstance(raw, bool):
                return raw
            if isinstance(raw, str):
                return raw.strip().lower() in ("1", "true", "yes", "on")
            return bool(raw)

        ttl = _coerce_int("cache_ttl_seconds", 86400)
        if ttl < 60:
            logger.warning("cache_ttl_seconds %d below minimum; coercing to 60", ttl)
            ttl = 60

        display_hour = _coerce_int("display_hour", 12)
        if not 0 <= display_hour <= 23:
            logger.warning("display_hour %d outside 0..23; coercing to 12", display_hour)
            display_hour = 12

        horizon = _coerce_int("projection_horizon_days", 366)
        if horizon < 7:
            logger.warning("projection_horizon_days %d below minimum; coercing to 7", horizon)
            horizon = 7

        offset = _coerce_int("default_deadline_offset_days", 2)
        if offset < 0:
            logger.warning("default_deadline_offset_days %d is negative; coercing to 2", offset)
            offset = 2

        tz_raw = data.get("default_timezone", DEFAULT_EVENT_TIMEZONE)
        default_timezone = normalize_timezone_name(str(tz_raw)) if tz_raw else None
        if default_timezone is None:
            logger.warning(
                "default_timezone %r is not a known zone; using %s", tz_raw, DEFAULT_EVENT_TIMEZONE
            )
            default_timezone = DEFAULT_EVENT_TIMEZONE

        base_url = str(data.get("calendar_base_url") or DEFAULT_CALENDAR_BASE_URL).rstrip("/")

        log_level = data.get("log_level", "INFO")
        log_level = str(log_level).upper() if log_level is not None else "INFO"

        return cls(
            calendar_base_url=base_url,
            cache_ttl_seconds=ttl,
            default_timezone=default_timezone,
            default_deadline_offset_days=offset,
            display_hour=display_hour,
            projection_horizon_days=horizon,
            default_occurrence_count=max(1, _coerce_int("default_occurrence_count", 10)),
            strict_timezones=_coerce_bool("strict_timezones", True),
            request_timeout=max(1, _coerce_int("request_timeout", 10)),
            max_retries=max(0, _coerce_int("max_retries", 2)),
            retry_backoff_factor=_coerce_float("retry_backoff_factor", 1.5),
            log_level=log_level,
        )


def load_config(path: str | None = None) -> Config:
    """Load configuration from a YAML/JSON file and return a Config instance.

    Args:
        path: Optional path to the config file. If not provided the default is
              ./pubcal_lite/config.yaml (relative to current working dir).

    Returns:
        Config dataclass instance with values from file (or defaults).

    Behavior:
    - If file is missing: returns Config() with defaults.
    - If file exists but top-level is not a mapping: raises ValueError.
    """
    p = Path(path) if path else Path.cwd() / DEFAULT_CONFIG_PATH
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        return Config()

    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
    cfg = Config.from_dict(raw)
    logger.info("Loaded configuration from %s", p)
    logger.debug("Configuration values: %s", cfg)
    return cfg
