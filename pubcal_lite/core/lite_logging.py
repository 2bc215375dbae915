"""
Central logging configuration for pubcal_lite.

Keeps third-party HTTP and iCalendar libraries quiet while leaving pubcal_lite's own
parse and projection diagnostics visible.
"""

import logging
import os
from typing import Optional

NOISY_LOGGERS: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
    "icalendar": logging.INFO,
}

LITE_MODULES = [
    "pubcal_lite",
    "pubcal_lite.calendar.lite_parser",
    "pubcal_lite.calendar.lite_resolver",
    "pubcal_lite.calendar.lite_projector",
    "pubcal_lite.core.calendar_cache",
    "pubcal_lite.services.lite_fetcher",
    "pubcal_lite.services.calendar_service",
]


def configure_lite_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for pubcal_lite.

    Args:
        debug_mode: Whether to enable debug logging for pubcal_lite modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        PUBCAL_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        PUBCAL_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("PUBCAL_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("PUBCAL_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    logging.getLogger().setLevel(root_level)

    logger_config = dict(NOISY_LOGGERS)
    lite_level = logging.DEBUG if final_debug else logging.INFO
    for module in LITE_MODULES:
        logger_config[module] = lite_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        logging.getLogger().info(
            "Debug logging enabled for pubcal_lite modules; third-party debug logs suppressed."
        )


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ["pubcal_lite", *NOISY_LOGGERS]:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
