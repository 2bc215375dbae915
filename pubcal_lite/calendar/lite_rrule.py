"""RRULE helpers for pubcal_lite.

Submission calendars only use weekly rules; the resolver needs the BYDAY list out of
them and nothing else, so this module parses rules into their parts instead of
expanding them.
"""

import logging
import re
from typing import Any

from ..core.exceptions import LiteRRuleParseError
from .lite_models import Weekday

logger = logging.getLogger(__name__)

# Ordinal prefixes such as "1MO" or "-1FR" are legal in BYDAY
_BYDAY_ENTRY_RE = re.compile(r"^[+-]?\d{0,2}([A-Za-z]{2})$")


def parse_rrule_string(rrule_string: str) -> dict[str, Any]:
    """Parse RRULE string into components.

    Args:
        rrule_string: RRULE string (e.g. "FREQ=WEEKLY;INTERVAL=1;BYDAY=MO"), with or
            without the leading "RRULE:" name

    Returns:
        Dictionary with parsed RRULE components; keys are lower-case

    Raises:
        LiteRRuleParseError: If RRULE string is empty or lacks FREQ
    """
    if not rrule_string or not rrule_string.strip():
        raise LiteRRuleParseError("Empty RRULE string")

    text = rrule_string.strip()
    if text.upper().startswith("RRULE:"):
        text = text[len("RRULE:") :]

    rrule_dict: dict[str, Any] = {}
    try:
        for part in text.split(";"):
            if "=" not in part:
                continue
            key, value = part.split("=", 1)
            key = key.strip().lower()
            value = value.strip()

            if key == "freq":
                rrule_dict["freq"] = value.upper()
            elif key in ("interval", "count"):
                rrule_dict[key] = int(value)
            elif key == "byday":
                rrule_dict["byday"] = [day.strip().upper() for day in value.split(",") if day.strip()]
            else:
                rrule_dict[key] = value
    except ValueError as e:
        raise LiteRRuleParseError(f"Invalid RRULE format: {rrule_string}") from e

    if not rrule_dict.get("freq"):
        raise LiteRRuleParseError("RRULE missing required FREQ parameter")

    return rrule_dict


def extract_weekdays(rrule_string: str) -> list[Weekday]:
    """Return the distinct weekdays listed in BYDAY, in rule order.

    Ordinal prefixes are dropped ("2TU" -> TU) and unknown codes are skipped.
    An empty list means BYDAY is absent or lists no known day.

    Raises:
        LiteRRuleParseError: If the rule itself cannot be parsed
    """
    parsed = parse_rrule_string(rrule_string)
    weekdays: list[Weekday] = []
    for entry in parsed.get("byday", []):
        match = _BYDAY_ENTRY_RE.match(entry)
        weekday = Weekday.from_code(match.group(1)) if match else None
        if weekday is None:
            logger.debug("Skipping unknown BYDAY entry %r in %r", entry, rrule_string)
            continue
        if weekday not in weekdays:
            weekdays.append(weekday)
    return weekdays
