"""Data models for publication submission calendars - pubcal_lite."""

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer

# Separates the publication key from the instance suffix inside a UID,
# e.g. "5409_Adpay--69bec25c-98bb-406e-b4eb-5b17e756cfb0"
UID_DELIMITER = "--"

DEFAULT_DEADLINE_OFFSET_DAYS = 2
UNTITLED_EVENT = "Untitled Event"

# (logical id, weekday index, "H:MM") for recurring slots, (raw uid, UTC start) for one-time events
DedupKey = Union[tuple[str, int, str], tuple[str, datetime]]


class PropertyKind(str, Enum):
    """Content-line properties the parser understands."""

    DTSTART = "DTSTART"
    DTEND = "DTEND"
    SUMMARY = "SUMMARY"
    DESCRIPTION = "DESCRIPTION"
    LOCATION = "LOCATION"
    UID = "UID"
    STATUS = "STATUS"
    RRULE = "RRULE"
    CATEGORIES = "CATEGORIES"
    CREATED = "CREATED"
    LAST_MODIFIED = "LAST-MODIFIED"
    DEADLINE_OFFSET = "X-PUB-DEADLINE-OFFSET"
    OTHER = "OTHER"

    @classmethod
    def from_name(cls, name: str) -> "PropertyKind":
        """Map a property name (any case) to its kind; unknown names map to OTHER."""
        try:
            kind = cls(name.strip().upper())
        except ValueError:
            return cls.OTHER
        return kind


class Weekday(str, Enum):
    """RFC 5545 weekday codes, numbered Monday=0 like ``datetime.weekday()``."""

    MO = "MO"
    TU = "TU"
    WE = "WE"
    TH = "TH"
    FR = "FR"
    SA = "SA"
    SU = "SU"

    @property
    def number(self) -> int:
        return _WEEKDAY_ORDER.index(self)

    @classmethod
    def from_number(cls, number: int) -> "Weekday":
        return _WEEKDAY_ORDER[number % 7]

    @classmethod
    def from_code(cls, code: str) -> Optional["Weekday"]:
        """Return the weekday for a two-letter code, or None if it is not one."""
        try:
            return cls(code.strip().upper())
        except ValueError:
            return None


_WEEKDAY_ORDER = list(Weekday)


class EventUid(BaseModel):
    """UID split once into its publication key and per-instance suffix."""

    logical_id: str
    instance_suffix: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, raw: str) -> "EventUid":
        """Split a raw UID on the first reserved delimiter.

        Examples:
            >>> EventUid.parse("5409_Adpay--69bec25c").logical_id
            '5409_Adpay'
            >>> EventUid.parse("plain-uid").instance_suffix is None
            True
        """
        raw = raw.strip()
        logical_id, sep, suffix = raw.partition(UID_DELIMITER)
        if not sep:
            return cls(logical_id=raw)
        return cls(logical_id=logical_id, instance_suffix=suffix)

    @property
    def raw(self) -> str:
        if self.instance_suffix is None:
            return self.logical_id
        return f"{self.logical_id}{UID_DELIMITER}{self.instance_suffix}"

    def __str__(self) -> str:
        return self.raw


class LiteDateTimeInfo(BaseModel):
    """Date and time information for calendar events."""

    date_time: datetime = Field(..., description="Timezone-aware date and time")
    time_zone: str = Field(..., description="IANA time zone")

    model_config = ConfigDict(frozen=True)

    @field_serializer("date_time")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime to ISO format."""
        return dt.isoformat()


class RawEventRecord(BaseModel):
    """Fields collected from one VEVENT block before resolution."""

    uid: EventUid
    summary: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start: LiteDateTimeInfo
    end: Optional[LiteDateTimeInfo] = None
    rrule: Optional[str] = None
    categories: Optional[str] = None
    deadline_offset: Optional[int] = Field(
        default=None, description="Days between run date and submission deadline; None if absent"
    )
    status: Optional[str] = None
    created: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    other_properties: dict[str, str] = Field(
        default_factory=dict, description="Unrecognised properties, kept verbatim"
    )


class ResolvedEvent(BaseModel):
    """One weekly slot (or one-time event) of a publication's submission calendar."""

    source_id: str = Field(..., description="Logical publication id (UID before '--')")
    uid: str = Field(..., description="Raw UID of the first record that produced this entry")
    summary: str = UNTITLED_EVENT
    description: str = ""
    location: Optional[str] = None
    start: LiteDateTimeInfo
    end: LiteDateTimeInfo
    weekday: Optional[Weekday] = Field(
        default=None, description="Single weekday descriptor; None for one-time events"
    )
    is_recurring: bool = False
    deadline_offset: int = Field(default=DEFAULT_DEADLINE_OFFSET_DAYS, ge=0)
    source_label: str = ""
    status: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def recurrence(self) -> Optional[str]:
        """Single-weekday RRULE, e.g. ``FREQ=WEEKLY;BYDAY=MO``."""
        if self.weekday is None:
            return None
        return f"FREQ=WEEKLY;BYDAY={self.weekday.value}"


class ProjectedOccurrence(BaseModel):
    """A concrete upcoming run date with its submission deadline."""

    source_id: str
    run_at: datetime
    deadline_at: datetime
    time_zone: str
    tz_abbreviation: str
    deadline_offset: int

    model_config = ConfigDict(frozen=True)

    @field_serializer("run_at", "deadline_at")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime fields to ISO format."""
        return dt.isoformat()


class LiteICSParseResult(BaseModel):
    """Result of one parse pass over a calendar."""

    records: list[RawEventRecord] = Field(default_factory=list)
    rrule_table: dict[str, str] = Field(
        default_factory=dict, description="UID and logical id -> RRULE found anywhere in the file"
    )
    source_label: str = ""
    calendar_name: Optional[str] = None

    # Parse statistics
    total_blocks: int = 0
    skipped_blocks: int = 0
    skipped_lines: int = 0
    warnings: list[str] = Field(default_factory=list)
