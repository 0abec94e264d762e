"""
Pydantic models for school configuration and lesson entries.

Wire format is the backend's camelCase JSON; Python attributes are
snake_case. Both spellings are accepted when validating.

Time conventions:
- Clock times are "HH:MM" strings (24-hour); the backend may send "HH:MM:SS"
- Days are 1-5 (Monday-Friday) locally; break days are 0-based on the wire
"""

from __future__ import annotations

import re
import itertools
from enum import Enum, IntEnum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# Constants and Enums
# =============================================================================

class Day(IntEnum):
    """Day of week: 1=Monday through 5=Friday."""
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5


class BreakType(str, Enum):
    """Kind of break between periods."""
    SHORT_BREAK = "short_break"
    LUNCH = "lunch"
    ASSEMBLY = "assembly"


SCHOOL_DAYS: tuple[int, ...] = tuple(int(d) for d in Day)
DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

DayOfWeek = Annotated[int, Field(ge=1, le=5, description="Day of week (1=Monday, 5=Friday)")]

PENDING_PREFIX = "pending-"
_pending_ids = itertools.count(1)

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


# =============================================================================
# Helper Functions
# =============================================================================

def is_well_formed_id(value: Optional[str]) -> bool:
    """Whether `value` looks like a backend-issued UUID."""
    return bool(value) and bool(_UUID_RE.match(value))


def normalize_time(time_str: str) -> str:
    """Normalize "H:MM" or "HH:MM:SS" to "HH:MM"."""
    match = _TIME_RE.match(time_str.strip())
    if not match:
        raise ValueError(f"invalid time '{time_str}', expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"invalid time '{time_str}', out of range")
    return f"{hours:02d}:{minutes:02d}"


def time_to_minutes(time_str: str) -> int:
    """Convert HH:MM format to minutes from midnight."""
    h, m = map(int, normalize_time(time_str).split(":"))
    return h * 60 + m


def minutes_to_time(minutes: int) -> str:
    """Convert minutes from midnight to HH:MM format, wrapping at midnight."""
    h, m = divmod(minutes % (24 * 60), 60)
    return f"{h:02d}:{m:02d}"


def format_time_12h(time_str: str) -> str:
    """Format "13:05" as "1:05 PM"."""
    h, m = map(int, normalize_time(time_str).split(":"))
    period = "PM" if h >= 12 else "AM"
    return f"{h % 12 or 12}:{m:02d} {period}"


def day_name(day: int) -> str:
    """Get day name from a 1-based index."""
    return DAY_NAMES[day - 1] if 1 <= day <= len(DAY_NAMES) else f"Day {day}"


# =============================================================================
# Base Model
# =============================================================================

class WireModel(BaseModel):
    """Base for models exchanged with the backend."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize using camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# School Configuration
# =============================================================================

class Level(WireModel):
    """Curriculum level (e.g. 'Upper Primary')."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)


class Grade(WireModel):
    """Grade within a level, optionally split into streams."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(default="", description="Display name, e.g. 'Grade 7'")
    level_id: str = Field(min_length=1)
    stream_ids: tuple[str, ...] = Field(default=())
    short_name: Optional[str] = None

    def __str__(self) -> str:
        return self.name or self.id


class Stream(WireModel):
    """Stream (parallel class) of a grade, e.g. 'Grade 7 East'."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    grade_id: str = Field(min_length=1)


class Subject(WireModel):
    """Subject offered at a curriculum level."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    level_id: str = Field(min_length=1)
    color: Optional[str] = Field(default=None, description="Display colour tag")

    def __str__(self) -> str:
        return self.name


class Teacher(WireModel):
    """Teacher and the grades they are qualified to teach."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    email: Optional[str] = None
    grade_levels: frozenset[str] = Field(default=frozenset(), description="Qualified grade names")
    grade_level_ids: frozenset[str] = Field(default=frozenset(), description="Qualified grade ids")
    subjects: tuple[str, ...] = Field(default=(), description="Subject names")

    def __str__(self) -> str:
        return self.name


class Term(WireModel):
    """Academic term that timetable entries belong to."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    start_date: Optional[str] = None
    end_date: Optional[str] = None


# =============================================================================
# Time Structure
# =============================================================================

class TimeSlot(WireModel):
    """A numbered teaching period."""

    id: str = Field(min_length=1)
    period_number: int = Field(ge=1, description="1-based period number")
    start_time: str
    end_time: str
    display_time: str = ""
    day_of_week: Optional[int] = Field(default=None, ge=1, le=7, description="None = every day")
    color: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return normalize_time(v)

    @model_validator(mode="after")
    def validate_time_range(self) -> "TimeSlot":
        """Ensure start is before end and fill in the display time."""
        if time_to_minutes(self.start_time) >= time_to_minutes(self.end_time):
            raise ValueError(
                f"start_time ({self.start_time}) must be before end_time ({self.end_time})"
            )
        if not self.display_time:
            self.display_time = f"{format_time_12h(self.start_time)} - {format_time_12h(self.end_time)}"
        return self

    @property
    def duration_minutes(self) -> int:
        return time_to_minutes(self.end_time) - time_to_minutes(self.start_time)

    def applies_to(self, day: int) -> bool:
        """Whether this slot exists on `day`."""
        return self.day_of_week is None or self.day_of_week == day

    def __str__(self) -> str:
        return f"Period {self.period_number} ({self.display_time})"


class Break(WireModel):
    """Break placed after a period on one day."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    type: BreakType = BreakType.SHORT_BREAK
    day_of_week: DayOfWeek
    after_period: int = Field(ge=0)
    duration_minutes: int = Field(ge=0, le=240)

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "Break":
        """Build from backend JSON, where days start at 0 and types are upper case."""
        data = dict(data)
        data["dayOfWeek"] = int(data.get("dayOfWeek") or 0) + 1
        raw_type = str(data.get("type") or "short_break").lower()
        data["type"] = raw_type if raw_type in BreakType._value2member_map_ else BreakType.SHORT_BREAK
        return cls.model_validate(data)

    def to_wire(self) -> dict[str, Any]:
        data = super().to_wire()
        data["dayOfWeek"] = self.day_of_week - 1
        data["type"] = self.type.value.upper()
        return data


# =============================================================================
# Lesson Entries
# =============================================================================

class LessonEntryInput(WireModel):
    """A proposed lesson in a (term, grade, day, period) cell."""
    model_config = ConfigDict(frozen=True)

    term_id: str = Field(default="")
    grade_id: str = Field(default="")
    stream_id: Optional[str] = None
    subject_id: str = Field(default="")
    teacher_id: str = Field(default="")
    time_slot_id: str = Field(default="")
    day_of_week: int = Field(default=1)
    room_number: Optional[str] = None

    @field_validator("room_number")
    @classmethod
    def _blank_room_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @property
    def slot_key(self) -> tuple[str, int, str]:
        """(term, day, time slot): the coordinates a conflict is checked in."""
        return (self.term_id, self.day_of_week, self.time_slot_id)

    def missing_fields(self) -> list[str]:
        """Required fields that are empty."""
        missing = []
        for name in ("term_id", "grade_id", "time_slot_id", "subject_id", "teacher_id"):
            if not getattr(self, name):
                missing.append(name)
        return missing


class LessonEntry(LessonEntryInput):
    """A lesson assignment, persisted or pending."""

    id: str = Field(min_length=1)

    @property
    def is_pending(self) -> bool:
        """True until the backend has assigned an authoritative id."""
        return self.id.startswith(PENDING_PREFIX)

    @classmethod
    def from_input(cls, entry_id: str, data: LessonEntryInput) -> "LessonEntry":
        return cls(id=entry_id, **data.model_dump())

    @classmethod
    def pending(cls, data: LessonEntryInput) -> "LessonEntry":
        """Wrap an input with a local placeholder id."""
        return cls.from_input(f"{PENDING_PREFIX}{next(_pending_ids)}", data)

    def to_input(self) -> LessonEntryInput:
        return LessonEntryInput(**self.model_dump(exclude={"id"}))

    def __str__(self) -> str:
        return (
            f"Entry {self.id}: grade {self.grade_id}, {day_name(self.day_of_week)} "
            f"slot {self.time_slot_id}, teacher {self.teacher_id}"
        )


# =============================================================================
# Snapshot
# =============================================================================

class SchoolSnapshot(WireModel):
    """
    The school configuration the scheduling core works against.

    Loaded once from the backend (or a JSON file) and replaced wholesale
    when the configuration changes.
    """

    levels: list[Level] = Field(default_factory=list)
    grades: list[Grade] = Field(default_factory=list)
    streams: list[Stream] = Field(default_factory=list)
    subjects: list[Subject] = Field(default_factory=list)
    teachers: list[Teacher] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_no_duplicate_ids(self) -> "SchoolSnapshot":
        """Ensure no duplicate IDs within each entity type."""
        errors: list[str] = []

        def check_duplicates(items: list, entity_name: str) -> None:
            seen: set[str] = set()
            for item in items:
                if item.id in seen:
                    errors.append(f"Duplicate {entity_name} ID: '{item.id}'")
                seen.add(item.id)

        check_duplicates(self.levels, "level")
        check_duplicates(self.grades, "grade")
        check_duplicates(self.streams, "stream")
        check_duplicates(self.subjects, "subject")
        check_duplicates(self.teachers, "teacher")

        if errors:
            raise ValueError("Duplicate ID validation failed:\n" + "\n".join(f"  - {e}" for e in errors))
        return self

    @model_validator(mode="after")
    def validate_references(self) -> "SchoolSnapshot":
        """Validate cross-entity references."""
        errors: list[str] = []
        level_ids = {l.id for l in self.levels}
        grade_ids = {g.id for g in self.grades}
        stream_ids = {s.id for s in self.streams}

        # Levels are optional in hand-written snapshots
        if level_ids:
            for grade in self.grades:
                if grade.level_id not in level_ids:
                    errors.append(f"Grade {grade.id}: unknown level_id '{grade.level_id}'")
            for subject in self.subjects:
                if subject.level_id not in level_ids:
                    errors.append(f"Subject {subject.id}: unknown level_id '{subject.level_id}'")

        for stream in self.streams:
            if stream.grade_id not in grade_ids:
                errors.append(f"Stream {stream.id}: unknown grade_id '{stream.grade_id}'")

        for grade in self.grades:
            for stream_id in grade.stream_ids:
                if stream_id not in stream_ids:
                    errors.append(f"Grade {grade.id}: unknown stream '{stream_id}'")

        if errors:
            raise ValueError("Reference validation failed:\n" + "\n".join(f"  - {e}" for e in errors))
        return self

    def summary(self) -> dict[str, Any]:
        return {
            "levels": len(self.levels),
            "grades": len(self.grades),
            "streams": len(self.streams),
            "subjects": len(self.subjects),
            "teachers": len(self.teachers),
        }


# =============================================================================
# Week Templates
# =============================================================================

class WeekTemplateInput(WireModel):
    """Request to generate a whole-week period structure for some grades."""

    name: str = ""
    term_id: str = ""
    start_time: str = "08:00"
    period_count: int = 8
    period_duration: int = 40
    number_of_days: int = 5
    grade_level_ids: list[str] = Field(default_factory=list)
    stream_ids: list[str] = Field(default_factory=list)


class TemplatePeriod(WireModel):
    id: str
    period_number: int
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return normalize_time(v)


class DayTemplate(WireModel):
    id: str
    day_of_week: int
    start_time: str
    period_count: int
    periods: list[TemplatePeriod] = Field(default_factory=list)

    @field_validator("start_time")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return normalize_time(v)


class WeekTemplate(WireModel):
    """Week template as returned by the backend."""

    id: str
    name: str
    number_of_days: int
    term_id: Optional[str] = None
    day_templates: list[DayTemplate] = Field(default_factory=list)
