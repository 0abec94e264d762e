"""Shared fixtures: a small school, its time slots and an in-memory backend."""

from __future__ import annotations

import itertools
import json
from pathlib import Path
from typing import Any, Optional

import pytest

from timetabler.data.models import (
    Break,
    DayTemplate,
    Grade,
    LessonEntry,
    LessonEntryInput,
    Level,
    SchoolSnapshot,
    Stream,
    Subject,
    Teacher,
    TemplatePeriod,
    TimeSlot,
    WeekTemplate,
    WeekTemplateInput,
    minutes_to_time,
    time_to_minutes,
)
from timetabler.errors import NotFoundError, RemoteError
from timetabler.grid import TimeGrid
from timetabler.registry import SchoolRegistry


def uid(n: int) -> str:
    """Deterministic UUID-shaped id."""
    return f"00000000-0000-4000-8000-{n:012d}"


TERM = uid(1)
LEVEL = uid(2)
OTHER_LEVEL = uid(3)
GRADE_7 = uid(10)
GRADE_8 = uid(11)
STREAM_EAST = uid(20)
STREAM_WEST = uid(21)
MATH = uid(30)
ENGLISH = uid(31)
ART = uid(32)
MR_SMITH = uid(40)
MS_JONES = uid(41)
MR_BROWN = uid(42)
P1 = uid(50)
P2 = uid(51)
P3 = uid(52)


class InMemoryBackend:
    """
    Backend double that keeps entries in a dict.

    `fail_slots` makes create_entry reject candidates for those time slots,
    the way the real service rejects a write.
    """

    def __init__(
        self,
        snapshot: SchoolSnapshot,
        time_slots: list[TimeSlot],
        breaks: Optional[list[Break]] = None,
        entries: Optional[list[LessonEntry]] = None,
    ):
        self.snapshot = snapshot
        self.time_slots = list(time_slots)
        self.breaks = list(breaks or [])
        self.entries: dict[str, LessonEntry] = {e.id: e for e in entries or []}
        self.fail_slots: set[str] = set()
        self.calls: list[str] = []
        self.closed = False
        self._ids = itertools.count(1000)

    def load_school_snapshot(self) -> SchoolSnapshot:
        self.calls.append("load_school_snapshot")
        return self.snapshot

    def list_time_slots(self) -> list[TimeSlot]:
        self.calls.append("list_time_slots")
        return list(self.time_slots)

    def list_breaks(self) -> list[Break]:
        self.calls.append("list_breaks")
        return list(self.breaks)

    def list_entries(self, term_id: str, grade_id: str) -> list[LessonEntry]:
        self.calls.append("list_entries")
        return [e for e in self.entries.values() if e.term_id == term_id and e.grade_id == grade_id]

    def create_entry(self, data: LessonEntryInput) -> LessonEntry:
        self.calls.append("create_entry")
        if data.time_slot_id in self.fail_slots:
            raise RemoteError("Internal server error", code="INTERNAL_SERVER_ERROR")
        entry = LessonEntry.from_input(uid(next(self._ids)), data)
        self.entries[entry.id] = entry
        return entry

    def update_entry(self, entry_id: str, changes: dict[str, Any]) -> LessonEntry:
        self.calls.append("update_entry")
        if entry_id not in self.entries:
            raise NotFoundError(f"Lesson entry '{entry_id}' not found")
        updated = self.entries[entry_id].model_copy(update=changes)
        self.entries[entry_id] = updated
        return updated

    def delete_entry(self, entry_id: str) -> None:
        self.calls.append("delete_entry")
        if self.entries.pop(entry_id, None) is None:
            raise NotFoundError(f"Lesson entry '{entry_id}' not found")

    def create_week_template(self, data: WeekTemplateInput) -> WeekTemplate:
        self.calls.append("create_week_template")
        start = time_to_minutes(data.start_time)
        periods = [
            TemplatePeriod(
                id=f"period-{n}",
                period_number=n,
                start_time=minutes_to_time(start + (n - 1) * data.period_duration),
                end_time=minutes_to_time(start + n * data.period_duration),
            )
            for n in range(1, data.period_count + 1)
        ]
        return WeekTemplate(
            id=uid(next(self._ids)),
            name=data.name,
            number_of_days=data.number_of_days,
            term_id=data.term_id,
            day_templates=[
                DayTemplate(
                    id=f"day-{d}",
                    day_of_week=d,
                    start_time=data.start_time,
                    period_count=data.period_count,
                    periods=periods,
                )
                for d in range(1, data.number_of_days + 1)
            ],
        )

    def create_time_slots(self, slots: list[TimeSlot]) -> list[TimeSlot]:
        self.calls.append("create_time_slots")
        created = [s.model_copy(update={"id": uid(next(self._ids))}) for s in slots]
        self.time_slots.extend(created)
        return created

    def create_breaks(self, breaks: list[Break]) -> list[Break]:
        self.calls.append("create_breaks")
        created = [b.model_copy(update={"id": uid(next(self._ids))}) for b in breaks]
        self.breaks.extend(created)
        return created

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def snapshot() -> SchoolSnapshot:
    """Two grades at one level; Grade 7 has two streams."""
    return SchoolSnapshot(
        levels=[Level(id=LEVEL, name="Junior Secondary"), Level(id=OTHER_LEVEL, name="Upper Primary")],
        grades=[
            Grade(id=GRADE_8, name="Grade 8", level_id=LEVEL),
            Grade(id=GRADE_7, name="Grade 7", level_id=LEVEL, stream_ids=(STREAM_EAST, STREAM_WEST)),
        ],
        streams=[
            Stream(id=STREAM_EAST, name="East", grade_id=GRADE_7),
            Stream(id=STREAM_WEST, name="West", grade_id=GRADE_7),
        ],
        subjects=[
            Subject(id=MATH, name="Mathematics", level_id=LEVEL),
            Subject(id=ENGLISH, name="English", level_id=LEVEL),
            Subject(id=ART, name="Art", level_id=OTHER_LEVEL),
        ],
        teachers=[
            Teacher(id=MR_SMITH, name="Mr Smith", grade_levels=frozenset({"Grade 7"})),
            Teacher(id=MS_JONES, name="Ms Jones", grade_levels=frozenset({"Grade 7", "Grade 8"})),
            Teacher(id=MR_BROWN, name="Mr Brown", grade_levels=frozenset({"Grade 8"})),
        ],
    )


@pytest.fixture
def time_slots() -> list[TimeSlot]:
    return [
        TimeSlot(id=P1, period_number=1, start_time="08:00", end_time="08:40"),
        TimeSlot(id=P2, period_number=2, start_time="08:40", end_time="09:20"),
        TimeSlot(id=P3, period_number=3, start_time="09:20", end_time="10:00"),
    ]


@pytest.fixture
def registry(snapshot) -> SchoolRegistry:
    return SchoolRegistry(snapshot)


@pytest.fixture
def grid(time_slots) -> TimeGrid:
    return TimeGrid(time_slots)


@pytest.fixture
def backend(snapshot, time_slots) -> InMemoryBackend:
    return InMemoryBackend(snapshot, time_slots)


def make_input(**overrides: Any) -> LessonEntryInput:
    """Grade 7 maths with Mr Smith, Monday period 1, unless overridden."""
    values = {
        "term_id": TERM,
        "grade_id": GRADE_7,
        "subject_id": MATH,
        "teacher_id": MR_SMITH,
        "time_slot_id": P1,
        "day_of_week": 1,
    }
    values.update(overrides)
    return LessonEntryInput(**values)


def make_entry(entry_id: str, **overrides: Any) -> LessonEntry:
    return LessonEntry.from_input(entry_id, make_input(**overrides))


def write_json(path: Path, data: Any) -> Path:
    path.write_text(json.dumps(data))
    return path
