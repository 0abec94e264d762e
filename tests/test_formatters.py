"""Tests for console formatters."""

from __future__ import annotations

import pytest

from timetabler.bell_schedule import generate_bell_schedule
from timetabler.bulk import BulkResult, BulkState, EntryFailure
from timetabler.data.models import Break
from timetabler.errors import ConflictError, ConflictReason
from timetabler.output.formatters import (
    BellScheduleFormatter,
    BulkResultFormatter,
    GradeGridFormatter,
    TeacherScheduleFormatter,
)

from conftest import ENGLISH, GRADE_7, GRADE_8, MR_SMITH, MS_JONES, P2, P3, TERM, make_entry, make_input, uid


@pytest.fixture
def filled_grid(grid):
    grid.replace([
        make_entry(uid(100), room_number="Lab"),
        make_entry(uid(101), subject_id=ENGLISH, teacher_id=MS_JONES, day_of_week=2, time_slot_id=P2),
        make_entry(uid(102), grade_id=GRADE_8, day_of_week=3, time_slot_id=P3),
    ])
    grid.replace_breaks([Break(id="b1", name="Tea", day_of_week=1, after_period=1, duration_minutes=10)])
    return grid


class TestGradeGridFormatter:
    def test_plain(self, registry, filled_grid):
        text = GradeGridFormatter(registry, filled_grid, use_colors=False).format(TERM, GRADE_7)
        lines = text.splitlines()
        assert lines[0] == "Grade 7 (F1)"
        assert "Mon" in lines[2] and "Fri" in lines[2]
        assert "Mathematics" in text
        assert "English" in text
        assert "-- Tea --" in text

    def test_other_grades_are_hidden(self, registry, filled_grid):
        text = GradeGridFormatter(registry, filled_grid, use_colors=False).format(TERM, GRADE_8)
        assert "English" not in text
        assert "Mathematics" in text

    def test_rich(self, registry, filled_grid):
        text = GradeGridFormatter(registry, filled_grid, use_colors=True).format(TERM, GRADE_7)
        assert "Grade 7" in text
        assert "Mr Smith" in text
        assert "Tea" in text


class TestTeacherScheduleFormatter:
    def test_plain(self, registry, filled_grid):
        text = TeacherScheduleFormatter(registry, filled_grid, use_colors=False).format(TERM, MR_SMITH)
        assert text.startswith("Schedule: Mr Smith")
        assert "Monday:" in text
        assert "Wednesday:" in text
        assert "Room: Lab" in text
        assert text.index("Monday:") < text.index("Wednesday:")

    def test_no_lessons(self, registry, grid):
        text = TeacherScheduleFormatter(registry, grid, use_colors=False).format(TERM, MR_SMITH)
        assert text == "No lessons scheduled for Mr Smith"

    def test_rich(self, registry, filled_grid):
        text = TeacherScheduleFormatter(registry, filled_grid, use_colors=True).format(TERM, MS_JONES)
        assert "English" in text


class TestBulkResultFormatter:
    def result(self) -> BulkResult:
        error = ConflictError(ConflictReason.GRADE_BUSY, "Grade 7 already has a lesson on Monday")
        return BulkResult(
            total=2,
            succeeded=[make_entry(uid(100))],
            failed=[EntryFailure(1, make_input(time_slot_id=P2), error)],
            state=BulkState.COMPLETED_WITH_ERRORS,
        )

    def test_plain(self):
        text = BulkResultFormatter(use_colors=False).format(self.result())
        assert text.splitlines()[0] == "Created 1 of 2; 1 failed"
        assert "FAIL  entry 2: Grade 7 already has a lesson on Monday" in text
        assert "hint:" in text

    def test_rich(self):
        text = BulkResultFormatter(use_colors=True).format(self.result())
        assert "Failed entries" in text
        assert "Created 1 of 2" in text


class TestBellScheduleFormatter:
    def test_plain(self):
        schedule = generate_bell_schedule("08:00", 40, 4)
        text = BellScheduleFormatter(use_colors=False).format(schedule)
        lines = text.splitlines()
        assert lines[0].startswith("Period 1")
        assert lines[3].startswith("Morning Break")
        assert lines[-1] == "4 periods, ends 10:55, 2h 55m total"

    def test_rich(self):
        text = BellScheduleFormatter(use_colors=True).format(generate_bell_schedule("08:00", 40, 2))
        assert "Bell Schedule" in text
        assert "Period 2" in text
