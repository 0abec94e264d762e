"""Tests for the single-entry editor."""

from __future__ import annotations

import pytest

from timetabler.data.models import TimeSlot
from timetabler.editor import EntryEditor
from timetabler.errors import (
    ConflictError,
    ConflictReason,
    NotFoundError,
    ReferentialError,
    RemoteError,
    ValidationError,
)

from conftest import (
    ART,
    ENGLISH,
    GRADE_7,
    GRADE_8,
    MR_BROWN,
    MR_SMITH,
    MS_JONES,
    P1,
    P2,
    STREAM_EAST,
    make_input,
    uid,
)


@pytest.fixture
def editor(registry, grid, backend) -> EntryEditor:
    return EntryEditor(registry, grid, backend)


class TestCreate:
    def test_create_into_free_slot(self, editor, grid, backend):
        entry = editor.create(make_input())
        assert entry.id in grid
        assert entry.id in backend.entries
        assert entry.grade_id == GRADE_7

    def test_same_teacher_same_slot_other_grade_is_teacher_busy(self, editor, grid, backend):
        editor.create(make_input(teacher_id=MS_JONES))
        with pytest.raises(ConflictError) as exc:
            editor.create(make_input(grade_id=GRADE_8, teacher_id=MS_JONES, subject_id=ENGLISH))
        assert exc.value.reason == ConflictReason.TEACHER_BUSY
        assert "Ms Jones" in str(exc.value)
        assert len(grid) == 1
        assert backend.calls.count("create_entry") == 1

    def test_grade_busy(self, editor):
        editor.create(make_input())
        with pytest.raises(ConflictError) as exc:
            editor.create(make_input(teacher_id=MS_JONES, subject_id=ENGLISH))
        assert exc.value.reason == ConflictReason.GRADE_BUSY
        assert exc.value.hint

    def test_streams_of_one_grade_share_a_slot(self, editor):
        editor.create(make_input(stream_id=STREAM_EAST))
        other = editor.create(make_input(stream_id=uid(21), teacher_id=MS_JONES))
        assert other.stream_id == uid(21)

    def test_missing_field(self, editor, backend):
        with pytest.raises(ValidationError) as exc:
            editor.create(make_input(teacher_id=""))
        assert exc.value.field == "teacher_id"
        assert backend.calls == []

    def test_malformed_id(self, editor, backend):
        with pytest.raises(ValidationError, match="Invalid ID format"):
            editor.create(make_input(time_slot_id="slot-1"))
        assert backend.calls == []

    def test_day_out_of_range(self, editor):
        with pytest.raises(ValidationError, match="between 1 and 5"):
            editor.create(make_input(day_of_week=6))

    def test_unknown_time_slot(self, editor):
        with pytest.raises(ReferentialError) as exc:
            editor.create(make_input(time_slot_id=uid(59)))
        assert "time slot" in exc.value.hint.lower()

    def test_unknown_teacher(self, editor):
        with pytest.raises(ReferentialError):
            editor.create(make_input(teacher_id=uid(49)))

    def test_stream_of_another_grade(self, editor):
        with pytest.raises(ReferentialError):
            editor.create(make_input(grade_id=GRADE_8, teacher_id=MS_JONES, stream_id=STREAM_EAST))

    def test_subject_not_offered(self, editor):
        with pytest.raises(ValidationError) as exc:
            editor.create(make_input(subject_id=ART))
        assert exc.value.field == "subject_id"

    def test_unqualified_teacher(self, editor):
        with pytest.raises(ValidationError) as exc:
            editor.create(make_input(teacher_id=MR_BROWN))
        assert exc.value.field == "teacher_id"

    def test_slot_not_running_that_day(self, registry, backend, time_slots):
        from timetabler.grid import TimeGrid
        friday = TimeSlot(id=uid(53), period_number=4, start_time="10:00", end_time="10:40", day_of_week=5)
        editor = EntryEditor(registry, TimeGrid([*time_slots, friday]), backend)
        with pytest.raises(ValidationError, match="does not run on Monday"):
            editor.create(make_input(time_slot_id=uid(53)))

    def test_backend_failure_leaves_grid_untouched(self, editor, grid, backend):
        backend.fail_slots.add(P1)
        with pytest.raises(RemoteError):
            editor.create(make_input())
        assert len(grid) == 0


class TestUpdate:
    def test_identity_never_changes(self, editor):
        entry = editor.create(make_input(room_number="1"))
        updated = editor.update(entry.id, subject_id=ENGLISH, teacher_id=MS_JONES, room_number="Lab")
        assert updated.id == entry.id
        assert (updated.term_id, updated.grade_id, updated.day_of_week, updated.time_slot_id) == (
            entry.term_id, entry.grade_id, entry.day_of_week, entry.time_slot_id,
        )
        assert (updated.subject_id, updated.teacher_id, updated.room_number) == (ENGLISH, MS_JONES, "Lab")

    def test_unknown_entry(self, editor):
        with pytest.raises(NotFoundError):
            editor.update(uid(999), room_number="2")

    def test_no_changes_skips_backend(self, editor, backend):
        entry = editor.create(make_input())
        assert editor.update(entry.id, subject_id=entry.subject_id) == entry
        assert "update_entry" not in backend.calls

    def test_empty_room_clears_it(self, editor):
        entry = editor.create(make_input(room_number="7"))
        assert editor.update(entry.id, room_number="").room_number is None

    def test_keeping_own_teacher_is_not_a_conflict(self, editor):
        entry = editor.create(make_input())
        updated = editor.update(entry.id, subject_id=ENGLISH, teacher_id=MR_SMITH)
        assert updated.subject_id == ENGLISH

    def test_changing_to_busy_teacher(self, editor, grid):
        editor.create(make_input(grade_id=GRADE_8, teacher_id=MS_JONES, subject_id=ENGLISH))
        entry = editor.create(make_input())
        with pytest.raises(ConflictError) as exc:
            editor.update(entry.id, teacher_id=MS_JONES)
        assert exc.value.reason == ConflictReason.TEACHER_BUSY
        assert grid.get(entry.id).teacher_id == MR_SMITH


class TestDelete:
    def test_delete(self, editor, grid, backend):
        entry = editor.create(make_input(time_slot_id=P2))
        editor.delete(entry.id)
        assert entry.id not in grid
        assert entry.id not in backend.entries

    def test_delete_unknown(self, editor, backend):
        with pytest.raises(NotFoundError):
            editor.delete(uid(999))
        assert "delete_entry" not in backend.calls
