"""Tests for JSON data loading."""

from __future__ import annotations

import pytest

from timetabler.data.loader import (
    DataValidationError,
    load_batch,
    load_entries,
    load_school_snapshot,
    load_time_slots,
)

from conftest import GRADE_7, MATH, MR_SMITH, P1, P2, TERM, make_input, uid, write_json


@pytest.fixture
def snapshot_file(snapshot, tmp_path):
    return write_json(tmp_path / "school.json", snapshot.to_wire())


class TestLoadSchoolSnapshot:
    def test_loads_camel_case_file(self, snapshot_file):
        snapshot = load_school_snapshot(snapshot_file)
        assert len(snapshot.grades) == 2
        assert snapshot.grades[1].stream_ids == (uid(20), uid(21))

    def test_invalid_reference_raises(self, tmp_path):
        path = write_json(tmp_path / "bad.json", {
            "streams": [{"id": "s1", "name": "East", "gradeId": "missing"}],
        })
        with pytest.raises(DataValidationError, match="unknown grade_id"):
            load_school_snapshot(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_school_snapshot(tmp_path / "nope.json")


class TestLoadEntries:
    def test_bare_list_and_wrapped_object(self, tmp_path):
        entry = {"id": uid(100), **make_input().to_wire()}
        assert len(load_entries(write_json(tmp_path / "a.json", [entry]))) == 1
        assert len(load_entries(write_json(tmp_path / "b.json", {"entries": [entry]}))) == 1

    def test_duplicate_ids(self, tmp_path):
        entry = {"id": uid(100), **make_input().to_wire()}
        with pytest.raises(DataValidationError, match="Duplicate entry ID"):
            load_entries(write_json(tmp_path / "dup.json", [entry, entry]))

    def test_reports_entry_index(self, tmp_path):
        with pytest.raises(DataValidationError, match="Entry 0"):
            load_entries(write_json(tmp_path / "bad.json", [{"termId": TERM}]))

    def test_rejects_scalar(self, tmp_path):
        with pytest.raises(DataValidationError):
            load_entries(write_json(tmp_path / "bad.json", 42))


class TestLoadTimeSlots:
    def test_slots_and_breaks(self, tmp_path):
        path = write_json(tmp_path / "slots.json", {
            "timeSlots": [
                {"id": P1, "periodNumber": 1, "startTime": "08:00:00", "endTime": "08:40:00"},
                {"id": P2, "periodNumber": 2, "startTime": "08:40", "endTime": "09:20"},
            ],
            "breaks": [
                {"id": "b1", "name": "Tea", "dayOfWeek": 1, "afterPeriod": 1, "durationMinutes": 10},
            ],
        })
        slots, breaks = load_time_slots(path)
        assert [s.start_time for s in slots] == ["08:00", "08:40"]
        assert breaks[0].day_of_week == 1

    def test_bad_slot(self, tmp_path):
        path = write_json(tmp_path / "slots.json", {
            "timeSlots": [{"id": P1, "periodNumber": 1, "startTime": "09:00", "endTime": "08:00"}],
        })
        with pytest.raises(DataValidationError, match="must be before"):
            load_time_slots(path)


class TestLoadBatch:
    def test_binds_batch_fields_to_candidates(self, tmp_path):
        path = write_json(tmp_path / "batch.json", {
            "termId": TERM,
            "gradeId": GRADE_7,
            "dayOfWeek": 3,
            "entries": [
                {"timeSlotId": P1, "subjectId": MATH, "teacherId": MR_SMITH},
                {"timeSlotId": P2, "subjectId": MATH, "teacherId": MR_SMITH, "roomNumber": "4"},
            ],
        })
        batch = load_batch(path)
        assert batch["day_of_week"] == 3
        assert batch["stream_id"] is None
        assert [c.day_of_week for c in batch["candidates"]] == [3, 3]
        assert batch["candidates"][1].room_number == "4"
        assert all(c.grade_id == GRADE_7 for c in batch["candidates"])

    def test_incomplete_candidates_still_load(self, tmp_path):
        path = write_json(tmp_path / "batch.json", {
            "termId": TERM, "gradeId": GRADE_7, "entries": [{"timeSlotId": P1}],
        })
        batch = load_batch(path)
        assert batch["candidates"][0].missing_fields() == ["subject_id", "teacher_id"]
