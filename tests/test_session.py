"""Tests for the session controller."""

from __future__ import annotations

import pytest

from timetabler.bell_schedule import BellSchedule, generate_bell_schedule
from timetabler.bulk import BulkState
from timetabler.errors import ConflictError, ConflictReason, ReferentialError, RemoteError, ValidationError
from timetabler.session import TimetableSession

from conftest import GRADE_7, GRADE_8, MS_JONES, P1, P2, TERM, make_entry, make_input, uid


@pytest.fixture
def session(backend) -> TimetableSession:
    backend.entries = {
        e.id: e for e in [
            make_entry(uid(100)),
            make_entry(uid(101), grade_id=GRADE_8, teacher_id=MS_JONES, time_slot_id=P2),
        ]
    }
    return TimetableSession(backend)


class TestRefresh:
    def test_refresh_one_grade(self, session):
        session.refresh(TERM, GRADE_7)
        assert session.grade_id == GRADE_7
        assert len(session.registry.grades) == 2
        assert len(session.grid.time_slots) == 3
        assert [e.id for e in session.current_grid().values() if e] == [uid(100)]

    def test_refresh_one_grade_keeps_other_grades(self, session):
        session.refresh(TERM, GRADE_7)
        assert sorted(e.id for e in session.grid.entries) == [uid(100), uid(101)]

    def test_refresh_whole_term(self, session):
        session.refresh(TERM)
        assert session.grade_id is None
        assert sorted(e.id for e in session.grid.entries) == [uid(100), uid(101)]

    def test_refresh_requires_term(self, session):
        with pytest.raises(ValidationError):
            session.refresh("")

    def test_refresh_unknown_grade(self, session, backend):
        with pytest.raises(ReferentialError):
            session.refresh(TERM, uid(999))
        assert backend.calls == ["load_school_snapshot"]
        assert session.term_id is None

    def test_refresh_is_idempotent(self, session):
        session.refresh(TERM, GRADE_7)
        first = session.current_grid()
        session.refresh(TERM, GRADE_7)
        assert session.current_grid() == first

    def test_failed_fetch_leaves_session_unchanged(self, session, backend, monkeypatch):
        session.refresh(TERM, GRADE_7)
        before = (session.grid.entries, session.grid.time_slots, session.registry.grades)

        def unavailable(term_id, grade_id):
            raise RemoteError("Service unavailable")

        backend.time_slots = backend.time_slots[:1]
        monkeypatch.setattr(backend, "list_entries", unavailable)
        with pytest.raises(RemoteError):
            session.refresh(TERM, GRADE_8)
        assert (session.grid.entries, session.grid.time_slots, session.registry.grades) == before
        assert session.grade_id == GRADE_7


class TestCrossGradeConflicts:
    """Ms Jones teaches Grade 8 on Monday P2; Grade 7 is selected."""

    @pytest.fixture
    def busy_elsewhere(self, session):
        session.refresh(TERM, GRADE_7)
        return session

    def test_editor(self, busy_elsewhere, backend):
        with pytest.raises(ConflictError) as exc_info:
            busy_elsewhere.editor.create(make_input(teacher_id=MS_JONES, time_slot_id=P2))
        assert exc_info.value.reason == ConflictReason.TEACHER_BUSY
        assert "create_entry" not in backend.calls

    def test_bulk(self, busy_elsewhere, backend):
        result = busy_elsewhere.bulk.submit(TERM, GRADE_7, 1, [make_input(teacher_id=MS_JONES, time_slot_id=P2)])
        assert result.state == BulkState.COMPLETED_WITH_ERRORS
        assert result.failed[0].error.reason == ConflictReason.TEACHER_BUSY
        assert "create_entry" not in backend.calls


class TestSelection:
    def test_select_unknown_grade(self, session):
        session.refresh(TERM)
        with pytest.raises(ReferentialError):
            session.select_grade(uid(999))

    def test_current_grid_needs_a_grade(self, session):
        with pytest.raises(ValidationError):
            session.current_grid()

    def test_editor_and_bulk_share_the_grid(self, session):
        session.refresh(TERM, GRADE_7)
        session.editor.create(make_input(time_slot_id=P2, day_of_week=2))
        result = session.bulk.submit(TERM, GRADE_7, 2, [make_input(time_slot_id=P2, teacher_id=MS_JONES)])
        assert result.failure_count == 1
        assert session.current_grid()[(2, P2)] is not None

    def test_reload_grade(self, session, backend):
        session.refresh(TERM, GRADE_7)
        backend.entries[uid(102)] = make_entry(uid(102), day_of_week=3, time_slot_id=P1)
        session.reload_grade()
        assert session.current_grid()[(3, P1)].id == uid(102)
        assert uid(101) in session.grid


class TestApplyBellSchedule:
    def test_slots_and_breaks_are_created(self, session, backend):
        session.refresh(TERM, GRADE_7)
        schedule = generate_bell_schedule("08:00", 40, 4, days=[1, 2])
        time_slots, breaks = session.apply_bell_schedule(schedule)

        assert backend.calls[-2:] == ["create_time_slots", "create_breaks"]
        assert [s.period_number for s in time_slots] == [1, 2, 3, 4]
        assert all(not s.id.startswith("slot-") for s in time_slots)
        assert [b.day_of_week for b in breaks] == [1, 2]
        assert session.grid.time_slots == time_slots
        assert session.grid.breaks == breaks

    def test_lessons_on_old_slots_are_dropped(self, session):
        session.refresh(TERM, GRADE_7)
        session.apply_bell_schedule(generate_bell_schedule("08:00", 40, 4))
        assert len(session.grid) == 0
        assert all(e is None for e in session.current_grid().values())

    def test_without_breaks(self, session, backend):
        time_slots, breaks = session.apply_bell_schedule(generate_bell_schedule("08:00", 40, 2, breaks=()))
        assert len(time_slots) == 2
        assert breaks == []
        assert "create_breaks" not in backend.calls

    def test_empty_schedule_rejected(self, session, backend):
        with pytest.raises(ValidationError):
            session.apply_bell_schedule(BellSchedule(time_slots=[], breaks=[], end_time="08:00", total_minutes=0))
        assert "create_time_slots" not in backend.calls
