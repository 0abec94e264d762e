"""Session state: one registry, one grid, and the editors that write to them."""

from __future__ import annotations

import logging
from typing import Optional

from .bell_schedule import BellSchedule
from .bulk import BulkEntryCoordinator
from .client import Backend
from .data.models import Break, Grade, LessonEntry, TimeSlot
from .editor import EntryEditor
from .errors import ReferentialError, ValidationError
from .grid import Cell, TimeGrid
from .registry import SchoolRegistry

logger = logging.getLogger(__name__)


class TimetableSession:
    """
    Everything one user works with while editing a timetable.

    Usage:
        session = TimetableSession(client)
        session.refresh(term_id, grade_id)
        session.editor.create(candidate)
        cells = session.current_grid()
    """

    def __init__(self, backend: Backend):
        self.backend = backend
        self.registry = SchoolRegistry()
        self.grid = TimeGrid()
        self.editor = EntryEditor(self.registry, self.grid, backend)
        self.bulk = BulkEntryCoordinator(self.registry, self.grid, backend)
        self.term_id: Optional[str] = None
        self.grade_id: Optional[str] = None

    def refresh(self, term_id: str, grade_id: Optional[str] = None) -> None:
        """
        Reload configuration, time structure and entries from the backend.

        Entries are loaded for every grade in the term so that teacher
        clashes across grades are visible; `grade_id` only selects the grade
        being edited. Nothing changes locally unless every fetch succeeds.

        Raises:
            ValidationError: No term given
            ReferentialError: `grade_id` is not a grade of the school
        """
        if not term_id:
            raise ValidationError("No term selected. Please select a term first.", field="term_id")

        snapshot = self.backend.load_school_snapshot()
        if grade_id and not any(g.id == grade_id for g in snapshot.grades):
            raise ReferentialError(f"Unknown grade '{grade_id}'")
        time_slots = self.backend.list_time_slots()
        breaks = self.backend.list_breaks()
        entries: list[LessonEntry] = []
        for grade in snapshot.grades:
            entries.extend(self.backend.list_entries(term_id, grade.id))

        self.registry.replace(snapshot)
        self.grid.replace_time_slots(time_slots)
        self.grid.replace_breaks(breaks)
        self.grid.replace(entries)
        self.term_id = term_id
        self.grade_id = grade_id or None
        logger.info(
            "Session refreshed: %d grades, %d time slots, %d entries",
            len(self.registry.grades), len(self.grid.time_slots), len(self.grid),
        )

    def select_grade(self, grade_id: str) -> Grade:
        grade = self.registry.grade_by_id(grade_id)
        if grade is None:
            raise ReferentialError(f"Unknown grade '{grade_id}'")
        self.grade_id = grade_id
        return grade

    def reload_grade(self) -> None:
        """Re-fetch the selected grade's entries only."""
        if not self.term_id or not self.grade_id:
            raise ValidationError("Please select a grade first.", field="grade_id")
        entries = self.backend.list_entries(self.term_id, self.grade_id)
        self.grid.replace_scope(self.term_id, self.grade_id, entries)

    def current_grid(self, stream_id: Optional[str] = None) -> dict[Cell, Optional[LessonEntry]]:
        if not self.term_id or not self.grade_id:
            raise ValidationError("Please select a grade first.", field="grade_id")
        return self.grid.entries_for(self.term_id, self.grade_id, stream_id)

    def apply_bell_schedule(self, schedule: BellSchedule) -> tuple[list[TimeSlot], list[Break]]:
        """
        Persist a generated bell schedule and make it the session's time structure.

        Slots are created before breaks. The server assigns new slot ids, so
        lessons on the old slots are dropped from the grid.

        Returns:
            The time slots and breaks as stored by the backend
        """
        if not schedule.time_slots:
            raise ValidationError("The bell schedule has no periods.", field="time_slots")

        time_slots = self.backend.create_time_slots(schedule.time_slots)
        breaks = self.backend.create_breaks(schedule.breaks) if schedule.breaks else []

        self.grid.replace_time_slots(time_slots)
        self.grid.replace_breaks(breaks)
        logger.info("Applied bell schedule: %d time slots, %d breaks", len(time_slots), len(breaks))
        return time_slots, breaks
