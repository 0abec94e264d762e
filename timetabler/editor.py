"""
Single-entry editor: create, update and delete one lesson entry.

Every operation validates locally first, then calls the backend, and only
touches the time grid once the backend has acknowledged the change. A
failure at any step leaves the grid as it was.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from .client import Backend
from .conflicts import check_conflict
from .data.models import (
    SCHOOL_DAYS,
    LessonEntry,
    LessonEntryInput,
    day_name,
    is_well_formed_id,
)
from .errors import (
    ConflictError,
    ConflictReason,
    NotFoundError,
    ReferentialError,
    ValidationError,
)
from .grid import TimeGrid
from .registry import SchoolRegistry

logger = logging.getLogger(__name__)

_ID_FIELDS = ("term_id", "grade_id", "subject_id", "teacher_id", "time_slot_id")


class EntryValidator:
    """Checks shared by the single-entry editor and the bulk coordinator."""

    def __init__(self, registry: SchoolRegistry, grid: TimeGrid):
        self.registry = registry
        self.grid = grid

    def check_fields(self, data: LessonEntryInput) -> None:
        """Required fields present, ids well-formed, day in range."""
        missing = data.missing_fields()
        if missing:
            raise ValidationError(
                f"Missing required field: {missing[0]}",
                field=missing[0],
            )
        for name in _ID_FIELDS:
            if not is_well_formed_id(getattr(data, name)):
                raise ValidationError(
                    f"Invalid ID format for {name}: '{getattr(data, name)}'",
                    field=name,
                    hint="Reload the page to refresh identifiers.",
                )
        if data.stream_id is not None and not is_well_formed_id(data.stream_id):
            raise ValidationError(f"Invalid ID format for stream_id: '{data.stream_id}'", field="stream_id")
        if data.day_of_week not in SCHOOL_DAYS:
            raise ValidationError(
                f"day_of_week must be between 1 and 5, got {data.day_of_week}",
                field="day_of_week",
            )

    def check_references(self, data: LessonEntryInput) -> None:
        """Referenced records exist, and the subject/teacher suit the grade."""
        grade = self.registry.grade_by_id(data.grade_id)
        if grade is None:
            raise ReferentialError(f"Unknown grade '{data.grade_id}'")
        subject = self.registry.subject_by_id(data.subject_id)
        if subject is None:
            raise ReferentialError(f"Unknown subject '{data.subject_id}'")
        teacher = self.registry.teacher_by_id(data.teacher_id)
        if teacher is None:
            raise ReferentialError(f"Unknown teacher '{data.teacher_id}'")
        slot = self.grid.time_slot_by_id(data.time_slot_id)
        if slot is None:
            raise ReferentialError(
                f"Unknown time slot '{data.time_slot_id}'",
                hint="Reload time slots and try again.",
            )
        if data.stream_id is not None:
            stream = self.registry.stream_by_id(data.stream_id)
            if stream is None or stream.grade_id != grade.id:
                raise ReferentialError(f"Unknown stream '{data.stream_id}' for grade {grade}")

        if not slot.applies_to(data.day_of_week):
            raise ValidationError(
                f"{slot} does not run on {day_name(data.day_of_week)}",
                field="time_slot_id",
            )
        if not self.registry.subject_offered(subject.id, grade.id):
            raise ValidationError(
                f"{subject} is not offered for {grade}",
                field="subject_id",
                hint="Choose a subject from the grade's curriculum.",
            )
        if not self.registry.teacher_allowed(teacher.id, grade.id):
            raise ValidationError(
                f"{teacher} is not assigned to teach {grade}",
                field="teacher_id",
                hint="Choose a different teacher.",
            )

    def check_slot(
        self,
        data: LessonEntryInput,
        existing: Iterable[LessonEntry],
        exclude_id: Optional[str] = None,
    ) -> None:
        """Raise ConflictError if the teacher or grade is already booked."""
        result = check_conflict(data, existing, exclude_id=exclude_id)
        if result.ok:
            return

        other = result.conflicting
        slot = self.grid.time_slot_by_id(data.time_slot_id)
        where = f"{day_name(data.day_of_week)} {slot or data.time_slot_id}"
        if result.reason == ConflictReason.TEACHER_BUSY:
            teacher = self.registry.teacher_by_id(data.teacher_id)
            busy_in = self.registry.grade_by_id(other.grade_id) if other else None
            message = f"{teacher or data.teacher_id} is already teaching {busy_in or 'another class'} on {where}"
        else:
            grade = self.registry.grade_by_id(data.grade_id)
            message = f"{grade or data.grade_id} already has a lesson on {where}"
        raise ConflictError(result.reason, message, conflicting=other)

    def validate(
        self,
        data: LessonEntryInput,
        existing: Iterable[LessonEntry],
        exclude_id: Optional[str] = None,
    ) -> None:
        self.check_fields(data)
        self.check_references(data)
        self.check_slot(data, existing, exclude_id=exclude_id)


class EntryEditor:
    """
    Create, update and delete individual lesson entries.

    Usage:
        editor = EntryEditor(registry, grid, client)
        entry = editor.create(LessonEntryInput(...))
        editor.update(entry.id, room_number="Lab 2")
        editor.delete(entry.id)
    """

    def __init__(self, registry: SchoolRegistry, grid: TimeGrid, backend: Backend):
        self.registry = registry
        self.grid = grid
        self.backend = backend
        self.validator = EntryValidator(registry, grid)

    def create(self, data: LessonEntryInput) -> LessonEntry:
        """
        Validate and persist a new entry.

        Raises:
            ValidationError: Missing/malformed fields or unsuitable subject/teacher
            ReferentialError: An id does not resolve
            ConflictError: Teacher or grade already booked in the slot
            RemoteError: The backend rejected the write
        """
        self.validator.validate(data, self.grid.entries)
        saved = self.backend.create_entry(data)
        self.grid.put(saved)
        logger.info("Created entry %s (%s, slot %s)", saved.id, day_name(saved.day_of_week), saved.time_slot_id)
        return saved

    def update(
        self,
        entry_id: str,
        subject_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
        room_number: Optional[str] = None,
    ) -> LessonEntry:
        """
        Change the subject, teacher or room of an entry.

        Day, period and grade are the entry's identity and cannot be changed;
        delete and recreate instead. Pass `room_number=""` to clear the room.

        Raises:
            NotFoundError: No entry with this id
            ValidationError, ReferentialError, ConflictError, RemoteError
        """
        current = self.grid.get(entry_id)
        if current is None:
            raise NotFoundError(f"Lesson entry '{entry_id}' not found")

        changes: dict[str, Any] = {}
        if subject_id is not None and subject_id != current.subject_id:
            changes["subject_id"] = subject_id
        if teacher_id is not None and teacher_id != current.teacher_id:
            changes["teacher_id"] = teacher_id
        if room_number is not None:
            room = room_number.strip() or None
            if room != current.room_number:
                changes["room_number"] = room
        if not changes:
            return current

        proposed = current.to_input().model_copy(update=changes)
        self.validator.check_fields(proposed)
        self.validator.check_references(proposed)
        if "teacher_id" in changes:
            self.validator.check_slot(proposed, self.grid.entries, exclude_id=current.id)

        saved = self.backend.update_entry(current.id, changes)
        # Only the editable fields are taken from the response
        updated = current.model_copy(update={
            "subject_id": saved.subject_id,
            "teacher_id": saved.teacher_id,
            "room_number": saved.room_number,
        })
        self.grid.put(updated)
        logger.info("Updated entry %s: %s", entry_id, sorted(changes))
        return updated

    def delete(self, entry_id: str) -> None:
        """
        Remove an entry.

        Raises:
            NotFoundError: No entry with this id
            RemoteError: The backend rejected the delete
        """
        if entry_id not in self.grid:
            raise NotFoundError(f"Lesson entry '{entry_id}' not found")
        self.backend.delete_entry(entry_id)
        self.grid.remove(entry_id)
        logger.info("Deleted entry %s", entry_id)
