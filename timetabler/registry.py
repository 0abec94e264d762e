"""
In-memory registry of school configuration.

The registry is a read-only projection of one SchoolSnapshot. It is never
patched; when the configuration changes the whole snapshot is replaced.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .data.models import Grade, SchoolSnapshot, Stream, Subject, Teacher
from .grades import sort_grades

logger = logging.getLogger(__name__)


def is_qualified(teacher: Teacher, grade: Grade) -> bool:
    """
    Whether `teacher` may teach `grade`.

    Id-based qualifications win when the teacher has any; otherwise the
    grade's display name is matched against the teacher's grade names. A
    grade without a name accepts every teacher.
    """
    if not grade.name:
        return True
    if teacher.grade_level_ids:
        return grade.id in teacher.grade_level_ids
    return grade.name in teacher.grade_levels


def qualified_teachers(grade: Optional[Grade], teachers: Iterable[Teacher]) -> list[Teacher]:
    """Teachers qualified for `grade`, in input order. No grade = no filter."""
    if grade is None:
        return list(teachers)
    return [t for t in teachers if is_qualified(t, grade)]


class SchoolRegistry:
    """
    Lookup structures over a school snapshot.

    Usage:
        registry = SchoolRegistry(snapshot)
        grade = registry.grade_by_id(grade_id)
        subjects = registry.subjects_for_level(grade.level_id)
    """

    def __init__(self, snapshot: Optional[SchoolSnapshot] = None):
        self._snapshot = SchoolSnapshot()
        self._grades: dict[str, Grade] = {}
        self._streams: dict[str, Stream] = {}
        self._subjects: dict[str, Subject] = {}
        self._teachers: dict[str, Teacher] = {}
        self._subjects_by_level: dict[str, list[Subject]] = {}
        self._qualified_names: set[str] = set()
        self._qualified_ids: set[str] = set()
        if snapshot is not None:
            self.replace(snapshot)

    def replace(self, snapshot: SchoolSnapshot) -> None:
        """Swap in a new snapshot; all lookups are rebuilt."""
        self._snapshot = snapshot
        self._grades = {g.id: g for g in snapshot.grades}
        self._streams = {s.id: s for s in snapshot.streams}
        self._subjects = {s.id: s for s in snapshot.subjects}
        self._teachers = {t.id: t for t in snapshot.teachers}

        self._subjects_by_level = {}
        for subject in snapshot.subjects:
            self._subjects_by_level.setdefault(subject.level_id, []).append(subject)

        self._qualified_names = set()
        self._qualified_ids = set()
        for teacher in snapshot.teachers:
            self._qualified_names.update(teacher.grade_levels)
            self._qualified_ids.update(teacher.grade_level_ids)

        logger.debug("Registry loaded: %s", snapshot.summary())

    @property
    def snapshot(self) -> SchoolSnapshot:
        return self._snapshot

    # -------------------------------------------------------------------------
    # Lookup Methods
    # -------------------------------------------------------------------------

    def grade_by_id(self, grade_id: str) -> Optional[Grade]:
        return self._grades.get(grade_id)

    def stream_by_id(self, stream_id: str) -> Optional[Stream]:
        return self._streams.get(stream_id)

    def subject_by_id(self, subject_id: str) -> Optional[Subject]:
        return self._subjects.get(subject_id)

    def teacher_by_id(self, teacher_id: str) -> Optional[Teacher]:
        return self._teachers.get(teacher_id)

    @property
    def teachers(self) -> list[Teacher]:
        return list(self._snapshot.teachers)

    @property
    def grades(self) -> list[Grade]:
        return list(self._snapshot.grades)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    def subjects_for_level(self, level_id: str) -> list[Subject]:
        """Subjects offered at a level, in configured order."""
        return list(self._subjects_by_level.get(level_id, []))

    def subjects_for_grade(self, grade_id: str) -> list[Subject]:
        grade = self.grade_by_id(grade_id)
        return self.subjects_for_level(grade.level_id) if grade else []

    def streams_for_grade(self, grade_id: str) -> list[Stream]:
        """Streams of a grade in the grade's own order; unknown ids are skipped."""
        grade = self.grade_by_id(grade_id)
        if grade is None:
            return []
        return [self._streams[s] for s in grade.stream_ids if s in self._streams]

    def grades_sorted(self) -> list[Grade]:
        return sort_grades(self._snapshot.grades)

    def subject_offered(self, subject_id: str, grade_id: str) -> bool:
        """Whether the subject belongs to the grade's curriculum level."""
        subject = self.subject_by_id(subject_id)
        grade = self.grade_by_id(grade_id)
        return subject is not None and grade is not None and subject.level_id == grade.level_id

    def has_qualification_data(self, grade: Grade) -> bool:
        """Whether any teacher lists this grade, by id or by name."""
        return grade.id in self._qualified_ids or (bool(grade.name) and grade.name in self._qualified_names)

    def qualified_teachers(self, grade_id: str) -> list[Teacher]:
        """Teachers who may teach a grade (all teachers when the grade is unknown)."""
        return qualified_teachers(self.grade_by_id(grade_id), self._snapshot.teachers)

    def teacher_allowed(self, teacher_id: str, grade_id: str) -> bool:
        """
        Qualification check for one assignment.

        Open policy: when no teacher carries qualification data for the
        grade, every teacher is allowed.
        """
        teacher = self.teacher_by_id(teacher_id)
        grade = self.grade_by_id(grade_id)
        if teacher is None or grade is None:
            return False
        if not self.has_qualification_data(grade):
            return True
        return is_qualified(teacher, grade)
