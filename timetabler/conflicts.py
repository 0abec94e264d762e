"""
Conflict checking for lesson entries.

Two rules apply within one (term, day, time slot):
- a teacher teaches at most one lesson
- a grade has at most one lesson; a whole-grade lesson also blocks every
  stream of that grade, while lessons for two different streams coexist
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import Iterable, Optional, Protocol

from .data.models import Grade, LessonEntry, Teacher
from .errors import ConflictReason
from .registry import qualified_teachers


class SlotCandidate(Protocol):
    """Anything placed in a (term, day, slot) cell."""
    term_id: str
    day_of_week: int
    time_slot_id: str
    grade_id: str
    stream_id: Optional[str]
    teacher_id: str


@dataclass(frozen=True)
class ConflictResult:
    """Outcome of a conflict check."""
    ok: bool
    reason: Optional[ConflictReason] = None
    conflicting: Optional[LessonEntry] = None

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True)
class Conflict:
    """A pair of entries that violate a scheduling rule."""
    reason: ConflictReason
    first: LessonEntry
    second: LessonEntry

    def describe(self) -> str:
        what = (
            f"teacher {self.first.teacher_id} double-booked"
            if self.reason == ConflictReason.TEACHER_BUSY
            else f"grade {self.first.grade_id} double-booked"
        )
        return (
            f"{what} on day {self.first.day_of_week} slot {self.first.time_slot_id} "
            f"({self.first.id} / {self.second.id})"
        )


OK = ConflictResult(ok=True)


def same_slot(a: SlotCandidate, b: SlotCandidate) -> bool:
    return (
        a.term_id == b.term_id
        and a.day_of_week == b.day_of_week
        and a.time_slot_id == b.time_slot_id
    )


def grades_collide(a: SlotCandidate, b: SlotCandidate) -> bool:
    """Same grade, and either lesson covers the whole grade or both share a stream."""
    if a.grade_id != b.grade_id:
        return False
    if a.stream_id and b.stream_id:
        return a.stream_id == b.stream_id
    return True


def check_conflict(
    candidate: SlotCandidate,
    existing: Iterable[LessonEntry],
    exclude_id: Optional[str] = None,
) -> ConflictResult:
    """
    Check a prospective assignment against existing entries.

    Args:
        candidate: Proposed (term, day, slot, grade, teacher) assignment
        existing: Entries already accepted
        exclude_id: Id of the entry being edited, ignored in the scan

    Returns:
        ConflictResult; teacher clashes are reported before grade clashes
    """
    grade_clash: Optional[LessonEntry] = None
    for entry in existing:
        if exclude_id is not None and entry.id == exclude_id:
            continue
        if not same_slot(candidate, entry):
            continue
        if entry.teacher_id == candidate.teacher_id:
            return ConflictResult(False, ConflictReason.TEACHER_BUSY, entry)
        if grade_clash is None and grades_collide(candidate, entry):
            grade_clash = entry

    if grade_clash is not None:
        return ConflictResult(False, ConflictReason.GRADE_BUSY, grade_clash)
    return OK


def busy_teacher_ids(
    entries: Iterable[LessonEntry],
    term_id: str,
    day_of_week: int,
    time_slot_id: str,
    exclude_id: Optional[str] = None,
) -> set[str]:
    """Teachers already committed in a (term, day, slot)."""
    return {
        e.teacher_id for e in entries
        if e.term_id == term_id
        and e.day_of_week == day_of_week
        and e.time_slot_id == time_slot_id
        and e.id != exclude_id
    }


def available_teachers(
    grade: Optional[Grade],
    teachers: Iterable[Teacher],
    entries: Iterable[LessonEntry],
    term_id: str,
    day_of_week: int,
    time_slot_id: str,
    exclude_id: Optional[str] = None,
) -> list[Teacher]:
    """Teachers qualified for the grade and free in the slot."""
    busy = busy_teacher_ids(entries, term_id, day_of_week, time_slot_id, exclude_id)
    return [t for t in qualified_teachers(grade, teachers) if t.id not in busy]


def find_conflicts(entries: Iterable[LessonEntry]) -> list[Conflict]:
    """Every pair of entries that breaks a scheduling rule."""
    by_slot: dict[tuple[str, int, str], list[LessonEntry]] = {}
    for entry in entries:
        by_slot.setdefault(entry.slot_key, []).append(entry)

    conflicts = []
    for key in sorted(by_slot):
        for a, b in combinations(by_slot[key], 2):
            if a.teacher_id == b.teacher_id:
                conflicts.append(Conflict(ConflictReason.TEACHER_BUSY, a, b))
            elif grades_collide(a, b):
                conflicts.append(Conflict(ConflictReason.GRADE_BUSY, a, b))
    return conflicts
