"""
Time grid: the (day, period) coordinate space and the lesson entries in it.

The grid holds the session's time slots, breaks and entries. It is the only
mutable scheduling state; the editor and the bulk coordinator write to it
after the backend acknowledges a change, and reloads replace it wholesale.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .data.models import (
    SCHOOL_DAYS,
    Break,
    LessonEntry,
    TimeSlot,
    format_time_12h,
    minutes_to_time,
    time_to_minutes,
)

logger = logging.getLogger(__name__)

Cell = tuple[int, str]


class TimeGrid:
    """
    Lesson entries laid out over days and time slots.

    Usage:
        grid = TimeGrid(time_slots, breaks)
        grid.replace(entries)
        cells = grid.entries_for(term_id, grade_id)
        cells[(1, slot_id)]  # Monday entry or None
    """

    def __init__(
        self,
        time_slots: Iterable[TimeSlot] = (),
        breaks: Iterable[Break] = (),
        entries: Iterable[LessonEntry] = (),
    ):
        self._time_slots: list[TimeSlot] = []
        self._slot_map: dict[str, TimeSlot] = {}
        self._breaks: list[Break] = []
        self._entries: dict[str, LessonEntry] = {}
        self.replace_time_slots(time_slots)
        self.replace_breaks(breaks)
        self.replace(entries)

    # -------------------------------------------------------------------------
    # Time structure
    # -------------------------------------------------------------------------

    @property
    def time_slots(self) -> list[TimeSlot]:
        return list(self._time_slots)

    @property
    def breaks(self) -> list[Break]:
        return list(self._breaks)

    def replace_time_slots(self, time_slots: Iterable[TimeSlot]) -> None:
        """
        Replace the time slot set, ordered by period number.

        Entries that reference a slot no longer present are dropped.
        """
        self._time_slots = sorted(time_slots, key=lambda s: (s.period_number, s.day_of_week or 0))
        self._slot_map = {s.id: s for s in self._time_slots}
        orphaned = [e.id for e in self._entries.values() if e.time_slot_id not in self._slot_map]
        for entry_id in orphaned:
            del self._entries[entry_id]
        if orphaned:
            logger.info("Dropped %d entries whose time slots were removed", len(orphaned))

    def replace_breaks(self, breaks: Iterable[Break]) -> None:
        self._breaks = sorted(breaks, key=lambda b: (b.day_of_week, b.after_period))

    def time_slot_by_id(self, slot_id: str) -> Optional[TimeSlot]:
        return self._slot_map.get(slot_id)

    def slots_for_day(self, day: int) -> list[TimeSlot]:
        """Slots that exist on `day`, in period order."""
        return [s for s in self._time_slots if s.applies_to(day)]

    def breaks_for_day(self, day: int) -> list[Break]:
        return [b for b in self._breaks if b.day_of_week == day]

    def adjusted_time_slots(self, day: int) -> list[TimeSlot]:
        """
        Slots for `day` with times shifted by the breaks before them.

        Each period moves later by the total duration of that day's breaks
        placed after an earlier period; its length is unchanged.
        """
        day_breaks = self.breaks_for_day(day)
        adjusted = []
        for slot in self.slots_for_day(day):
            shift = sum(b.duration_minutes for b in day_breaks if slot.period_number > b.after_period)
            if shift == 0:
                adjusted.append(slot)
                continue
            start = time_to_minutes(slot.start_time) + shift
            end = start + slot.duration_minutes
            start_str, end_str = minutes_to_time(start), minutes_to_time(end)
            adjusted.append(slot.model_copy(update={
                "start_time": start_str,
                "end_time": end_str,
                "display_time": f"{format_time_12h(start_str)} - {format_time_12h(end_str)}",
            }))
        return adjusted

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    @property
    def entries(self) -> list[LessonEntry]:
        return list(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def get(self, entry_id: str) -> Optional[LessonEntry]:
        return self._entries.get(entry_id)

    def replace(self, entries: Iterable[LessonEntry]) -> None:
        """Wholesale reload; the backend is the source of truth."""
        self._entries = {e.id: e for e in entries}

    def replace_scope(self, term_id: str, grade_id: str, entries: Iterable[LessonEntry]) -> None:
        """Reload only the entries of one (term, grade)."""
        kept = {
            k: e for k, e in self._entries.items()
            if not (e.term_id == term_id and e.grade_id == grade_id)
        }
        for entry in entries:
            kept[entry.id] = entry
        self._entries = kept

    def put(self, entry: LessonEntry) -> None:
        """Insert or overwrite a persisted entry."""
        if entry.is_pending:
            raise ValueError(f"Entry {entry.id} has not been saved yet")
        self._entries[entry.id] = entry

    def remove(self, entry_id: str) -> Optional[LessonEntry]:
        return self._entries.pop(entry_id, None)

    def entries_in_term(self, term_id: str) -> list[LessonEntry]:
        return [e for e in self._entries.values() if e.term_id == term_id]

    def entries_for_teacher(self, term_id: str, teacher_id: str) -> list[LessonEntry]:
        return [
            e for e in self._entries.values()
            if e.term_id == term_id and e.teacher_id == teacher_id
        ]

    def entries_for(
        self,
        term_id: str,
        grade_id: str,
        stream_id: Optional[str] = None,
    ) -> dict[Cell, Optional[LessonEntry]]:
        """
        Map every (day, slot id) cell of a grade to its entry or None.

        With `stream_id`, whole-grade entries and that stream's entries are
        shown; without it, all of the grade's entries are.
        """
        grid: dict[Cell, Optional[LessonEntry]] = {}
        for day in SCHOOL_DAYS:
            for slot in self.slots_for_day(day):
                grid[(day, slot.id)] = None

        for entry in self._entries.values():
            if entry.term_id != term_id or entry.grade_id != grade_id:
                continue
            if stream_id and entry.stream_id and entry.stream_id != stream_id:
                continue
            cell = (entry.day_of_week, entry.time_slot_id)
            if cell in grid:
                grid[cell] = entry
        return grid
