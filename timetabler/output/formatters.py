"""
Console formatters for timetables.

- GradeGridFormatter: one grade's week as a period x day grid
- TeacherScheduleFormatter: one teacher's lessons, day by day
- BulkResultFormatter: outcome of a bulk submission
- BellScheduleFormatter: preview of a generated bell schedule

Each renders plain text, or a rich table when `use_colors` is set.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..data.models import SCHOOL_DAYS, LessonEntry, TimeSlot, day_name
from ..grades import abbreviate_grade

if TYPE_CHECKING:
    from ..bell_schedule import BellSchedule
    from ..bulk import BulkResult
    from ..grid import TimeGrid
    from ..registry import SchoolRegistry


# =============================================================================
# Constants
# =============================================================================

DAY_ABBREV = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
CELL_WIDTH = 18


def _render(renderable, width: int) -> str:
    console = Console(record=True, width=width)
    console.print(renderable)
    return console.export_text()


def _periods(grid: TimeGrid) -> list[int]:
    return sorted({s.period_number for s in grid.time_slots})


def _slot_for(grid: TimeGrid, day: int, period: int) -> Optional[TimeSlot]:
    for slot in grid.slots_for_day(day):
        if slot.period_number == period:
            return slot
    return None


# =============================================================================
# Grade Grid
# =============================================================================

class GradeGridFormatter:
    """Formats one grade's week as a grid of periods by day."""

    def __init__(self, registry: SchoolRegistry, grid: TimeGrid, use_colors: bool = True):
        self.registry = registry
        self.grid = grid
        self.use_colors = use_colors

    def format(self, term_id: str, grade_id: str, stream_id: Optional[str] = None) -> str:
        """
        Format the grade's week.

        Args:
            term_id: Term to show
            grade_id: Grade to show
            stream_id: Limit to whole-grade lessons plus this stream's

        Returns:
            Formatted grid string
        """
        cells = self.grid.entries_for(term_id, grade_id, stream_id)
        if self.use_colors:
            return self._format_rich(grade_id, cells)
        return self._format_plain(grade_id, cells)

    def _title(self, grade_id: str) -> str:
        grade = self.registry.grade_by_id(grade_id)
        if grade is None:
            return grade_id
        return f"{grade} ({abbreviate_grade(grade.name)})" if grade.name else str(grade)

    def _cell_text(self, entry: Optional[LessonEntry]) -> tuple[str, str]:
        """(subject, teacher) for a cell, empty strings for a free period."""
        if entry is None:
            return "", ""
        subject = self.registry.subject_by_id(entry.subject_id)
        teacher = self.registry.teacher_by_id(entry.teacher_id)
        return (
            subject.name if subject else entry.subject_id,
            teacher.name if teacher else entry.teacher_id,
        )

    def _break_after(self, period: int) -> str:
        names = {b.name for b in self.grid.breaks if b.after_period == period}
        return ", ".join(sorted(names))

    def _format_plain(self, grade_id: str, cells: dict) -> str:
        lines = [self._title(grade_id), ""]

        header = "Period".ljust(8) + "".join(DAY_ABBREV[d - 1].center(CELL_WIDTH) for d in SCHOOL_DAYS)
        lines.append(header)
        lines.append("-" * len(header))

        for period in _periods(self.grid):
            row = f"P{period}".ljust(8)
            for day in SCHOOL_DAYS:
                slot = _slot_for(self.grid, day, period)
                entry = cells.get((day, slot.id)) if slot else None
                subject, _ = self._cell_text(entry)
                cell = subject if slot else "n/a"
                row += (cell or "-")[:CELL_WIDTH - 2].center(CELL_WIDTH)
            lines.append(row)

            break_name = self._break_after(period)
            if break_name:
                lines.append(f"  -- {break_name} --")

        return "\n".join(lines)

    def _format_rich(self, grade_id: str, cells: dict) -> str:
        table = Table(title=self._title(grade_id), show_header=True, header_style="bold cyan")
        table.add_column("Period", style="dim")
        for day in SCHOOL_DAYS:
            table.add_column(DAY_ABBREV[day - 1], justify="center")

        for period in _periods(self.grid):
            first = _slot_for(self.grid, SCHOOL_DAYS[0], period)
            row = [f"P{period}\n{first.start_time}" if first else f"P{period}"]
            for day in SCHOOL_DAYS:
                slot = _slot_for(self.grid, day, period)
                if slot is None:
                    row.append("[dim]n/a[/dim]")
                    continue
                subject, teacher = self._cell_text(cells.get((day, slot.id)))
                row.append(f"[bold]{subject}[/bold]\n{teacher}" if subject else "[dim]-[/dim]")
            table.add_row(*row)

            break_name = self._break_after(period)
            if break_name:
                table.add_row(f"[yellow]{break_name}[/yellow]", *([""] * len(SCHOOL_DAYS)))

        return _render(table, width=120)


# =============================================================================
# Teacher Schedule
# =============================================================================

class TeacherScheduleFormatter:
    """Formats one teacher's lessons in a term."""

    def __init__(self, registry: SchoolRegistry, grid: TimeGrid, use_colors: bool = True):
        self.registry = registry
        self.grid = grid
        self.use_colors = use_colors

    def _rows(self, term_id: str, teacher_id: str) -> list[tuple[int, TimeSlot | None, LessonEntry]]:
        rows = []
        for entry in self.grid.entries_for_teacher(term_id, teacher_id):
            rows.append((entry.day_of_week, self.grid.time_slot_by_id(entry.time_slot_id), entry))
        rows.sort(key=lambda r: (r[0], r[1].period_number if r[1] else 0))
        return rows

    def format(self, term_id: str, teacher_id: str) -> str:
        teacher = self.registry.teacher_by_id(teacher_id)
        name = teacher.name if teacher else teacher_id
        rows = self._rows(term_id, teacher_id)
        if not rows:
            return f"No lessons scheduled for {name}"

        if self.use_colors:
            table = Table(title=f"Schedule: {name}", show_header=True, header_style="bold cyan")
            for column in ("Day", "Period", "Time", "Subject", "Grade", "Room"):
                table.add_column(column)
            for day, slot, entry in rows:
                table.add_row(*self._fields(day, slot, entry))
            return _render(table, width=100)

        lines = [f"Schedule: {name}", "=" * 40]
        current_day = None
        for day, slot, entry in rows:
            if day != current_day:
                lines.append(f"\n{day_name(day)}:")
                current_day = day
            _, period, time, subject, grade, room = self._fields(day, slot, entry)
            line = f"  {period} {time}: {subject} | {grade}"
            if room:
                line += f" | Room: {room}"
            lines.append(line)
        return "\n".join(lines)

    def _fields(self, day: int, slot: Optional[TimeSlot], entry: LessonEntry) -> tuple[str, ...]:
        subject = self.registry.subject_by_id(entry.subject_id)
        grade = self.registry.grade_by_id(entry.grade_id)
        return (
            day_name(day),
            f"P{slot.period_number}" if slot else "?",
            f"{slot.start_time}-{slot.end_time}" if slot else entry.time_slot_id,
            subject.name if subject else entry.subject_id,
            str(grade) if grade else entry.grade_id,
            entry.room_number or "",
        )


# =============================================================================
# Bulk Result
# =============================================================================

class BulkResultFormatter:
    """Formats the outcome of a bulk submission."""

    def __init__(self, use_colors: bool = True):
        self.use_colors = use_colors

    def format(self, result: BulkResult) -> str:
        if self.use_colors:
            return self._format_rich(result)
        return self._format_plain(result)

    def _format_plain(self, result: BulkResult) -> str:
        lines = [result.summary()]
        for entry in result.succeeded:
            lines.append(f"  OK    {entry.id} (slot {entry.time_slot_id})")
        for failure in result.failed:
            lines.append(f"  FAIL  entry {failure.index + 1}: {failure.reason}")
            lines.append(f"        hint: {failure.error.hint}")
        return "\n".join(lines)

    def _format_rich(self, result: BulkResult) -> str:
        style = "green" if result.ok else "yellow" if result.succeeded else "red"
        parts = [Panel(Text(result.summary(), style=f"bold {style}"), title="Bulk Entry")]

        if result.failed:
            table = Table(title="Failed entries", show_header=True, header_style="bold red")
            table.add_column("#", justify="right")
            table.add_column("Time slot")
            table.add_column("Reason")
            table.add_column("Hint", style="dim")
            for failure in result.failed:
                table.add_row(
                    str(failure.index + 1),
                    failure.candidate.time_slot_id,
                    failure.reason,
                    failure.error.hint,
                )
            parts.append(table)

        console = Console(record=True, width=120)
        for part in parts:
            console.print(part)
        return console.export_text()


# =============================================================================
# Bell Schedule
# =============================================================================

class BellScheduleFormatter:
    """Formats a generated bell schedule for preview."""

    def __init__(self, use_colors: bool = True):
        self.use_colors = use_colors

    def _rows(self, schedule: BellSchedule) -> list[tuple[str, str, str]]:
        rows = []
        for slot in schedule.time_slots:
            rows.append((f"Period {slot.period_number}", f"{slot.start_time}-{slot.end_time}", slot.display_time))
            for brk in schedule.breaks_after(slot.period_number, day=SCHOOL_DAYS[0]):
                rows.append((brk.name, f"{brk.duration_minutes} min", brk.type.value.replace("_", " ")))
        return rows

    def format(self, schedule: BellSchedule) -> str:
        footer = (
            f"{schedule.period_count} periods, ends {schedule.end_time}, "
            f"{schedule.total_minutes // 60}h {schedule.total_minutes % 60}m total"
        )
        if self.use_colors:
            table = Table(title="Bell Schedule", show_header=True, header_style="bold cyan", caption=footer)
            table.add_column("Slot")
            table.add_column("Time")
            table.add_column("Display", style="dim")
            for row in self._rows(schedule):
                table.add_row(*row)
            return _render(table, width=80)

        lines = [f"{name:<18} {time:<12} {display}" for name, time, display in self._rows(schedule)]
        lines.append(footer)
        return "\n".join(lines)
