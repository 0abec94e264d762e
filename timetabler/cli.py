"""
Command-line interface for the timetable editor.

Usage:
    python -m timetabler grades school.json
    python -m timetabler validate school.json entries.json --slots slots.json
    python -m timetabler view school.json entries.json --grade <id> --slots slots.json
    python -m timetabler bell-schedule --start 08:00 --duration 40 --periods 8
    python -m timetabler bulk batch.json
"""

from __future__ import annotations

import json
import logging
from contextlib import closing
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from .bell_schedule import DEFAULT_BREAKS, generate_bell_schedule
from .client import PersistenceClient
from .config import Settings
from .conflicts import find_conflicts
from .data.loader import (
    DataValidationError,
    load_batch,
    load_entries,
    load_school_snapshot,
    load_time_slots,
)
from .data.models import LessonEntry, SchoolSnapshot
from .errors import TimetableError
from .grades import classify_grade
from .grid import TimeGrid
from .output.formatters import (
    BellScheduleFormatter,
    BulkResultFormatter,
    GradeGridFormatter,
    TeacherScheduleFormatter,
)
from .registry import SchoolRegistry
from .session import TimetableSession

app = typer.Typer(
    name="timetabler",
    help="School timetable editing: grade ordering, conflict checks and bulk entry.",
    add_completion=False,
)

console = Console()

logger = logging.getLogger(__name__)


# =============================================================================
# Helper Functions
# =============================================================================

def load_snapshot(path: Path) -> SchoolSnapshot:
    """Load and validate a school snapshot, exiting on failure."""
    if not path.exists():
        console.print(f"[red]Error:[/red] File not found: {path}")
        raise typer.Exit(code=1)
    try:
        return load_school_snapshot(path)
    except (DataValidationError, json.JSONDecodeError) as e:
        console.print(f"[red]Error loading school data:[/red] {e}")
        raise typer.Exit(code=1)


def load_lessons(path: Path) -> list[LessonEntry]:
    if not path.exists():
        console.print(f"[red]Error:[/red] File not found: {path}")
        raise typer.Exit(code=1)
    try:
        return load_entries(path)
    except (DataValidationError, json.JSONDecodeError) as e:
        console.print(f"[red]Error loading entries:[/red] {e}")
        raise typer.Exit(code=1)


def build_grid(entries: list[LessonEntry], slots_file: Optional[Path]) -> TimeGrid:
    if slots_file is None:
        return TimeGrid(entries=entries)
    try:
        slots, breaks = load_time_slots(slots_file)
    except (DataValidationError, json.JSONDecodeError, OSError) as e:
        console.print(f"[red]Error loading time slots:[/red] {e}")
        raise typer.Exit(code=1)
    return TimeGrid(slots, breaks, entries)


def open_backend() -> PersistenceClient:
    """Client for the configured backend."""
    return PersistenceClient(Settings.from_env())


def print_error(error: TimetableError) -> None:
    console.print(f"[red]Error:[/red] {error}")
    console.print(f"[dim]{error.hint}[/dim]")


def reference_problems(registry: SchoolRegistry, entries: list[LessonEntry]) -> list[str]:
    """Entries whose ids do not resolve or whose subject/teacher do not suit the grade."""
    problems = []
    for entry in entries:
        grade = registry.grade_by_id(entry.grade_id)
        if grade is None:
            problems.append(f"{entry.id}: unknown grade '{entry.grade_id}'")
            continue
        if registry.subject_by_id(entry.subject_id) is None:
            problems.append(f"{entry.id}: unknown subject '{entry.subject_id}'")
        elif not registry.subject_offered(entry.subject_id, grade.id):
            problems.append(f"{entry.id}: subject '{entry.subject_id}' is not offered for {grade}")
        if registry.teacher_by_id(entry.teacher_id) is None:
            problems.append(f"{entry.id}: unknown teacher '{entry.teacher_id}'")
        elif not registry.teacher_allowed(entry.teacher_id, grade.id):
            problems.append(f"{entry.id}: teacher '{entry.teacher_id}' is not assigned to {grade}")
    return problems


# =============================================================================
# Commands
# =============================================================================

@app.callback()
def configure(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable debug logging",
    ),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.command()
def grades(
    snapshot_file: Path = typer.Argument(..., help="School snapshot JSON file"),
) -> None:
    """
    List grades in display order with their short labels.

    Example:
        python -m timetabler grades school.json
    """
    registry = SchoolRegistry(load_snapshot(snapshot_file))

    table = Table(title="Grades", show_header=True, header_style="bold cyan")
    table.add_column("Rank", justify="right")
    table.add_column("Label")
    table.add_column("Name")
    table.add_column("Group", style="dim")
    table.add_column("Streams", justify="right")

    for grade in registry.grades_sorted():
        info = classify_grade(grade.name)
        table.add_row(
            str(info.rank),
            info.label,
            grade.name or grade.id,
            info.group,
            str(len(registry.streams_for_grade(grade.id))),
        )
    console.print(table)


@app.command()
def validate(
    snapshot_file: Path = typer.Argument(..., help="School snapshot JSON file"),
    entries_file: Path = typer.Argument(..., help="Lesson entries JSON file"),
    slots_file: Optional[Path] = typer.Option(
        None,
        "--slots", "-s",
        help="Time slots JSON file; when given, entry slot ids are checked too",
    ),
) -> None:
    """
    Audit lesson entries for broken references and double bookings.

    Exits with code 1 if any problem is found.

    Example:
        python -m timetabler validate school.json entries.json
    """
    console.print(f"\n[bold]Validating:[/bold] {entries_file}\n")

    registry = SchoolRegistry(load_snapshot(snapshot_file))
    entries = load_lessons(entries_file)
    console.print(f"[green]Loaded:[/green] {len(entries)} entries")

    console.print("[cyan]1. Checking references...[/cyan]")
    problems = reference_problems(registry, entries)
    if slots_file is not None:
        grid = build_grid([], slots_file)
        for entry in entries:
            slot = grid.time_slot_by_id(entry.time_slot_id)
            if slot is None:
                problems.append(f"{entry.id}: unknown time slot '{entry.time_slot_id}'")
            elif not slot.applies_to(entry.day_of_week):
                problems.append(f"{entry.id}: {slot} does not run on day {entry.day_of_week}")
    for problem in problems:
        console.print(f"   [red]{problem}[/red]")
    if not problems:
        console.print("   [green]All references resolve[/green]")

    console.print("[cyan]2. Checking for double bookings...[/cyan]")
    conflicts = find_conflicts(entries)
    for conflict in conflicts:
        console.print(f"   [red]{conflict.describe()}[/red]")
    if not conflicts:
        console.print("   [green]No conflicts[/green]")

    if problems or conflicts:
        console.print(f"\n[red]Validation failed:[/red] {len(problems)} reference problems, {len(conflicts)} conflicts")
        raise typer.Exit(code=1)
    console.print("\n[green]Validation passed[/green]")


@app.command()
def view(
    snapshot_file: Path = typer.Argument(..., help="School snapshot JSON file"),
    entries_file: Path = typer.Argument(..., help="Lesson entries JSON file"),
    grade: Optional[str] = typer.Option(None, "--grade", "-g", help="Grade id to show"),
    teacher: Optional[str] = typer.Option(None, "--teacher", "-t", help="Teacher id to show"),
    term: Optional[str] = typer.Option(None, "--term", help="Term id (default: the entries' term)"),
    stream: Optional[str] = typer.Option(None, "--stream", help="Stream id within the grade"),
    slots_file: Optional[Path] = typer.Option(None, "--slots", "-s", help="Time slots JSON file"),
    plain: bool = typer.Option(False, "--plain", help="Plain text output"),
) -> None:
    """
    Show a grade's week grid or a teacher's schedule.

    Examples:
        python -m timetabler view school.json entries.json --grade <id> --slots slots.json
        python -m timetabler view school.json entries.json --teacher <id>
    """
    if not grade and not teacher:
        console.print("[red]Error:[/red] Pass --grade or --teacher")
        raise typer.Exit(code=1)

    registry = SchoolRegistry(load_snapshot(snapshot_file))
    entries = load_lessons(entries_file)
    grid = build_grid(entries, slots_file)

    term_id = term or next((e.term_id for e in entries), "")
    if not term_id:
        console.print("[red]Error:[/red] No term given and no entries to infer it from")
        raise typer.Exit(code=1)

    if grade:
        if registry.grade_by_id(grade) is None:
            console.print(f"[red]Error:[/red] Grade not found: {grade}")
            raise typer.Exit(code=1)
        if not grid.time_slots:
            console.print("[yellow]No time slots loaded; pass --slots to see the grid[/yellow]")
        formatter = GradeGridFormatter(registry, grid, use_colors=not plain)
        console.print(formatter.format(term_id, grade, stream), highlight=False, markup=False, soft_wrap=True)
    else:
        formatter = TeacherScheduleFormatter(registry, grid, use_colors=not plain)
        console.print(formatter.format(term_id, teacher), highlight=False, markup=False, soft_wrap=True)


@app.command("bell-schedule")
def bell_schedule(
    start: str = typer.Option("08:00", "--start", help="First period start time (HH:MM)"),
    duration: int = typer.Option(40, "--duration", "-d", help="Lesson length in minutes", min=1, max=240),
    periods: int = typer.Option(8, "--periods", "-p", help="Periods per day", min=1, max=20),
    no_breaks: bool = typer.Option(False, "--no-breaks", help="Omit the default breaks"),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Write the generated time slots and breaks as JSON",
    ),
    apply: bool = typer.Option(False, "--apply", help="Save the schedule to the backend"),
    plain: bool = typer.Option(False, "--plain", help="Plain text output"),
) -> None:
    """
    Preview a generated bell schedule.

    With --apply the time slots and breaks are created on the backend;
    lessons on the previous time slots have to be entered again.

    Example:
        python -m timetabler bell-schedule --start 08:00 --duration 45 --periods 10
    """
    try:
        schedule = generate_bell_schedule(start, duration, periods, breaks=() if no_breaks else DEFAULT_BREAKS)
    except TimetableError as e:
        print_error(e)
        raise typer.Exit(code=1)

    console.print(BellScheduleFormatter(use_colors=not plain).format(schedule), highlight=False, markup=False, soft_wrap=True)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "timeSlots": [s.to_wire() for s in schedule.time_slots],
            "breaks": [b.model_dump(by_alias=True, mode="json") for b in schedule.breaks],
        }
        output.write_text(json.dumps(data, indent=2))
        console.print(f"\n[green]Schedule saved to:[/green] {output}")

    if apply:
        with closing(open_backend()) as backend:
            try:
                time_slots, breaks = TimetableSession(backend).apply_bell_schedule(schedule)
            except TimetableError as e:
                print_error(e)
                raise typer.Exit(code=1)
        console.print(f"\n[green]Saved {len(time_slots)} time slots and {len(breaks)} breaks[/green]")


@app.command()
def bulk(
    batch_file: Path = typer.Argument(..., help="Batch JSON file", exists=True),
    plain: bool = typer.Option(False, "--plain", help="Plain text output"),
) -> None:
    """
    Submit a batch of lessons for one grade and day to the backend.

    Connection settings come from TIMETABLER_* environment variables or a
    .env file. Exits with code 1 if any entry fails.

    Example:
        python -m timetabler bulk batch.json
    """
    try:
        batch = load_batch(batch_file)
    except (DataValidationError, json.JSONDecodeError) as e:
        console.print(f"[red]Error loading batch:[/red] {e}")
        raise typer.Exit(code=1)

    with closing(open_backend()) as backend:
        session = TimetableSession(backend)
        try:
            session.refresh(batch["term_id"], batch["grade_id"])
            with Progress(
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("{task.completed}/{task.total}"),
                console=console,
                transient=True,
            ) as progress:
                task = progress.add_task("Creating lessons...", total=len(batch["candidates"]))
                result = session.bulk.submit(
                    batch["term_id"],
                    batch["grade_id"],
                    batch["day_of_week"],
                    batch["candidates"],
                    stream_id=batch["stream_id"],
                    on_progress=lambda i, n: progress.update(task, completed=i),
                )
        except TimetableError as e:
            print_error(e)
            raise typer.Exit(code=1)

    console.print(BulkResultFormatter(use_colors=not plain).format(result), highlight=False, markup=False, soft_wrap=True)
    if not result.ok:
        raise typer.Exit(code=1)


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
