"""
Bulk lesson creation.

A batch is a list of candidate entries for one (term, grade, day). After
batch-level checks pass, each candidate is validated against the grid plus
the candidates accepted earlier in the same batch, then submitted on its
own. Failures are collected per entry; nothing is rolled back. Once the
batch is done the (term, grade) is reloaded from the backend.

State machine:
    IDLE -> VALIDATING -> SUBMITTING -> COMPLETED | COMPLETED_WITH_ERRORS
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Sequence

from .client import Backend
from .data.models import (
    SCHOOL_DAYS,
    LessonEntry,
    LessonEntryInput,
    WeekTemplate,
    WeekTemplateInput,
    day_name,
    is_well_formed_id,
    normalize_time,
)
from .editor import EntryValidator
from .errors import TimetableError, ValidationError
from .grid import TimeGrid
from .registry import SchoolRegistry

logger = logging.getLogger(__name__)

MIN_PERIOD_DURATION = 15
MAX_PERIOD_DURATION = 240
MAX_PERIODS_PER_DAY = 20

ProgressCallback = Callable[[int, int], None]


class BulkState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"


@dataclass
class EntryFailure:
    """A candidate that was not created, and why."""
    index: int
    candidate: LessonEntryInput
    error: TimetableError

    @property
    def reason(self) -> str:
        return str(self.error)


@dataclass
class BulkResult:
    """Outcome of one batch."""
    total: int
    succeeded: list[LessonEntry] = field(default_factory=list)
    failed: list[EntryFailure] = field(default_factory=list)
    state: BulkState = BulkState.IDLE

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def reasons(self) -> list[str]:
        return [f.reason for f in self.failed]

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        if self.ok:
            return f"Created {self.success_count} lesson{'s' if self.success_count != 1 else ''}"
        return f"Created {self.success_count} of {self.total}; {self.failure_count} failed"


class BulkEntryCoordinator:
    """
    Validate and submit batches of lesson entries.

    Usage:
        coordinator = BulkEntryCoordinator(registry, grid, client)
        result = coordinator.submit(term_id, grade_id, 1, candidates)
        for failure in result.failed:
            print(failure.index, failure.reason)
    """

    def __init__(self, registry: SchoolRegistry, grid: TimeGrid, backend: Backend):
        self.registry = registry
        self.grid = grid
        self.backend = backend
        self.validator = EntryValidator(registry, grid)
        self.state = BulkState.IDLE
        self.progress: tuple[int, int] = (0, 0)

    def reset(self) -> None:
        """Return to IDLE after a finished batch."""
        self.state = BulkState.IDLE
        self.progress = (0, 0)

    # -------------------------------------------------------------------------
    # Lesson batches
    # -------------------------------------------------------------------------

    def prepare(
        self,
        term_id: str,
        grade_id: str,
        day_of_week: int,
        candidates: Sequence[LessonEntryInput],
        stream_id: Optional[str] = None,
    ) -> list[LessonEntryInput]:
        """
        Batch-level checks; returns the candidates bound to the batch's
        term, grade, stream and day.

        Raises:
            ValidationError: The batch as a whole is unusable
        """
        if not term_id:
            raise ValidationError("No term selected. Please select a term first.", field="term_id")
        if not grade_id:
            raise ValidationError("Please select a grade first.", field="grade_id")
        if day_of_week not in SCHOOL_DAYS:
            raise ValidationError(f"day_of_week must be between 1 and 5, got {day_of_week}", field="day_of_week")
        if not candidates:
            raise ValidationError("Add at least one lesson to the batch.", field="entries")

        bound = [
            c.model_copy(update={
                "term_id": term_id,
                "grade_id": grade_id,
                "stream_id": stream_id,
                "day_of_week": day_of_week,
            })
            for c in candidates
        ]

        incomplete = [i + 1 for i, c in enumerate(bound) if c.missing_fields()]
        if incomplete:
            raise ValidationError(
                "Please fill in all required fields (time slot, subject, teacher) "
                f"for entries {', '.join(map(str, incomplete))}.",
                field="entries",
            )

        invalid_ids = []
        for i, c in enumerate(bound, start=1):
            for name in ("term_id", "grade_id", "time_slot_id", "subject_id", "teacher_id"):
                if not is_well_formed_id(getattr(c, name)):
                    invalid_ids.append(f"Entry {i}: {name}")
        if invalid_ids:
            raise ValidationError(
                f"Invalid ID format detected: {', '.join(invalid_ids)}.",
                field="entries",
                hint="Reload the page to refresh identifiers.",
            )
        return bound

    def submit(
        self,
        term_id: str,
        grade_id: str,
        day_of_week: int,
        candidates: Sequence[LessonEntryInput],
        stream_id: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BulkResult:
        """
        Validate and create each candidate independently.

        Candidates are handled in the given order; a candidate is checked
        against the grid and every candidate accepted before it. A failed
        candidate never blocks later ones.

        Raises:
            ValidationError: Batch-level preconditions failed; nothing was sent
        """
        self.state = BulkState.VALIDATING
        try:
            bound = self.prepare(term_id, grade_id, day_of_week, candidates, stream_id)
        except ValidationError:
            self.state = BulkState.IDLE
            raise

        total = len(bound)
        result = BulkResult(total=total)
        accepted: list[LessonEntry] = []
        logger.info(
            "Submitting %d entries for grade %s on %s",
            total, grade_id, day_name(day_of_week),
        )

        self.state = BulkState.SUBMITTING
        for index, candidate in enumerate(bound):
            self.progress = (index + 1, total)
            if on_progress is not None:
                on_progress(index + 1, total)

            try:
                self.validator.check_references(candidate)
                self.validator.check_slot(candidate, [*self.grid.entries, *accepted])
            except TimetableError as e:
                logger.info("Entry %d rejected: %s", index + 1, e)
                result.failed.append(EntryFailure(index, candidate, e))
                continue

            # Held as a pending entry until the backend assigns its id
            placeholder = LessonEntry.pending(candidate)
            accepted.append(placeholder)
            try:
                saved = self.backend.create_entry(candidate)
            except TimetableError as e:
                logger.info("Entry %d rejected by the backend: %s", index + 1, e)
                accepted.pop()
                result.failed.append(EntryFailure(index, candidate, e))
                continue

            accepted[-1] = saved
            result.succeeded.append(saved)

        self._reload(term_id, grade_id, accepted)

        result.state = BulkState.COMPLETED if result.ok else BulkState.COMPLETED_WITH_ERRORS
        self.state = result.state
        logger.info(result.summary())
        return result

    def _reload(self, term_id: str, grade_id: str, accepted: list[LessonEntry]) -> None:
        """Replace local state with the backend's view of the (term, grade)."""
        try:
            entries = self.backend.list_entries(term_id, grade_id)
        except TimetableError as e:
            # Keep what the backend acknowledged; the next refresh reconciles
            logger.warning("Reload after batch failed: %s", e)
            for entry in accepted:
                self.grid.put(entry)
            return
        self.grid.replace_scope(term_id, grade_id, entries)

    # -------------------------------------------------------------------------
    # Week templates
    # -------------------------------------------------------------------------

    def validate_week_template(self, template: WeekTemplateInput) -> WeekTemplateInput:
        """
        Whole-template checks. Returns the template with a normalized start time.

        Raises:
            ValidationError: Any field is missing or out of range
        """
        if not template.name.strip():
            raise ValidationError("Template name is required.", field="name")
        if not template.term_id:
            raise ValidationError("No term selected. Please select a term first.", field="term_id")
        if not template.grade_level_ids:
            raise ValidationError("Select at least one grade.", field="grade_level_ids")
        unknown = [g for g in template.grade_level_ids if self.registry.grade_by_id(g) is None]
        if unknown:
            raise ValidationError(
                f"Unknown grades: {', '.join(unknown)}",
                field="grade_level_ids",
                hint="Reload the grade list and try again.",
            )
        if not 1 <= template.period_count <= MAX_PERIODS_PER_DAY:
            raise ValidationError(
                f"Number of periods must be between 1 and {MAX_PERIODS_PER_DAY}.",
                field="period_count",
            )
        if not MIN_PERIOD_DURATION <= template.period_duration <= MAX_PERIOD_DURATION:
            raise ValidationError(
                f"Period duration must be between {MIN_PERIOD_DURATION} and "
                f"{MAX_PERIOD_DURATION} minutes.",
                field="period_duration",
            )
        if not 1 <= template.number_of_days <= 7:
            raise ValidationError("Days per week must be between 1 and 7.", field="number_of_days")
        try:
            start = normalize_time(template.start_time)
        except ValueError as e:
            raise ValidationError(str(e), field="start_time") from e
        return template.model_copy(update={"start_time": start})

    def create_week_template(
        self,
        template: WeekTemplateInput,
        on_progress: Optional[ProgressCallback] = None,
    ) -> WeekTemplate:
        """
        Validate a week template and create it in one backend call.

        The backend generates the day templates and periods; the local time
        slots are not reloaded here.
        """
        self.state = BulkState.VALIDATING
        try:
            valid = self.validate_week_template(template)
        except ValidationError:
            self.state = BulkState.IDLE
            raise

        self.state = BulkState.SUBMITTING
        self.progress = (1, 1)
        if on_progress is not None:
            on_progress(1, 1)
        try:
            created = self.backend.create_week_template(valid)
        except TimetableError:
            self.state = BulkState.COMPLETED_WITH_ERRORS
            raise

        self.state = BulkState.COMPLETED
        logger.info(
            "Created week template %s with %d day templates",
            created.name, len(created.day_templates),
        )
        return created
