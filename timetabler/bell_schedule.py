"""
Bell schedule generation.

Lays out a school day as consecutive periods of equal length starting at a
given time, with breaks inserted after configured periods. The clock moves
past each break, so every period after a break starts later.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from .data.models import (
    SCHOOL_DAYS,
    Break,
    BreakType,
    TimeSlot,
    minutes_to_time,
    normalize_time,
    time_to_minutes,
)
from .errors import ValidationError

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class BreakConfig:
    """A break to insert after `after_period`."""
    name: str
    after_period: int
    duration_minutes: int
    type: BreakType = BreakType.SHORT_BREAK
    enabled: bool = True


DEFAULT_BREAKS: tuple[BreakConfig, ...] = (
    BreakConfig("Morning Break", after_period=3, duration_minutes=15),
    BreakConfig("Lunch Break", after_period=6, duration_minutes=45, type=BreakType.LUNCH),
    BreakConfig("Afternoon Break", after_period=8, duration_minutes=15),
)


@dataclass
class BellSchedule:
    """Generated periods and breaks for one week."""
    time_slots: list[TimeSlot]
    breaks: list[Break]
    end_time: str
    total_minutes: int

    @property
    def period_count(self) -> int:
        return len(self.time_slots)

    def breaks_after(self, period_number: int, day: int = 1) -> list[Break]:
        return [
            b for b in self.breaks
            if b.after_period == period_number and b.day_of_week == day
        ]


def generate_bell_schedule(
    start_time: str,
    lesson_duration: int,
    number_of_periods: int,
    breaks: Sequence[BreakConfig] = DEFAULT_BREAKS,
    days: Optional[Sequence[int]] = None,
) -> BellSchedule:
    """
    Generate time slots and breaks for a day, repeated across school days.

    Args:
        start_time: First period's start, "HH:MM"
        lesson_duration: Minutes per period
        number_of_periods: Periods per day
        breaks: Break configuration; disabled entries and those after the
            last period are skipped
        days: Days the breaks apply to (default Monday-Friday)

    Returns:
        BellSchedule with slots `slot-1` .. `slot-N` valid on every day

    Raises:
        ValidationError: Bad start time, non-positive sizes, or a day that
            runs past midnight
    """
    try:
        start = time_to_minutes(normalize_time(start_time))
    except ValueError as e:
        raise ValidationError(str(e), field="start_time") from e
    if lesson_duration <= 0:
        raise ValidationError("Lesson duration must be positive.", field="lesson_duration")
    if number_of_periods <= 0:
        raise ValidationError("Number of periods must be at least 1.", field="number_of_periods")
    days = tuple(days) if days is not None else SCHOOL_DAYS

    active = sorted(
        (b for b in breaks if b.enabled and 1 <= b.after_period <= number_of_periods),
        key=lambda b: b.after_period,
    )

    slots: list[TimeSlot] = []
    placed: list[BreakConfig] = []
    current = start
    for period in range(1, number_of_periods + 1):
        period_end = current + lesson_duration
        if period_end >= MINUTES_PER_DAY:
            raise ValidationError(
                f"Period {period} would end after midnight.",
                field="number_of_periods",
                hint="Use fewer or shorter periods, or start earlier.",
            )
        slots.append(TimeSlot(
            id=f"slot-{period}",
            period_number=period,
            start_time=minutes_to_time(current),
            end_time=minutes_to_time(period_end),
        ))
        current = period_end

        for config in active:
            if config.after_period == period:
                placed.append(config)
                current += config.duration_minutes

    generated_breaks = [
        Break(
            id=f"break-{day}-{config.after_period}-{i}",
            name=config.name,
            type=config.type,
            day_of_week=day,
            after_period=config.after_period,
            duration_minutes=config.duration_minutes,
        )
        for day in days
        for i, config in enumerate(placed)
    ]

    logger.debug(
        "Generated %d periods from %s with %d breaks per day",
        len(slots), minutes_to_time(start), len(placed),
    )
    return BellSchedule(
        time_slots=slots,
        breaks=generated_breaks,
        end_time=minutes_to_time(current),
        total_minutes=current - start,
    )
