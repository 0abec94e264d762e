"""Console output formatting."""

from .formatters import (
    BellScheduleFormatter,
    BulkResultFormatter,
    GradeGridFormatter,
    TeacherScheduleFormatter,
)

__all__ = [
    "BellScheduleFormatter",
    "BulkResultFormatter",
    "GradeGridFormatter",
    "TeacherScheduleFormatter",
]
