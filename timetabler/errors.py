"""
Error taxonomy for the scheduling core.

Local checks raise ValidationError and ConflictError before any network
call. ReferentialError and RemoteError describe ids that do not resolve and
backend rejections. Every error carries a short, user-actionable hint.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from timetabler.data.models import LessonEntry


class ConflictReason(str, Enum):
    """Why a candidate entry cannot take a slot."""
    TEACHER_BUSY = "teacher_busy"
    GRADE_BUSY = "grade_busy"


class TimetableError(Exception):
    """Base class for all scheduling errors."""

    default_hint = "Please try again."

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint or self.default_hint

    def __str__(self) -> str:
        return self.message


class ValidationError(TimetableError):
    """A required field is missing or malformed."""

    default_hint = "Fill in all required fields."

    def __init__(self, message: str, field: Optional[str] = None, hint: Optional[str] = None):
        super().__init__(message, hint)
        self.field = field


class ConflictError(TimetableError):
    """The slot is already taken by the teacher or by the grade."""

    def __init__(
        self,
        reason: ConflictReason,
        message: str,
        conflicting: Optional[LessonEntry] = None,
    ):
        hint = (
            "Choose a different teacher or time slot."
            if reason == ConflictReason.TEACHER_BUSY
            else "Choose a different time slot or edit the existing lesson."
        )
        super().__init__(message, hint)
        self.reason = reason
        self.conflicting = conflicting


class ReferentialError(TimetableError):
    """An id does not resolve in the registry or the time grid."""

    default_hint = "Reload the timetable data; it may be out of date."


class NotFoundError(TimetableError):
    """The lesson entry being edited does not exist."""

    default_hint = "Reload the timetable; the lesson may have been removed."


class RemoteError(TimetableError):
    """The persistence service rejected the request or did not answer."""

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, "Check your connection and try again.")
        self.code = code
        self.status_code = status_code
