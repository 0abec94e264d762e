"""Load school snapshots, time slots and lesson entries from JSON files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Union

import pydantic

from .models import Break, LessonEntry, LessonEntryInput, SchoolSnapshot, TimeSlot


class DataValidationError(Exception):
    """Raised when a data file fails validation."""
    pass


def _read_json(path: Union[str, Path]) -> Any:
    path = Path(path)
    with open(path) as f:
        return json.load(f)


def _describe(error: pydantic.ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(p) for p in err["loc"])
        parts.append(f"{location}: {err['msg']}" if location else err["msg"])
    return "; ".join(parts)


def load_school_snapshot(path: Union[str, Path]) -> SchoolSnapshot:
    """
    Load a school configuration snapshot from a JSON file.

    The file holds `levels`, `grades`, `streams`, `subjects` and `teachers`
    arrays in the backend's camelCase (snake_case is accepted too).

    Raises:
        FileNotFoundError: If the file doesn't exist
        json.JSONDecodeError: If the file isn't valid JSON
        DataValidationError: If the data fails validation
    """
    data = _read_json(path)
    try:
        return SchoolSnapshot.model_validate(data)
    except pydantic.ValidationError as e:
        raise DataValidationError(_describe(e)) from e


def load_entries(path: Union[str, Path]) -> list[LessonEntry]:
    """
    Load lesson entries from a JSON file.

    Accepts either a bare array or an object with an `entries` array.
    """
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("entries", [])
    if not isinstance(data, list):
        raise DataValidationError("Expected a list of entries")

    entries = []
    errors = []
    for i, item in enumerate(data):
        try:
            entries.append(LessonEntry.model_validate(item))
        except pydantic.ValidationError as e:
            errors.append(f"Entry {i}: {_describe(e)}")

    if errors:
        raise DataValidationError("; ".join(errors))

    seen: set[str] = set()
    for entry in entries:
        if entry.id in seen:
            errors.append(f"Duplicate entry ID: {entry.id}")
        seen.add(entry.id)
    if errors:
        raise DataValidationError("; ".join(errors))

    return entries


def load_time_slots(path: Union[str, Path]) -> tuple[list[TimeSlot], list[Break]]:
    """
    Load time slots and breaks from a JSON file.

    The file is an object with `timeSlots` and optional `breaks` arrays.
    Break days in files are 1-based like everywhere else in the package.
    """
    data = _read_json(path)
    if not isinstance(data, dict):
        raise DataValidationError("Expected an object with a 'timeSlots' array")
    try:
        slots = [TimeSlot.model_validate(s) for s in data.get("timeSlots", data.get("time_slots", []))]
        breaks = [Break.model_validate(b) for b in data.get("breaks", [])]
    except pydantic.ValidationError as e:
        raise DataValidationError(_describe(e)) from e
    return slots, breaks


def load_batch(path: Union[str, Path]) -> dict[str, Any]:
    """
    Load a bulk entry batch.

    Format:
        {"termId": ..., "gradeId": ..., "dayOfWeek": 1, "streamId": null,
         "entries": [{"timeSlotId": ..., "subjectId": ..., "teacherId": ...,
                      "roomNumber": ...}, ...]}

    Returns a dict with `term_id`, `grade_id`, `day_of_week`, `stream_id`
    and `candidates` (a list of LessonEntryInput).
    """
    data = _read_json(path)
    if not isinstance(data, dict):
        raise DataValidationError("Expected a batch object")

    term_id = data.get("termId", data.get("term_id", ""))
    grade_id = data.get("gradeId", data.get("grade_id", ""))
    stream_id = data.get("streamId", data.get("stream_id"))
    day = data.get("dayOfWeek", data.get("day_of_week", 1))

    candidates = []
    try:
        for item in data.get("entries", []):
            candidates.append(LessonEntryInput.model_validate({
                **item,
                "termId": term_id,
                "gradeId": grade_id,
                "streamId": stream_id,
                "dayOfWeek": day,
            }))
    except pydantic.ValidationError as e:
        raise DataValidationError(_describe(e)) from e

    return {
        "term_id": term_id,
        "grade_id": grade_id,
        "day_of_week": day,
        "stream_id": stream_id,
        "candidates": candidates,
    }
