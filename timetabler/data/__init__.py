"""Data models and loading utilities."""

from .loader import (
    DataValidationError,
    load_batch,
    load_entries,
    load_school_snapshot,
    load_time_slots,
)

__all__ = [
    "DataValidationError",
    "load_batch",
    "load_entries",
    "load_school_snapshot",
    "load_time_slots",
]
