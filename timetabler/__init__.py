"""Timetabler - school timetable editing core."""

from .bulk import BulkEntryCoordinator, BulkResult, BulkState
from .client import PersistenceClient
from .config import Settings
from .editor import EntryEditor
from .grid import TimeGrid
from .registry import SchoolRegistry
from .session import TimetableSession
from .cli import app as cli_app

__all__ = [
    # Core
    "SchoolRegistry",
    "TimeGrid",
    "EntryEditor",
    "BulkEntryCoordinator",
    "BulkResult",
    "BulkState",
    "TimetableSession",
    # Backend
    "PersistenceClient",
    "Settings",
    # CLI
    "cli_app",
]
