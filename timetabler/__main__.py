"""
Entry point for running timetabler as a module.

Usage:
    python -m timetabler grades school.json
    python -m timetabler validate school.json entries.json
    python -m timetabler bulk batch.json
"""

from timetabler.cli import main

if __name__ == "__main__":
    main()
