"""
Grade name classification, abbreviation and ordering.

Free-text grade names ("Grade 7", "PP1", "Baby Class", "Form 2") are
classified into a tagged variant, from which a display label and a sort
rank are derived. Every input yields a classification; nothing here raises.

Ranks:
    1       Play group / baby class           PG
    2-4     Pre-primary 1-3                   PP1-PP3
    5-10    Grades 1-6                        G1-G6
    11+     Grade 7 and up (= Form 1 and up)  F1, F2, ...
    999     Anything else                     first two characters
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Protocol, Sequence, TypeVar


class GradeKind(str, Enum):
    EARLY_YEARS = "early_years"
    PRIMARY = "primary"
    FORM = "form"
    UNKNOWN = "unknown"


UNRANKED = 999
PRIMARY_GRADES = 6

# Grade 7 is locally renamed Form 1
FORM_OFFSET = PRIMARY_GRADES

_FIRST_NUMBER = re.compile(r"\d+")

_PRE_PRIMARY = (
    (1, ("pp1", "pre-primary 1")),
    (2, ("pp2", "pre-primary 2")),
    (3, ("pp3", "pre-primary 3")),
)

# Unnumbered early-years names keep a recognisable label but are unranked
_NAMED_LABELS = (
    ("early childhood", "EC"),
    ("kindergarten", "KG"),
    ("nursery", "NS"),
    ("reception", "RC"),
)


@dataclass(frozen=True)
class GradeClass:
    """Classification of a grade name."""
    kind: GradeKind
    number: int = 0
    label: str = ""

    @property
    def rank(self) -> int:
        if self.kind == GradeKind.EARLY_YEARS:
            # 0 = play group, 1-3 = PP1-PP3
            return 1 + self.number
        if self.kind == GradeKind.PRIMARY:
            return 4 + self.number
        if self.kind == GradeKind.FORM:
            return 4 + FORM_OFFSET + self.number
        return UNRANKED

    @property
    def group(self) -> str:
        """Display group: preschool, primary, form or other."""
        if self.kind == GradeKind.EARLY_YEARS:
            return "preschool"
        if self.kind == GradeKind.UNKNOWN:
            return "other"
        return self.kind.value


def _is_play_group(name: str) -> bool:
    if name in ("baby", "play group", "playgroup"):
        return True
    if name.startswith("baby") or "play group" in name or "baby class" in name:
        return True
    return "baby" in name and "pp1" not in name and "pp2" not in name


def classify_grade(name: str) -> GradeClass:
    """
    Classify a free-text grade name.

    "Form N" is read as grade N+6, so "Form 2" and "Grade 8" classify
    identically.
    """
    raw = (name or "").strip()
    lower = raw.lower()

    if _is_play_group(lower):
        return GradeClass(GradeKind.EARLY_YEARS, 0, "PG")

    for number, needles in _PRE_PRIMARY:
        if any(needle in lower for needle in needles):
            return GradeClass(GradeKind.EARLY_YEARS, number, f"PP{number}")

    match = _FIRST_NUMBER.search(lower)
    if match:
        n = int(match.group())
        if lower.startswith("form") and n >= 1:
            n += FORM_OFFSET
        if 1 <= n <= PRIMARY_GRADES:
            return GradeClass(GradeKind.PRIMARY, n, f"G{n}")
        if n > PRIMARY_GRADES:
            form = n - FORM_OFFSET
            return GradeClass(GradeKind.FORM, form, f"F{form}")

    for needle, label in _NAMED_LABELS:
        if needle in lower:
            return GradeClass(GradeKind.UNKNOWN, 0, label)

    return GradeClass(GradeKind.UNKNOWN, 0, raw[:2].capitalize())


def abbreviate_grade(name: str) -> str:
    """Short display label for a grade name."""
    return classify_grade(name).label


def grade_sort_order(name: str) -> int:
    """Sort rank for a grade name; 999 for names that are not recognised."""
    return classify_grade(name).rank


def grade_sort_key(name: str) -> tuple[int, str]:
    """Total-order key: rank, then the lower-cased name."""
    return (grade_sort_order(name), (name or "").strip().lower())


class _Named(Protocol):
    name: str


G = TypeVar("G", bound=_Named)


def sort_grades(grades: Iterable[G]) -> list[G]:
    """Sort grade-like objects by their names."""
    return sorted(grades, key=lambda g: grade_sort_key(g.name))


def group_grades(grades: Iterable[G]) -> dict[str, list[G]]:
    """
    Bucket grades into preschool, primary, form and other, each sorted.
    """
    groups: dict[str, list[G]] = {"preschool": [], "primary": [], "form": [], "other": []}
    for grade in sort_grades(grades):
        groups[classify_grade(grade.name).group].append(grade)
    return groups


def filter_grades(grades: Sequence[G], search: str) -> list[G]:
    """Grades whose name or label contains `search` (case-insensitive)."""
    term = (search or "").strip().lower()
    if not term:
        return list(grades)
    return [
        g for g in grades
        if term in (g.name or "").lower() or term in abbreviate_grade(g.name).lower()
    ]
