# gradesweep/analysis/grading.py

from __future__ import annotations

from typing import Iterable

from gradesweep.constants import (
    GRADE_ERROR,
    GRADE_NUM,
    GRADE_ORDER,
    SENTINEL_GRADES,
)

# ordinal -> letter
_BY_ORDINAL = {v: k for k, v in GRADE_ORDER.items()}

PASSING = frozenset({"A+", "A", "A-"})


def norm_grade(grade: str | None) -> str:
    return grade or GRADE_ERROR


def grade_num(grade: str) -> float:
    return GRADE_NUM.get(grade, 0.0)


def get_grades(grades: Iterable[str]) -> tuple[str, str]:
    """
    Lowest and highest grade of a set of endpoint grades.

    Running extremes start inverted (lowest at A+, highest at Err), so an
    empty input comes back as ("A+", "Err"). Callers substitute the timeout
    sentinel for hosts without endpoints before calling this.
    """
    lowest = GRADE_ORDER["A+"]
    highest = GRADE_ORDER["Err"]

    for g in grades:
        w = GRADE_ORDER.get(norm_grade(g), GRADE_ORDER[GRADE_ERROR])
        lowest = min(lowest, w)
        highest = max(highest, w)

    return _BY_ORDINAL[lowest], _BY_ORDINAL[highest]


def is_passing(grade: str, perfect: bool = False) -> bool:
    if grade in SENTINEL_GRADES:
        return False
    if perfect:
        return grade == "A+"
    return grade in PASSING


def grade_color(grade: str) -> str:
    if grade in PASSING:
        return "good"
    if grade in ("B", "C", "D", "E"):
        return "warn"
    return "bad"
