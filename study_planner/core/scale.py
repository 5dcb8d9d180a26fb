"""Grade and score scales shared by every engine component."""

from __future__ import annotations

import math

GRADE_MIN = 2.0
GRADE_MAX = 6.0
SCORE_MIN = 0.0
SCORE_MAX = 100.0


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_grade(grade: float) -> float:
    """Clamp a grade onto the closed 2-6 scale."""
    return clamp(grade, GRADE_MIN, GRADE_MAX)


def clamp_score(score: float) -> float:
    """Clamp a quiz score onto 0-100."""
    return clamp(score, SCORE_MIN, SCORE_MAX)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def round_to_quarter(grade: float) -> float:
    """Round to the nearest quarter point (2.00, 2.25, ... 6.00)."""
    return round_half_up(grade * 4) / 4
