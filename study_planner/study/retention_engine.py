"""
Retention Engine - FSRS-lite memory model.

Tracks a two-variable memory state per topic:
1. Stability  - days until recall probability decays to the reference level
2. Difficulty - how strongly the material resists stability growth

Quiz scores (0-100) are mapped onto the four FSRS grades, the state is
updated on every attempt, and retrievability R = e^(-t/S) is inverted to
recommend the next review.

Based on:
- Ye (FSRS algorithm), simplified to a single forgetting curve
- Wozniak (SM algorithms) for the grade mapping
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

from loguru import logger

from study_planner.core.dates import days_since
from study_planner.core.models import MemoryState, QuizResult, Subject, Topic
from study_planner.core.scale import clamp, clamp_score


# =============================================================================
# FSRS-lite CONSTANTS
# =============================================================================

GRADE_AGAIN = 1  # Forgotten (score < 60)
GRADE_HARD = 2   # Recalled with difficulty (60-74)
GRADE_GOOD = 3   # Normal recall (75-89)
GRADE_EASY = 4   # Effortless recall (90+)

FSRS_PARAMS = {
    # Initial stability (days) per grade AGAIN..EASY
    "initialStability": [1.0, 2.5, 5.0, 10.0],
    # Initial difficulty per grade AGAIN..EASY
    "initialDifficulty": [0.9, 0.7, 0.5, 0.3],
    # Stability growth per grade on success (HARD, GOOD, EASY)
    "growth": {GRADE_HARD: 0.3, GRADE_GOOD: 0.8, GRADE_EASY: 1.4},
    # Extra growth for recalling after the memory has faded
    "spacingBonus": 2.0,
    # Fraction of stability kept after a lapse (before difficulty penalty)
    "lapseRetention": 0.4,
    "minStability": 1.0,
    "maximumInterval": 180,
    "minDifficulty": 0.1,
    "maxDifficulty": 1.0,
    "requestRetention": 0.85,
}

# Lowest retrievability reported; keeps R strictly positive
MIN_RETRIEVABILITY = 1e-9


def score_to_grade(score: float) -> int:
    """Convert a quiz score (0-100) to an FSRS grade (1-4)."""
    score = clamp_score(score)
    if score < 60:
        return GRADE_AGAIN
    if score < 75:
        return GRADE_HARD
    if score < 90:
        return GRADE_GOOD
    return GRADE_EASY


class FSRSScheduler:
    """
    FSRS-lite scheduler.

    Stateless apart from its parameters; every method returns new values.
    """

    def __init__(self, params: dict = None):
        self.params = params or FSRS_PARAMS
        self.max_interval = self.params["maximumInterval"]
        self.min_stability = self.params["minStability"]
        self.request_retention = self.params["requestRetention"]

    def initialize(self, score: float) -> MemoryState:
        """Seed a memory state from the first observed score."""
        grade = score_to_grade(score)
        stability = self.params["initialStability"][grade - 1]
        difficulty = self.params["initialDifficulty"][grade - 1]

        return MemoryState(
            stability=self._clamp_stability(stability),
            difficulty=self._clamp_difficulty(difficulty),
            reps=0 if grade == GRADE_AGAIN else 1,
            lapses=1 if grade == GRADE_AGAIN else 0,
        )

    def update(
        self,
        state: MemoryState,
        score: float,
        days_since_review: float = 0.0,
    ) -> MemoryState:
        """
        Process a quiz attempt and return the new memory state.

        Args:
            state: Current state (must come from initialize/update)
            score: Quiz score 0-100, clamped
            days_since_review: Days since the previous attempt

        Returns:
            New MemoryState
        """
        assert state is not None, "memory state must be initialized before update"

        grade = score_to_grade(score)
        r = self.retrievability(state, days_since_review)

        if grade == GRADE_AGAIN:
            return MemoryState(
                stability=self._next_forget_stability(state.difficulty, state.stability),
                difficulty=self._next_difficulty(state.difficulty, grade),
                reps=state.reps,
                lapses=state.lapses + 1,
            )

        return MemoryState(
            stability=self._next_recall_stability(state.difficulty, state.stability, r, grade),
            difficulty=self._next_difficulty(state.difficulty, grade),
            reps=state.reps + 1,
            lapses=state.lapses,
        )

    def retrievability(self, state: MemoryState, days_since_review: float) -> float:
        """Recall probability R = e^(-t/S), in (0, 1]."""
        assert state is not None, "memory state must be initialized before querying it"

        elapsed = max(0.0, days_since_review)
        if math.isinf(elapsed):
            return MIN_RETRIEVABILITY
        r = math.exp(-elapsed / state.stability)
        return clamp(r, MIN_RETRIEVABILITY, 1.0)

    def next_interval(self, state: MemoryState, target_retention: float = None) -> float:
        """Days after a review at which R falls to `target_retention`."""
        assert state is not None, "memory state must be initialized before scheduling"

        target = target_retention if target_retention is not None else self.request_retention
        target = clamp(target, MIN_RETRIEVABILITY, 1.0)
        return max(0.0, -state.stability * math.log(target))

    def _next_difficulty(self, d: float, grade: int) -> float:
        """Move difficulty against the grade: failures raise it, easy recalls lower it."""
        delta = (grade - 2.5) / 10  # AGAIN +0.15, HARD +0.05, GOOD -0.05, EASY -0.15
        return self._clamp_difficulty(d - delta)

    def _next_recall_stability(self, d: float, s: float, r: float, grade: int) -> float:
        """New stability after a successful recall."""
        growth = (
            self.params["growth"][grade]
            * (1.1 - d)
            * (1 + (1 - r) * self.params["spacingBonus"])
        )
        return self._clamp_stability(s * (1 + growth))

    def _next_forget_stability(self, d: float, s: float) -> float:
        """New stability after a lapse; never higher than before."""
        new_s = s * self.params["lapseRetention"] * (1.5 - d)
        return self._clamp_stability(min(s, new_s))

    def _clamp_stability(self, s: float) -> float:
        return clamp(s, self.min_stability, self.max_interval)

    def _clamp_difficulty(self, d: float) -> float:
        return clamp(d, self.params["minDifficulty"], self.params["maxDifficulty"])


_default_scheduler = FSRSScheduler()


# =============================================================================
# PUBLIC FUNCTIONS
# =============================================================================

def initialize_memory_state(score: float) -> MemoryState:
    """Seed a memory state from a topic's first quiz score."""
    return _default_scheduler.initialize(score)


def update_memory_state(
    state: MemoryState,
    score: float,
    days_since_review: float = 0.0,
) -> MemoryState:
    """Update a memory state with a new quiz score."""
    return _default_scheduler.update(state, score, days_since_review)


def retrievability(state: MemoryState, days_since_review: float) -> float:
    """Probability that the topic is still recallable after `days_since_review`."""
    return _default_scheduler.retrievability(state, days_since_review)


def next_review_in_days(state: MemoryState, target_retention: float = 0.85) -> float:
    """Days after a review until retrievability falls to `target_retention`."""
    return _default_scheduler.next_interval(state, target_retention)


def days_until_review(
    state: MemoryState,
    days_since_review: float,
    target_retention: float = 0.85,
) -> float:
    """Days left before the next review is due (0 when already due)."""
    return max(0.0, next_review_in_days(state, target_retention) - max(0.0, days_since_review))


def memory_state_from_history(
    history: tuple[QuizResult, ...] | list[QuizResult],
    scheduler: Optional[FSRSScheduler] = None,
) -> MemoryState | None:
    """
    Replay a quiz history (oldest first) into a memory state.

    Returns None for an empty history.
    """
    scheduler = scheduler or _default_scheduler
    state: MemoryState | None = None
    previous: date | None = None

    for quiz in history:
        if state is None:
            state = scheduler.initialize(quiz.score)
        else:
            state = scheduler.update(state, quiz.score, days_since(previous, quiz.date))
        previous = quiz.date

    return state


# =============================================================================
# REVIEW QUEUE
# =============================================================================

@dataclass(frozen=True)
class ReviewItem:
    """A topic whose memory has faded below the target retention."""

    subject_id: str
    topic: Topic
    retrievability: float
    stability: float
    days_overdue: float


def review_queue(
    subjects: list[Subject],
    today: date,
    target_retention: float = 0.85,
    max_reviews: int = 8,
) -> list[ReviewItem]:
    """
    Topics due for review, least retrievable first.

    Topics without a memory state are skipped; they have never been quizzed
    and belong to the new-material pass of the daily plan instead.
    """
    due: list[ReviewItem] = []

    for subject in subjects:
        for topic in subject.topics:
            state = topic.memory_state
            if state is None:
                continue

            elapsed = days_since(topic.last_reviewed, today)
            r = retrievability(state, elapsed)
            if r > target_retention:
                continue

            due.append(
                ReviewItem(
                    subject_id=subject.id,
                    topic=topic,
                    retrievability=r,
                    stability=state.stability,
                    days_overdue=elapsed - next_review_in_days(state, target_retention),
                )
            )

    due.sort(key=lambda item: item.retrievability)
    logger.debug(f"Review queue: {len(due)} due, returning {min(len(due), max_reviews)}")
    return due[:max_reviews]


def with_memory_state(topic: Topic) -> Topic:
    """Return the topic with its memory state rebuilt from quiz history."""
    return replace(topic, memory_state=memory_state_from_history(topic.quiz_history))
