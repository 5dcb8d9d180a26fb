"""
Mastery Calculator for topic review ranking.

Calculates two read-only signals from a topic snapshot:
- Weighted mastery score (0-100): recency-weighted mean of quiz scores
- Review priority (>= 0): lower = more urgent to review

Both are plain query functions so collaborators (gamification, UI) can consume
them without the engine depending back on their state.
"""

from __future__ import annotations

from datetime import date
from typing import Sequence

from study_planner.core.dates import days_since
from study_planner.core.models import Subject, Topic, TopicStatus
from study_planner.core.scale import clamp_score, round_half_up

# Later attempts count up to (1 + RECENCY_BONUS)x an equivalent early attempt
RECENCY_BONUS = 0.5

# Priority formula
BLOOM_CUSHION_PER_LEVEL = 5
STALENESS_PER_DAY = 2
MAX_STALENESS_PENALTY = 20

STATUS_PRIORITY_PENALTY: dict[TopicStatus, int] = {
    TopicStatus.NOT_STARTED: 30,
    TopicStatus.WEAK: 20,
    TopicStatus.LEARNED: 10,
    TopicStatus.SOLID: 0,
}

# Share of a topic counted as covered, per status
COVERAGE_WEIGHTS: dict[TopicStatus, float] = {
    TopicStatus.NOT_STARTED: 0.0,
    TopicStatus.WEAK: 0.3,
    TopicStatus.LEARNED: 0.7,
    TopicStatus.SOLID: 1.0,
}


def recency_factor(index: int, history_length: int) -> float:
    """Weight multiplier for the attempt at `index` (0 = oldest)."""
    return 1 + RECENCY_BONUS * (index / history_length)


def weighted_mastery_score(topic: Topic) -> int:
    """
    Calculate the recency-weighted mastery score (0-100).

    Formula:
        round( Σ score_i × w_i × recency(i) / Σ w_i × recency(i) )

    Args:
        topic: Topic with quiz history (oldest first)

    Returns:
        Mastery score 0-100, exactly 0 when the history is empty
    """
    history = topic.quiz_history
    if not history:
        return 0

    weighted_sum = 0.0
    total_weight = 0.0
    n = len(history)

    for i, quiz in enumerate(history):
        effective_weight = max(0.0, quiz.weight) * recency_factor(i, n)
        weighted_sum += clamp_score(quiz.score) * effective_weight
        total_weight += effective_weight

    if total_weight <= 0:
        return 0

    return round_half_up(weighted_sum / total_weight)


def topic_priority(topic: Topic, today: date | None = None) -> float:
    """
    Calculate the review priority number (lower = more urgent).

    Starts from the mastery score, adds a cushion for deeper Bloom levels,
    subtracts a capped staleness penalty and a per-status penalty.

    Args:
        topic: Topic to score
        today: Reference day (defaults to date.today())

    Returns:
        Priority >= 0
    """
    today = today or date.today()

    priority = float(weighted_mastery_score(topic))
    priority += topic.current_bloom_level * BLOOM_CUSHION_PER_LEVEL
    # A review dated after `today` counts as fresh
    staleness = max(0.0, days_since(topic.last_reviewed, today))
    priority -= min(MAX_STALENESS_PENALTY, staleness * STALENESS_PER_DAY)
    priority -= STATUS_PRIORITY_PENALTY[topic.status]

    return max(0.0, priority)


def rank_topics(topics: Sequence[Topic], today: date | None = None) -> list[Topic]:
    """
    Sort topics most-urgent first.

    The sort is stable: equal priorities keep their collection order.
    """
    today = today or date.today()
    return sorted(topics, key=lambda t: topic_priority(t, today))


def subject_progress(subject: Subject) -> tuple[int, dict[TopicStatus, int]]:
    """
    Status-weighted completion percentage and per-status counts of a subject.

    Returns:
        Tuple of (percentage 0-100, counts by status)
    """
    counts = {status: 0 for status in TopicStatus}
    for topic in subject.topics:
        counts[topic.status] += 1

    total = sum(counts.values())
    if total == 0:
        return 0, counts

    weighted = sum(COVERAGE_WEIGHTS[status] * count for status, count in counts.items())
    return round_half_up(weighted / total * 100), counts
