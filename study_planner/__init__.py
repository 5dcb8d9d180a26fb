"""
study-planner: spaced-repetition mastery and scheduling engine.

Pure functions over an in-memory snapshot of subjects and topics:
decay, FSRS-lite retention, mastery/priority ranking, grade prediction,
Monte Carlo exam simulation and daily plan generation.
"""

__version__ = "0.1.0"

from study_planner.core import Subject, Topic, TopicStatus
from study_planner.study import (
    apply_decay,
    apply_decay_to_all,
    generate_daily_plan,
    initialize_memory_state,
    next_review_in_days,
    retrievability,
    topic_priority,
    update_memory_state,
    weighted_mastery_score,
)
from study_planner.prediction import predict_grade, simulate_exam_outcome

__all__ = [
    "Subject",
    "Topic",
    "TopicStatus",
    "apply_decay",
    "apply_decay_to_all",
    "weighted_mastery_score",
    "topic_priority",
    "initialize_memory_state",
    "update_memory_state",
    "retrievability",
    "next_review_in_days",
    "predict_grade",
    "simulate_exam_outcome",
    "generate_daily_plan",
]
