"""
Study Module - mastery tracking and daily scheduling.

Provides:
- Decay state machine for unreviewed topics
- Retention optimization (FSRS-lite)
- Mastery and review-priority calculation
- Daily plan generation
"""

from study_planner.study.decay import apply_decay, apply_decay_to_all, grade_to_status
from study_planner.study.mastery_calculator import (
    rank_topics,
    subject_progress,
    topic_priority,
    weighted_mastery_score,
)
from study_planner.study.retention_engine import (
    FSRSScheduler,
    initialize_memory_state,
    next_review_in_days,
    retrievability,
    review_queue,
    update_memory_state,
)
from study_planner.study.planner import (
    DailyPlanner,
    DailyTask,
    PlanConfig,
    daily_workload,
    effective_minutes,
    generate_daily_plan,
    get_alerts,
)

__all__ = [
    "apply_decay",
    "apply_decay_to_all",
    "grade_to_status",
    "weighted_mastery_score",
    "topic_priority",
    "rank_topics",
    "subject_progress",
    "FSRSScheduler",
    "initialize_memory_state",
    "update_memory_state",
    "retrievability",
    "next_review_in_days",
    "review_queue",
    "DailyPlanner",
    "DailyTask",
    "PlanConfig",
    "generate_daily_plan",
    "effective_minutes",
    "daily_workload",
    "get_alerts",
]
