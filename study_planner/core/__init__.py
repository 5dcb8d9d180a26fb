"""
Core Module - Shared domain models and scales.

Components:
- models: Topic, Subject and the closed status/size/bucket enums
- scale: Grade (2-6) and score (0-100) clamping and rounding
- dates: Calendar-day arithmetic

Design Principle:
The study/ and prediction/ packages import these types rather than passing
loosely shaped dicts around.
"""

from study_planner.core.models import (
    BLOOM_LEVELS,
    QUIZ_WEIGHTS,
    DailyStatus,
    ExamFormat,
    MemoryState,
    QuestionBankRecord,
    QuestionType,
    QuizResult,
    ScheduleEntry,
    Subject,
    TaskBucket,
    Topic,
    TopicSize,
    TopicStatus,
)
from study_planner.core.scale import (
    GRADE_MAX,
    GRADE_MIN,
    clamp_grade,
    clamp_score,
    round_half_up,
    round_to_quarter,
)

__all__ = [
    # Models
    "BLOOM_LEVELS",
    "QUIZ_WEIGHTS",
    "DailyStatus",
    "ExamFormat",
    "MemoryState",
    "QuestionBankRecord",
    "QuestionType",
    "QuizResult",
    "ScheduleEntry",
    "Subject",
    "TaskBucket",
    "Topic",
    "TopicSize",
    "TopicStatus",
    # Scale
    "GRADE_MIN",
    "GRADE_MAX",
    "clamp_grade",
    "clamp_score",
    "round_half_up",
    "round_to_quarter",
]
