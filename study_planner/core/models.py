"""
Core Domain Models.

Snapshot types read by the mastery & scheduling engine. The persistence layer
builds these, the engine only reads them and returns new derived values.

Design:
- TopicStatus / TopicSize / TaskBucket: closed enums, every lookup table in the
  engine is keyed by all of their members
- Topic / Subject: immutable dataclasses (tuples for collections) so the engine
  can never mutate a caller's snapshot
- MemoryState: opaque spaced-repetition state, built via retention_engine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from study_planner.core.scale import clamp_grade


class TopicStatus(str, Enum):
    """
    Coarse mastery bucket for a topic.

    Ordered: NOT_STARTED < WEAK < LEARNED < SOLID.
    """

    NOT_STARTED = "not_started"
    WEAK = "weak"
    LEARNED = "learned"
    SOLID = "solid"

    @property
    def rank(self) -> int:
        """Position in the mastery order (0 = not started)."""
        return {
            TopicStatus.NOT_STARTED: 0,
            TopicStatus.WEAK: 1,
            TopicStatus.LEARNED: 2,
            TopicStatus.SOLID: 3,
        }[self]

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return self.value.replace("_", " ").title()

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            TopicStatus.NOT_STARTED: "dim",
            TopicStatus.WEAK: "red",
            TopicStatus.LEARNED: "yellow",
            TopicStatus.SOLID: "green",
        }[self]


class TopicSize(str, Enum):
    """Study-effort estimate for a topic."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"

    @property
    def minutes(self) -> int:
        """Nominal minutes needed to work through a topic of this size."""
        return {
            TopicSize.SMALL: 15,
            TopicSize.MEDIUM: 30,
            TopicSize.LARGE: 60,
        }[self]


class TaskBucket(str, Enum):
    """Daily plan buckets, in allocation order."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    NORMAL = "normal"


class QuestionType(str, Enum):
    """Item types found in question banks and exam formats."""

    MCQ = "mcq"
    OPEN = "open"
    CASE_STUDY = "case_study"


# Bloom's Taxonomy (1-6)
BLOOM_LEVELS: dict[int, str] = {
    1: "Remember",
    2: "Understand",
    3: "Apply",
    4: "Analyze",
    5: "Evaluate",
    6: "Create",
}

# Quiz length presets -> weight of one attempt
QUIZ_WEIGHTS: dict[str, float] = {
    "quick": 0.5,
    "standard": 1.0,
    "deep": 1.5,
    "marathon": 2.0,
}


@dataclass(frozen=True)
class QuizResult:
    """One quiz attempt on a topic."""

    date: date
    bloom_level: int
    score: float  # 0-100
    question_count: int = 0
    correct_count: int = 0
    weight: float = 1.0


@dataclass(frozen=True)
class MemoryState:
    """
    Spaced-repetition memory state for a topic.

    Attributes:
        stability: Days until retrievability decays to the reference threshold
        difficulty: Resistance to stability growth, clamped to [0.1, 1.0]
        reps: Successful reviews
        lapses: Reviews scored as forgotten
    """

    stability: float
    difficulty: float
    reps: int = 0
    lapses: int = 0


@dataclass(frozen=True)
class Topic:
    """Atomic unit of study."""

    id: str
    name: str = ""
    status: TopicStatus = TopicStatus.NOT_STARTED
    last_reviewed: date | None = None
    grades: tuple[float, ...] = ()
    quiz_history: tuple[QuizResult, ...] = ()
    current_bloom_level: int = 1
    memory_state: MemoryState | None = None
    size: TopicSize | None = None
    # Status at the last review; decay is measured from here
    reviewed_status: TopicStatus | None = None

    @property
    def avg_grade(self) -> float | None:
        """Mean of the recorded grades (each clamped to 2-6), None if ungraded."""
        if not self.grades:
            return None
        return sum(clamp_grade(g) for g in self.grades) / len(self.grades)


@dataclass(frozen=True)
class ExamFormat:
    """Structured description of what a real exam contains."""

    mcq: int = 0
    open_questions: int = 0
    case_studies: int = 0
    essays: int = 0
    topics_on_exam: int = 0
    raw: str = ""

    @property
    def total_items(self) -> int:
        return self.mcq + self.open_questions + self.case_studies + self.essays


@dataclass(frozen=True)
class Subject:
    """Named collection of topics with an optional exam."""

    id: str
    name: str = ""
    topics: tuple[Topic, ...] = ()
    exam_date: date | None = None
    exam_format: ExamFormat | None = None


@dataclass(frozen=True)
class DailyStatus:
    """Ephemeral per-day modifiers of the study budget."""

    available_minutes: float
    sick: bool = False
    holiday: bool = False
    sleep_quality: int = 3  # 1-5
    energy: int = 3  # 1-5


@dataclass(frozen=True)
class ScheduleEntry:
    """Recurring weekly calendar item."""

    day_of_week: int  # 0 = Monday
    subject_id: str
    requires_preparation: bool = True
    label: str = "Exercise"


@dataclass(frozen=True)
class QuestionBankRecord:
    """Aggregated practice stats for one external question-bank item."""

    question_type: QuestionType = QuestionType.MCQ
    attempts: int = 0
    correct: int = 0
    linked_topic_ids: tuple[str, ...] = field(default_factory=tuple)
