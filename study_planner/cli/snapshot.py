"""
Snapshot loading for the CLI.

A snapshot is a JSON file holding everything the engine reads:

    {
      "today": "2026-01-15",                     (optional)
      "subjects": [{"id": ..., "topics": [...], "exam_date": ..., "exam_format": ...}],
      "schedule": [{"day_of_week": 0, "subject_id": ..., "requires_preparation": true}],
      "daily_status": {"available_minutes": 240, "sick": false, ...},
      "question_bank": [{"subject_id": ..., "question_type": "mcq", "attempts": 10, "correct": 7}]
    }

The pydantic models validate the file; `to_domain()` converts them to the
engine's frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import List, Literal, Optional, Union

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from study_planner.core.models import (
    QUIZ_WEIGHTS,
    DailyStatus,
    ExamFormat,
    MemoryState,
    QuestionBankRecord,
    QuestionType,
    QuizResult,
    ScheduleEntry,
    Subject,
    Topic,
    TopicSize,
    TopicStatus,
)
from study_planner.prediction.exam_format import parse_exam_format
from study_planner.study.retention_engine import FSRSScheduler, memory_state_from_history


class SnapshotError(Exception):
    """Raised when a snapshot file cannot be read or validated."""


# ========================================
# Snapshot Schema
# ========================================


class QuizResultModel(BaseModel):
    date: date
    bloom_level: int = Field(default=1, ge=1, le=6)
    score: float
    question_count: int = 0
    correct_count: int = 0
    length: Optional[Literal["quick", "standard", "deep", "marathon"]] = None
    weight: Optional[float] = Field(default=None, ge=0)

    def resolved_weight(self) -> float:
        """Explicit weight, else the weight of the quiz length preset."""
        if self.weight is not None:
            return self.weight
        return QUIZ_WEIGHTS[self.length or "standard"]


class MemoryStateModel(BaseModel):
    stability: float = Field(gt=0)
    difficulty: float = Field(gt=0)
    reps: int = 0
    lapses: int = 0


class TopicModel(BaseModel):
    id: str
    name: str = ""
    status: TopicStatus = TopicStatus.NOT_STARTED
    last_reviewed: Optional[date] = None
    grades: List[float] = Field(default_factory=list)
    quiz_history: List[QuizResultModel] = Field(default_factory=list)
    current_bloom_level: int = Field(default=1, ge=1, le=6)
    memory_state: Optional[MemoryStateModel] = None
    size: Optional[TopicSize] = None
    reviewed_status: Optional[TopicStatus] = None


class ExamFormatModel(BaseModel):
    mcq: int = 0
    open_questions: int = 0
    case_studies: int = 0
    essays: int = 0
    topics_on_exam: int = 0


class SubjectModel(BaseModel):
    id: str
    name: str = ""
    topics: List[TopicModel] = Field(default_factory=list)
    exam_date: Optional[date] = None
    exam_format: Union[ExamFormatModel, str, None] = None  # free text is parsed


class ScheduleEntryModel(BaseModel):
    day_of_week: int = Field(ge=0, le=6)  # 0 = Monday
    subject_id: str
    requires_preparation: bool = True
    label: str = "Exercise"


class DailyStatusModel(BaseModel):
    available_minutes: float = Field(default=240, ge=0)
    sick: bool = False
    holiday: bool = False
    sleep_quality: int = Field(default=3, ge=1, le=5)
    energy: int = Field(default=3, ge=1, le=5)


class QuestionBankRecordModel(BaseModel):
    subject_id: str
    question_type: QuestionType = QuestionType.MCQ
    attempts: int = Field(default=0, ge=0)
    correct: int = Field(default=0, ge=0)
    linked_topic_ids: List[str] = Field(default_factory=list)


class SnapshotModel(BaseModel):
    today: Optional[date] = None
    subjects: List[SubjectModel] = Field(default_factory=list)
    schedule: List[ScheduleEntryModel] = Field(default_factory=list)
    daily_status: DailyStatusModel = Field(default_factory=DailyStatusModel)
    question_bank: List[QuestionBankRecordModel] = Field(default_factory=list)


# ========================================
# Domain Conversion
# ========================================


@dataclass(frozen=True)
class StudySnapshot:
    """Engine-ready view of a snapshot file."""

    subjects: list[Subject]
    schedule: list[ScheduleEntry]
    daily_status: DailyStatus
    question_bank: dict[str, list[QuestionBankRecord]] = field(default_factory=dict)
    today: Optional[date] = None

    def subject(self, subject_id: str) -> Subject:
        for subject in self.subjects:
            if subject.id == subject_id:
                return subject
        raise SnapshotError(f"Unknown subject: {subject_id}")


def _topic(model: TopicModel, scheduler: FSRSScheduler) -> Topic:
    history = tuple(
        QuizResult(
            date=q.date,
            bloom_level=q.bloom_level,
            score=q.score,
            question_count=q.question_count,
            correct_count=q.correct_count,
            weight=q.resolved_weight(),
        )
        for q in model.quiz_history
    )

    if model.memory_state is not None:
        state = MemoryState(**model.memory_state.model_dump())
    else:
        # Snapshots from older exports carry quiz history only
        state = memory_state_from_history(history, scheduler)

    return Topic(
        id=model.id,
        name=model.name,
        status=model.status,
        last_reviewed=model.last_reviewed,
        grades=tuple(model.grades),
        quiz_history=history,
        current_bloom_level=model.current_bloom_level,
        memory_state=state,
        size=model.size,
        reviewed_status=model.reviewed_status,
    )


def _exam_format(value: Union[ExamFormatModel, str, None]) -> ExamFormat | None:
    if value is None:
        return None
    if isinstance(value, str):
        return parse_exam_format(value)
    return ExamFormat(**value.model_dump())


def to_domain(model: SnapshotModel, scheduler: Optional[FSRSScheduler] = None) -> StudySnapshot:
    """Convert a validated snapshot into engine types."""
    scheduler = scheduler or FSRSScheduler()

    subjects = [
        Subject(
            id=s.id,
            name=s.name or s.id,
            topics=tuple(_topic(t, scheduler) for t in s.topics),
            exam_date=s.exam_date,
            exam_format=_exam_format(s.exam_format),
        )
        for s in model.subjects
    ]

    topic_ids = {s.id: {t.id for t in s.topics} for s in subjects}
    question_bank: dict[str, list[QuestionBankRecord]] = {}
    for record in model.question_bank:
        if record.subject_id not in topic_ids:
            raise SnapshotError(f"Question bank record for unknown subject: {record.subject_id}")
        unknown = set(record.linked_topic_ids) - topic_ids[record.subject_id]
        if unknown:
            raise SnapshotError(
                f"Question bank record for {record.subject_id} links unknown topic(s): {', '.join(sorted(unknown))}"
            )
        question_bank.setdefault(record.subject_id, []).append(
            QuestionBankRecord(
                question_type=record.question_type,
                attempts=record.attempts,
                correct=record.correct,
                linked_topic_ids=tuple(record.linked_topic_ids),
            )
        )

    return StudySnapshot(
        subjects=subjects,
        schedule=[ScheduleEntry(**e.model_dump()) for e in model.schedule],
        daily_status=DailyStatus(**model.daily_status.model_dump()),
        question_bank=question_bank,
        today=model.today,
    )


def load_snapshot(path: Path, scheduler: Optional[FSRSScheduler] = None) -> StudySnapshot:
    """
    Read and validate a snapshot file.

    Raises:
        SnapshotError: The file is missing, not JSON, or fails validation
    """
    path = Path(path)
    if not path.exists():
        raise SnapshotError(f"Snapshot not found: {path}")

    try:
        model = SnapshotModel.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise SnapshotError(f"Invalid snapshot {path}: {e}") from e
    except OSError as e:
        raise SnapshotError(f"Cannot read snapshot {path}: {e}") from e

    snapshot = to_domain(model, scheduler)
    logger.debug(
        f"Loaded snapshot {path}: {len(snapshot.subjects)} subject(s), "
        f"{sum(len(s.topics) for s in snapshot.subjects)} topic(s)"
    )
    return snapshot
