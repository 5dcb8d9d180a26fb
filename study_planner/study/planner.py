"""
Daily Plan Generator.

Partitions a day's study budget into ordered task buckets:

1. CRITICAL - preparation for tomorrow's classes (40% of the budget)
2. HIGH     - exams within a week, nearest first (50% of what remains)
3. MEDIUM   - topics going stale, unreviewed 7+ days (30% of what remains)
4. NORMAL   - new material while more than 15 minutes remain

Each pass only draws from the minutes earlier passes left, so underspend
rolls forward. Also provides the budget inputs (effective minutes, topic
workload) and the dashboard alerts derived from the same signals.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, Sequence

from loguru import logger

from study_planner.core.dates import days_since, days_until, tomorrow_weekday
from study_planner.core.models import (
    DailyStatus,
    ScheduleEntry,
    Subject,
    TaskBucket,
    Topic,
    TopicSize,
    TopicStatus,
)
from study_planner.core.scale import round_half_up
from study_planner.prediction.exam_format import analyze_exam_format
from study_planner.study.mastery_calculator import rank_topics


@dataclass
class PlanConfig:
    """Configuration for daily plan allocation."""
    critical_share: float = 0.40
    high_share: float = 0.50
    medium_share: float = 0.30
    medium_split: int = 2
    max_critical_topics: int = 5
    max_high_topics: int = 8
    max_medium_topics: int = 5
    max_new_topics: int = 3
    exam_window_days: int = 7
    stale_after_days: int = 7
    new_material_ratio: float = 0.5
    min_normal_minutes: float = 15


@dataclass(frozen=True)
class DailyTask:
    """One block of today's plan."""
    subject_id: str
    bucket: TaskBucket
    label: str
    description: str
    topics: tuple[Topic, ...]
    estimated_minutes: int
    topic_minutes: dict[str, int] = field(default_factory=dict)


def _topic_minutes(topics: Sequence[Topic], minutes: float) -> dict[str, int]:
    """Split a task's minutes across its topics in proportion to topic size."""
    sizes = [(t.size or TopicSize.MEDIUM).minutes for t in topics]
    total = sum(sizes)
    if total == 0:
        return {}
    return {t.id: round_half_up(minutes * s / total) for t, s in zip(topics, sizes)}


def _exam_description(subject: Subject) -> str:
    """Exam-prep description, pointing at the item types the learner is weak on."""
    analysis = analyze_exam_format(subject)
    fmt = subject.exam_format
    if analysis is None or fmt is None:
        return "Intensive exam preparation"
    if analysis.case_weakness:
        return f"Exam preparation: {fmt.case_studies} case stud{'y' if fmt.case_studies == 1 else 'ies'}, practice analysis"
    if analysis.open_weakness:
        items = fmt.open_questions + fmt.essays
        return f"Exam preparation: {items} open-answer item(s), practice written answers"
    if fmt.mcq:
        return f"Exam preparation: {fmt.mcq} multiple-choice items, drill recall"
    return "Intensive exam preparation"


class DailyPlanner:
    """
    Allocates a daily minute budget across task buckets.

    Passes run in fixed order and never exceed the remaining budget.
    """

    def __init__(self, config: Optional[PlanConfig] = None):
        self.config = config or PlanConfig()

    def generate(
        self,
        subjects: Sequence[Subject],
        schedule: Sequence[ScheduleEntry],
        effective_minutes: float,
        today: date,
    ) -> list[DailyTask]:
        """
        Build today's task list.

        Args:
            subjects: All subjects (already decayed)
            schedule: Recurring weekly schedule
            effective_minutes: Budget after daily modifiers
            today: Reference day

        Returns:
            Tasks in bucket order
        """
        total = max(0.0, float(effective_minutes))
        tasks: list[DailyTask] = []
        remaining = total

        remaining = self._critical_pass(subjects, schedule, total, remaining, today, tasks)
        remaining = self._high_pass(subjects, remaining, today, tasks)
        remaining = self._medium_pass(subjects, remaining, today, tasks)
        remaining = self._normal_pass(subjects, remaining, today, tasks)

        logger.info(
            f"Daily plan: {len(tasks)} task(s), "
            f"{sum(t.estimated_minutes for t in tasks)}/{round_half_up(total)} min allocated"
        )
        return tasks

    def _task(
        self,
        subject: Subject,
        bucket: TaskBucket,
        label: str,
        description: str,
        topics: Sequence[Topic],
        minutes: float,
    ) -> DailyTask:
        return DailyTask(
            subject_id=subject.id,
            bucket=bucket,
            label=label,
            description=description,
            topics=tuple(topics),
            estimated_minutes=round_half_up(minutes),
            topic_minutes=_topic_minutes(topics, minutes),
        )

    def _critical_pass(self, subjects, schedule, total, remaining, today, tasks) -> float:
        by_id = {s.id: s for s in subjects}
        weekday = tomorrow_weekday(today)
        entries = [e for e in schedule if e.day_of_week == weekday and e.requires_preparation]
        if not entries:
            return remaining

        share = total * self.config.critical_share / len(entries)
        for entry in entries:
            if remaining <= 0:
                break
            subject = by_id.get(entry.subject_id)
            if subject is None:
                continue
            candidates = [t for t in subject.topics if t.status is not TopicStatus.SOLID]
            topics = rank_topics(candidates, today)[: self.config.max_critical_topics]
            if not topics:
                continue

            minutes = min(share, remaining)
            tasks.append(
                self._task(
                    subject,
                    TaskBucket.CRITICAL,
                    f"{entry.label} tomorrow",
                    f"Prepare for {entry.label.lower()}",
                    topics,
                    minutes,
                )
            )
            remaining -= minutes
            logger.debug(f"Critical: {subject.id} gets {minutes:.1f} min for {len(topics)} topic(s)")

        return remaining

    def _high_pass(self, subjects, remaining, today, tasks) -> float:
        window = self.config.exam_window_days
        exam_subjects = [
            s for s in subjects if 0 <= days_until(s.exam_date, today) <= window
        ]
        exam_subjects.sort(key=lambda s: days_until(s.exam_date, today))
        if not exam_subjects:
            return remaining

        share = remaining * self.config.high_share / len(exam_subjects)
        for subject in exam_subjects:
            if remaining <= 0:
                break
            candidates = [t for t in subject.topics if t.status is not TopicStatus.SOLID]
            topics = rank_topics(candidates, today)[: self.config.max_high_topics]
            if not topics:
                continue

            days_left = int(days_until(subject.exam_date, today))
            minutes = min(share, remaining)
            tasks.append(
                self._task(
                    subject,
                    TaskBucket.HIGH,
                    f"Exam in {days_left} {'day' if days_left == 1 else 'days'}",
                    _exam_description(subject),
                    topics,
                    minutes,
                )
            )
            remaining -= minutes
            logger.debug(f"High: {subject.id} gets {minutes:.1f} min, exam in {days_left}d")

        return remaining

    def _medium_pass(self, subjects, remaining, today, tasks) -> float:
        share = remaining * self.config.medium_share / self.config.medium_split
        for subject in subjects:
            if remaining <= 0:
                break
            stale = [
                t
                for t in subject.topics
                if t.status is not TopicStatus.NOT_STARTED
                and days_since(t.last_reviewed, today) >= self.config.stale_after_days
            ]
            topics = rank_topics(stale, today)[: self.config.max_medium_topics]
            if not topics:
                continue

            minutes = min(share, remaining)
            tasks.append(
                self._task(
                    subject,
                    TaskBucket.MEDIUM,
                    "Decay risk",
                    f"Review topics untouched for {self.config.stale_after_days}+ days",
                    topics,
                    minutes,
                )
            )
            remaining -= minutes
            logger.debug(f"Medium: {subject.id} gets {minutes:.1f} min for {len(topics)} stale topic(s)")

        return remaining

    def _normal_pass(self, subjects, remaining, today, tasks) -> float:
        for subject in subjects:
            if remaining <= self.config.min_normal_minutes:
                break
            new_topics = [t for t in subject.topics if t.status is TopicStatus.NOT_STARTED]
            days_left = days_until(subject.exam_date, today)
            # No exam date, or the exam is over
            if not new_topics or math.isinf(days_left) or days_left < 0:
                continue
            if len(new_topics) / max(1.0, days_left) <= self.config.new_material_ratio:
                continue

            topics = new_topics[: self.config.max_new_topics]
            minutes = remaining / 2
            tasks.append(
                self._task(
                    subject,
                    TaskBucket.NORMAL,
                    "New material",
                    "Start new topics",
                    topics,
                    minutes,
                )
            )
            remaining -= minutes
            logger.debug(f"Normal: {subject.id} gets {minutes:.1f} min for {len(topics)} new topic(s)")

        return remaining


def generate_daily_plan(
    subjects: Sequence[Subject],
    schedule: Sequence[ScheduleEntry],
    effective_minutes: float,
    *,
    today: date | None = None,
    config: Optional[PlanConfig] = None,
) -> list[DailyTask]:
    """Build today's prioritized task list (see DailyPlanner)."""
    return DailyPlanner(config).generate(subjects, schedule, effective_minutes, today or date.today())


# =============================================================================
# BUDGET & WORKLOAD
# =============================================================================

SICK_FACTOR = 0.5
HOLIDAY_FACTOR = 0.5
LOW_SLEEP_FACTOR = 0.7
LOW_ENERGY_FACTOR = 0.8
LOW_RATING = 3  # sleep/energy ratings below this reduce the budget
MIN_EFFECTIVE_MINUTES = 60


def effective_minutes(status: DailyStatus) -> int:
    """
    Study minutes after the day's modifiers.

    Never drops below MIN_EFFECTIVE_MINUTES unless fewer minutes were
    available to begin with.
    """
    minutes = max(0.0, float(status.available_minutes))
    if status.sick:
        minutes *= SICK_FACTOR
    if status.holiday:
        minutes *= HOLIDAY_FACTOR
    if status.sleep_quality < LOW_RATING:
        minutes *= LOW_SLEEP_FACTOR
    if status.energy < LOW_RATING:
        minutes *= LOW_ENERGY_FACTOR

    floor = min(MIN_EFFECTIVE_MINUTES, max(0.0, float(status.available_minutes)))
    return round_half_up(max(floor, minutes))


class Urgency(str, Enum):
    """Exam urgency for workload planning."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def order(self) -> int:
        return {
            Urgency.CRITICAL: 0,
            Urgency.HIGH: 1,
            Urgency.MEDIUM: 2,
            Urgency.LOW: 3,
        }[self]


MAX_TOPICS_PER_DAY = 10


@dataclass(frozen=True)
class WorkloadEntry:
    subject_id: str
    topics: int
    days_left: int
    urgency: Urgency


@dataclass(frozen=True)
class Workload:
    """Topics to cover today, overall and per subject."""
    total_topics: int
    by_subject: list[WorkloadEntry] = field(default_factory=list)


def daily_workload(subjects: Sequence[Subject], status: DailyStatus, today: date) -> Workload:
    """
    Topics per day each subject needs to be exam-ready in time.

    Subjects without an upcoming exam or with every topic solid are skipped.
    """
    entries: list[WorkloadEntry] = []

    for subject in subjects:
        days = days_until(subject.exam_date, today)
        if math.isinf(days) or days < 0:
            continue
        remaining = sum(1 for t in subject.topics if t.status is not TopicStatus.SOLID)
        if remaining == 0:
            continue

        days_left = max(1, int(days))
        per_day = math.ceil(remaining / days_left)

        if days_left <= 3:
            urgency = Urgency.CRITICAL
            per_day = max(per_day, math.ceil(remaining / 3))
        elif days_left <= 7:
            urgency = Urgency.HIGH
            per_day = max(per_day, 3)
        elif days_left <= 14:
            urgency = Urgency.MEDIUM
            per_day = max(per_day, 2)
        else:
            urgency = Urgency.LOW

        entries.append(
            WorkloadEntry(
                subject_id=subject.id,
                topics=min(per_day, MAX_TOPICS_PER_DAY),
                days_left=days_left,
                urgency=urgency,
            )
        )

    entries.sort(key=lambda e: e.urgency.order)

    total = sum(e.topics for e in entries)
    if status.sick and status.holiday:
        total = math.ceil(total * 0.25)
    elif status.sick or status.holiday:
        total = math.ceil(total * 0.5)
    if entries and total < 1:
        total = 1

    return Workload(total_topics=total, by_subject=entries)


# =============================================================================
# ALERTS
# =============================================================================

class AlertLevel(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"


DECAY_ALERT_MIN_TOPICS = 3
EXAM_CRITICAL_DAYS = 3


@dataclass(frozen=True)
class Alert:
    level: AlertLevel
    message: str
    subject_id: str | None = None


def get_alerts(
    subjects: Sequence[Subject],
    schedule: Sequence[ScheduleEntry],
    today: date,
) -> list[Alert]:
    """Dashboard alerts: classes tomorrow, exams this week, decaying subjects."""
    alerts: list[Alert] = []
    by_id = {s.id: s for s in subjects}
    weekday = tomorrow_weekday(today)

    for entry in schedule:
        if entry.day_of_week != weekday or not entry.requires_preparation:
            continue
        subject = by_id.get(entry.subject_id)
        if subject is not None:
            alerts.append(
                Alert(AlertLevel.CRITICAL, f"{subject.name}: {entry.label} tomorrow!", subject.id)
            )

    for subject in subjects:
        days = days_until(subject.exam_date, today)
        if 0 <= days <= 7:
            days = int(days)
            level = AlertLevel.CRITICAL if days <= EXAM_CRITICAL_DAYS else AlertLevel.WARNING
            alerts.append(
                Alert(level, f"{subject.name}: exam in {days} {'day' if days == 1 else 'days'}", subject.id)
            )

    for subject in subjects:
        decaying = sum(
            1
            for t in subject.topics
            if t.status is not TopicStatus.NOT_STARTED and days_since(t.last_reviewed, today) >= 7
        )
        if decaying >= DECAY_ALERT_MIN_TOPICS:
            alerts.append(
                Alert(AlertLevel.WARNING, f"{subject.name}: {decaying} topics at risk of decay", subject.id)
            )

    return alerts
