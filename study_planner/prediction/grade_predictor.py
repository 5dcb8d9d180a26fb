"""
Predicted Grade Calculator.

Aggregates five normalized signals from a subject's topics into an expected
exam grade on the 2-6 scale:

    coverage     - status-weighted share of topics covered
    mastery      - mean avgGrade of graded topics (3.5 when none)
    consistency  - share of topics reviewed in the last 7 days
    time         - pressure factor as the exam approaches
    decay risk   - share of started topics unreviewed for 5+ days

plus an optional question-bank accuracy signal. An idealized-effort pass
shows the achievable upside; Monte Carlo and exam-format analysis add tips.

Formula:
    grade = (coverage×3 + mastery/6×3) × time
            + consistency×0.5 − decay×0.5 + qbank×0.5 + 2
    clamped to [2, 6], rounded to the nearest quarter point
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Sequence

from loguru import logger

from study_planner.core.dates import days_since, days_until
from study_planner.core.models import QuestionBankRecord, Subject, TopicStatus
from study_planner.core.scale import GRADE_MAX, GRADE_MIN, clamp, round_half_up, round_to_quarter
from study_planner.prediction.exam_format import FormatAnalysis, analyze_exam_format
from study_planner.prediction.simulation import (
    DEFAULT_ITERATIONS,
    SimulationResult,
    simulate_exam_outcome,
)
from study_planner.study.mastery_calculator import COVERAGE_WEIGHTS

DEFAULT_MASTERY_GRADE = 3.5
CONSISTENCY_WINDOW_DAYS = 7
DECAY_RISK_DAYS = 5
MIN_QUESTION_BANK_ATTEMPTS = 5
DEFAULT_TOPICS_ON_EXAM = 3

# (days_until_exam upper bound, factor), checked tightest first
TIME_PRESSURE_STEPS = (
    (3, 0.7),
    (7, 0.85),
    (14, 0.95),
)

# Idealized-effort adjustments
IDEAL_COVERAGE_BOOST = 1.3
IDEAL_CONSISTENCY_BONUS = 0.5
IDEAL_DECAY_FACTOR = 0.5
IDEAL_QUESTION_BANK_BONUS = 0.2

MOTIVATIONAL_MESSAGES = {
    "low": "Small daily steps add up. Start with two or three topics today.",
    "medium": "Good progress. Focus on the weak topics for the biggest gain.",
    "high": "Excellent progress. Keep the rhythm and the top grade is within reach.",
}


@dataclass(frozen=True)
class GradeFactor:
    """One sub-score contributing to the prediction."""

    name: str
    value: float
    max_value: float
    label: str
    impact: str  # "positive" | "neutral" | "negative"


@dataclass(frozen=True)
class PredictedGrade:
    """Full grade prediction for a subject."""

    current: float
    idealized: float
    improvement: float
    factors: list[GradeFactor] = field(default_factory=list)
    tips: list[str] = field(default_factory=list)
    message: str = ""
    simulation: SimulationResult | None = None
    format_analysis: FormatAnalysis | None = None


@dataclass(frozen=True)
class _SubScores:
    coverage: float
    mastery_avg: float
    consistency: float
    time_factor: float
    decay_risk: float
    question_bank: float
    has_question_bank: bool
    question_bank_accuracy: float | None
    days_until_exam: float


def _impact(value: float, positive: float, neutral: float, higher_is_better: bool = True) -> str:
    if higher_is_better:
        if value >= positive:
            return "positive"
        return "neutral" if value >= neutral else "negative"
    if value <= positive:
        return "positive"
    return "neutral" if value <= neutral else "negative"


def time_pressure_factor(days_until_exam: float) -> float:
    """
    1.0 normally, stepping down to 0.95 / 0.85 / 0.7 inside 14 / 7 / 3 days.

    A past exam (negative days) counts as inside the last step.
    """
    for limit, factor in TIME_PRESSURE_STEPS:
        if days_until_exam <= limit:
            return factor
    return 1.0


def question_bank_accuracy(records: Sequence[QuestionBankRecord] | None) -> float | None:
    """Overall accuracy, None unless at least MIN_QUESTION_BANK_ATTEMPTS were made."""
    if not records:
        return None
    attempts = sum(max(0, r.attempts) for r in records)
    if attempts < MIN_QUESTION_BANK_ATTEMPTS:
        return None
    correct = sum(clamp(r.correct, 0, max(0, r.attempts)) for r in records)
    return correct / attempts


def _sub_scores(
    subject: Subject,
    records: Sequence[QuestionBankRecord] | None,
    today: date,
    idealized: bool,
) -> _SubScores:
    topics = subject.topics
    total = len(topics)

    coverage = sum(COVERAGE_WEIGHTS[t.status] for t in topics) / total

    graded = [t.avg_grade for t in topics if t.avg_grade is not None]
    mastery_avg = sum(graded) / len(graded) if graded else DEFAULT_MASTERY_GRADE

    recent = sum(1 for t in topics if days_since(t.last_reviewed, today) <= CONSISTENCY_WINDOW_DAYS)
    consistency = recent / total

    days_left = days_until(subject.exam_date, today)
    time_factor = time_pressure_factor(days_left)

    at_risk = sum(
        1
        for t in topics
        if t.status is not TopicStatus.NOT_STARTED
        and days_since(t.last_reviewed, today) >= DECAY_RISK_DAYS
    )
    decay_risk = at_risk / total

    accuracy = question_bank_accuracy(records)
    has_qbank = accuracy is not None
    qbank = (accuracy - 0.5) * 2 if has_qbank else 0.0

    if idealized:
        coverage = min(1.0, coverage * IDEAL_COVERAGE_BOOST)
        consistency = min(1.0, consistency + IDEAL_CONSISTENCY_BONUS)
        decay_risk = decay_risk * IDEAL_DECAY_FACTOR
        if has_qbank:
            qbank = min(1.0, qbank + IDEAL_QUESTION_BANK_BONUS)

    return _SubScores(
        coverage=coverage,
        mastery_avg=mastery_avg,
        consistency=consistency,
        time_factor=time_factor,
        decay_risk=decay_risk,
        question_bank=qbank,
        has_question_bank=has_qbank,
        question_bank_accuracy=accuracy,
        days_until_exam=days_left,
    )


def _grade(s: _SubScores) -> float:
    base = (s.coverage * 3 + (s.mastery_avg / 6) * 3) * s.time_factor
    raw = base + s.consistency * 0.5 - s.decay_risk * 0.5 + 2
    if s.has_question_bank:
        raw += s.question_bank * 0.5
    return clamp(round_to_quarter(clamp(raw, GRADE_MIN, GRADE_MAX)), GRADE_MIN, GRADE_MAX)


def _factors(s: _SubScores) -> list[GradeFactor]:
    factors = [
        GradeFactor(
            name="coverage",
            value=round_half_up(s.coverage * 100),
            max_value=100,
            label="Material coverage",
            impact=_impact(s.coverage, 0.7, 0.4),
        ),
        GradeFactor(
            name="mastery",
            value=round(s.mastery_avg, 2),
            max_value=6,
            label="Average quiz grade",
            impact=_impact(s.mastery_avg, 5, 4),
        ),
        GradeFactor(
            name="consistency",
            value=round_half_up(s.consistency * 100),
            max_value=100,
            label="Review consistency",
            impact=_impact(s.consistency, 0.5, 0.3),
        ),
        GradeFactor(
            name="time",
            value=round_half_up(s.time_factor * 100),
            max_value=100,
            label="Time pressure",
            impact=_impact(s.time_factor, 0.95, 0.85),
        ),
        GradeFactor(
            name="decay",
            value=round_half_up((1 - s.decay_risk) * 100),
            max_value=100,
            label="Knowledge retention",
            impact=_impact(s.decay_risk, 0.2, 0.4, higher_is_better=False),
        ),
    ]
    if s.has_question_bank:
        factors.append(
            GradeFactor(
                name="question_bank",
                value=round_half_up(s.question_bank_accuracy * 100),
                max_value=100,
                label="Question bank accuracy",
                impact=_impact(s.question_bank_accuracy, 0.7, 0.5),
            )
        )
    return factors


def _tips(s: _SubScores) -> list[str]:
    tips = []
    if s.coverage < 0.5:
        tips.append("Focus on the topics you have not started yet.")
    if s.mastery_avg < 4.5:
        tips.append("Take more quizzes to raise your average grade.")
    if s.consistency < 0.3:
        tips.append("Review regularly: at least 3-4 topics a week.")
    if s.decay_risk > 0.3:
        tips.append("Warning: many topics are at risk of being forgotten.")
    if s.days_until_exam <= 7:
        tips.append("The exam is close! Maximize your study hours.")
    if s.has_question_bank and s.question_bank_accuracy < 0.5:
        tips.append("Question bank accuracy is below 50%: revisit the explanations of missed items.")
    return tips


def _simulation_tips(sim: SimulationResult) -> list[str]:
    tips = []
    if sim.worst_case < 3:
        tips.append(
            f"Unlucky draws could drop you to {sim.worst_case:.2f}; the weakest topics decide the worst case."
        )
    if sim.impact_topics:
        top = sim.impact_topics[0]
        name = top.topic_name or top.topic_id
        tips.append(f"Improving \"{name}\" lifts the expected grade the most (+{top.impact:.2f}).")
    return tips


def predict_grade(
    subject: Subject,
    idealized_effort: bool = False,
    question_bank: Optional[Sequence[QuestionBankRecord]] = None,
    *,
    today: date | None = None,
    simulate: bool = True,
    iterations: int = DEFAULT_ITERATIONS,
    topics_on_exam: int | None = None,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
    workers: int = 1,
) -> PredictedGrade:
    """
    Predict the exam grade for a subject.

    Args:
        subject: Subject snapshot
        idealized_effort: Report the idealized-effort figure as `current`
        question_bank: Optional external question-bank records
        today: Reference day (defaults to date.today())
        simulate: Run the Monte Carlo simulation for extra tips
        iterations: Simulation trials
        topics_on_exam: Topics per simulated exam; defaults to the exam
            format's count, else DEFAULT_TOPICS_ON_EXAM
        rng: PRNG for the simulation
        seed: Seed for the simulation PRNG when `rng` is omitted
        workers: Threads for the simulation trials

    Returns:
        PredictedGrade with grades on [2, 6] in quarter steps
    """
    today = today or date.today()

    if not subject.topics:
        return PredictedGrade(
            current=GRADE_MIN,
            idealized=GRADE_MIN,
            improvement=0.0,
            factors=[],
            tips=["Add topics to this subject to get a prediction."],
            message=MOTIVATIONAL_MESSAGES["low"],
        )

    baseline = _sub_scores(subject, question_bank, today, idealized=False)
    ideal = _sub_scores(subject, question_bank, today, idealized=True)
    baseline_grade = _grade(baseline)
    ideal_grade = _grade(ideal)

    shown = ideal if idealized_effort else baseline
    current = ideal_grade if idealized_effort else baseline_grade

    tips = _tips(shown)

    simulation = None
    if simulate:
        if topics_on_exam is None:
            fmt = subject.exam_format
            topics_on_exam = fmt.topics_on_exam if fmt and fmt.topics_on_exam > 0 else DEFAULT_TOPICS_ON_EXAM
        simulation = simulate_exam_outcome(
            subject.topics,
            min(topics_on_exam, len(subject.topics)),
            iterations,
            rng=rng,
            seed=seed,
            workers=workers,
        )
        tips.extend(_simulation_tips(simulation))

    format_analysis = analyze_exam_format(subject)
    if format_analysis and (format_analysis.case_weakness or format_analysis.open_weakness):
        tips.append(format_analysis.format_tip)

    if not tips:
        tips.append("Keep up the good work!")

    if current < 4:
        message = MOTIVATIONAL_MESSAGES["low"]
    elif current >= 5:
        message = MOTIVATIONAL_MESSAGES["high"]
    else:
        message = MOTIVATIONAL_MESSAGES["medium"]

    logger.debug(
        f"Predicted grade for {subject.id}: current {current:.2f}, idealized {ideal_grade:.2f}"
    )

    return PredictedGrade(
        current=current,
        idealized=ideal_grade,
        improvement=ideal_grade - current,
        factors=_factors(shown),
        tips=tips,
        message=message,
        simulation=simulation,
        format_analysis=format_analysis,
    )
