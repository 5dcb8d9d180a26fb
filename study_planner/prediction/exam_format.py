"""
Exam Format Analysis.

Parses a free-text exam description ("20 mcq, 2 cases, 1 essay, 5 topics
from 60") into an ExamFormat, weights item types by difficulty, and flags
format gaps: topics that score poorly on high-Bloom quizzes are likely weak
on open-answer and case-study items.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from study_planner.core.models import BLOOM_LEVELS, ExamFormat, Subject, Topic

# Minimum Bloom level an item type exercises
OPEN_ANSWER_BLOOM_LEVEL = 3
CASE_STUDY_BLOOM_LEVEL = 4

# Mean score below which a topic is weak at a Bloom tier
HIGH_BLOOM_WEAK_SCORE = 60

# Relative difficulty of each item type
ITEM_DIFFICULTY = {
    "mcq": 1.0,
    "open": 1.5,
    "case": 2.0,
    "essay": 2.0,
}

DEFAULT_TYPE_WEIGHTS = {
    "mcq": 0.6,
    "open": 0.2,
    "case": 0.15,
    "essay": 0.05,
}

_MCQ_RE = re.compile(r"(\d+)\s*(?:mcqs?|tests?|multiple[- ]choice|questions?)")
_OPEN_RE = re.compile(r"(\d+)\s*(?:open)")
_CASE_RE = re.compile(r"(\d+)\s*(?:case[- ]stud(?:y|ies)|cases?)")
_ESSAY_RE = re.compile(r"(\d+)\s*(?:essays?)")
_TOPICS_RE = re.compile(r"(\d+)\s*(?:topics?)\s*(?:from|of|out of)")


def _first_int(pattern: re.Pattern, text: str) -> int:
    match = pattern.search(text)
    return int(match.group(1)) if match else 0


def parse_exam_format(text: str | None) -> ExamFormat | None:
    """
    Parse a free-text exam description.

    Args:
        text: Description such as "30 mcq, 2 open questions, 1 case study"

    Returns:
        ExamFormat, or None for empty input
    """
    if not text or not text.strip():
        return None

    lower = text.lower()
    return ExamFormat(
        mcq=_first_int(_MCQ_RE, lower),
        open_questions=_first_int(_OPEN_RE, lower),
        case_studies=_first_int(_CASE_RE, lower),
        essays=_first_int(_ESSAY_RE, lower),
        topics_on_exam=_first_int(_TOPICS_RE, lower),
        raw=text,
    )


def question_type_weights(exam_format: ExamFormat | None) -> dict[str, float]:
    """
    Share of the exam's points carried by each item type.

    Item counts are weighted by difficulty (MCQ 1x, open 1.5x, case 2x,
    essay 2x). Falls back to a typical MCQ-heavy split without a format.
    """
    if exam_format is None or exam_format.total_items == 0:
        return dict(DEFAULT_TYPE_WEIGHTS)

    points = {
        "mcq": exam_format.mcq * ITEM_DIFFICULTY["mcq"],
        "open": exam_format.open_questions * ITEM_DIFFICULTY["open"],
        "case": exam_format.case_studies * ITEM_DIFFICULTY["case"],
        "essay": exam_format.essays * ITEM_DIFFICULTY["essay"],
    }
    total = sum(points.values())
    return {key: value / total for key, value in points.items()}


def high_bloom_average(topic: Topic, min_level: int) -> float | None:
    """Mean score of a topic's quizzes at or above a Bloom level, None if none."""
    scores = [q.score for q in topic.quiz_history if q.bloom_level >= min_level]
    if not scores:
        return None
    return sum(scores) / len(scores)


@dataclass(frozen=True)
class FormatAnalysis:
    """Exam-format gap analysis for one subject."""

    has_cases: bool
    has_open_questions: bool
    case_weakness: bool
    open_weakness: bool
    weak_case_topics: tuple[str, ...] = field(default_factory=tuple)
    weak_open_topics: tuple[str, ...] = field(default_factory=tuple)
    format_tip: str = ""


def _weak_topics(topics, min_level: int) -> tuple[str, ...]:
    weak = []
    for topic in topics:
        average = high_bloom_average(topic, min_level)
        if average is not None and average < HIGH_BLOOM_WEAK_SCORE:
            weak.append(topic.id)
    return tuple(weak)


def analyze_exam_format(subject: Subject) -> FormatAnalysis | None:
    """
    Flag topics likely to underperform on the subject's harder item types.

    Returns None when the subject has no exam format.
    """
    exam_format = subject.exam_format
    if exam_format is None:
        return None

    has_cases = exam_format.case_studies > 0
    has_open = exam_format.open_questions > 0 or exam_format.essays > 0

    weak_case = _weak_topics(subject.topics, CASE_STUDY_BLOOM_LEVEL) if has_cases else ()
    weak_open = _weak_topics(subject.topics, OPEN_ANSWER_BLOOM_LEVEL) if has_open else ()

    if weak_case:
        tip = (
            f"The exam has {exam_format.case_studies} case "
            f"{'study' if exam_format.case_studies == 1 else 'studies'}; "
            f"{len(weak_case)} topic(s) score below {HIGH_BLOOM_WEAK_SCORE}% on "
            f"Bloom {CASE_STUDY_BLOOM_LEVEL}+ ({BLOOM_LEVELS[CASE_STUDY_BLOOM_LEVEL]}) quizzes. "
            "Practice applying them to cases."
        )
    elif weak_open:
        tip = (
            f"The exam has open-answer items; {len(weak_open)} topic(s) score below "
            f"{HIGH_BLOOM_WEAK_SCORE}% on Bloom {OPEN_ANSWER_BLOOM_LEVEL}+ "
            f"({BLOOM_LEVELS[OPEN_ANSWER_BLOOM_LEVEL]}) quizzes. Practice written explanations."
        )
    elif has_cases or has_open:
        tip = "Keep mixing higher Bloom-level quizzes into your reviews."
    else:
        tip = f"Multiple-choice exam ({exam_format.mcq} items): drill recall with short quizzes."

    return FormatAnalysis(
        has_cases=has_cases,
        has_open_questions=has_open,
        case_weakness=bool(weak_case),
        open_weakness=bool(weak_open),
        weak_case_topics=weak_case,
        weak_open_topics=weak_open,
        format_tip=tip,
    )
