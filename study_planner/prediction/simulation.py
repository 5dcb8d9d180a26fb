"""
Monte Carlo Exam Simulator.

Estimates best/worst-case exam outcomes by repeatedly drawing which topics
"appear" on the exam:

1. Score every topic on the grade scale (status base, blended with avgGrade)
2. For each trial, shuffle the topics and average the first `topics_on_exam`
3. Summarize the trial means: mean, population std-dev, 5th/95th percentiles
4. Rank weak topics by how much raising them would lift the expected grade

Randomness comes from an injected random.Random; there is no module-level
PRNG, so concurrent simulations cannot interfere with each other.
"""

from __future__ import annotations

import math
import random
import statistics
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional, Sequence

from loguru import logger

from study_planner.core.models import Topic, TopicStatus
from study_planner.core.scale import GRADE_MIN

DEFAULT_ITERATIONS = 1000

# Expected exam grade for a topic by status, before blending with avgGrade
STATUS_BASE_SCORE: dict[TopicStatus, float] = {
    TopicStatus.SOLID: 5.5,
    TopicStatus.LEARNED: 4.5,
    TopicStatus.WEAK: 3.5,
    TopicStatus.NOT_STARTED: 2.5,
}

CRITICAL_STATUSES = (TopicStatus.NOT_STARTED, TopicStatus.WEAK)
MAX_CRITICAL_TOPICS = 5
IMPROVED_SCORE = 5.0

BEST_PERCENTILE = 0.95
WORST_PERCENTILE = 0.05

# Below this many trials a thread pool costs more than it saves
MIN_TRIALS_PER_WORKER = 500


@dataclass(frozen=True)
class ImpactTopic:
    """A weak topic and the expected grade gain from improving it."""

    topic_id: str
    topic_name: str
    impact: float


@dataclass(frozen=True)
class SimulationResult:
    """Summary of a Monte Carlo exam simulation."""

    best_case: float
    worst_case: float
    expected: float
    variance: float  # population standard deviation of trial means
    critical_topics: list[str] = field(default_factory=list)
    impact_topics: list[ImpactTopic] = field(default_factory=list)

    @classmethod
    def degenerate(cls) -> SimulationResult:
        return cls(
            best_case=GRADE_MIN,
            worst_case=GRADE_MIN,
            expected=GRADE_MIN,
            variance=0.0,
        )


def topic_exam_score(topic: Topic) -> float:
    """Expected grade for a topic if it is drawn on the exam."""
    base = STATUS_BASE_SCORE[topic.status]
    avg = topic.avg_grade
    if avg is None:
        return base
    return (base + avg) / 2


def _run_trials(
    scores: Sequence[float],
    topics_on_exam: int,
    iterations: int,
    rng: random.Random,
) -> list[float]:
    """Draw `iterations` exams and return each one's mean topic score."""
    pool = list(scores)
    means = []
    for _ in range(iterations):
        rng.shuffle(pool)
        drawn = pool[:topics_on_exam]
        means.append(sum(drawn) / topics_on_exam)
    return means


def _run_trials_parallel(
    scores: Sequence[float],
    topics_on_exam: int,
    iterations: int,
    rng: random.Random,
    workers: int,
) -> list[float]:
    """Split trials across threads, each with its own child PRNG."""
    chunk, extra = divmod(iterations, workers)
    sizes = [chunk + (1 if i < extra else 0) for i in range(workers)]
    child_rngs = [random.Random(rng.getrandbits(64)) for _ in sizes]

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(_run_trials, scores, topics_on_exam, size, child_rng)
            for size, child_rng in zip(sizes, child_rngs)
            if size > 0
        ]
        # Collect in submission order so a seeded run is reproducible
        means: list[float] = []
        for future in futures:
            means.extend(future.result())

    return means


def _percentile(sorted_means: list[float], fraction: float) -> float:
    index = min(len(sorted_means) - 1, math.floor(len(sorted_means) * fraction))
    return sorted_means[index]


def _impact_topics(topics: Sequence[Topic], scores: Sequence[float]) -> list[ImpactTopic]:
    """
    Expected grade gain from raising each critical topic to IMPROVED_SCORE.

    A topic lands on a k-of-n exam with probability k/n and then moves the
    exam mean by delta/k, so its expected contribution shift is delta/n.
    """
    n = len(topics)
    critical = [
        (topic, score)
        for topic, score in zip(topics, scores)
        if topic.status in CRITICAL_STATUSES
    ]
    critical.sort(key=lambda pair: pair[1])

    impacts = []
    for topic, score in critical[:MAX_CRITICAL_TOPICS]:
        gain = max(0.0, IMPROVED_SCORE - score) / n
        impacts.append(
            ImpactTopic(topic_id=topic.id, topic_name=topic.name, impact=round(gain, 4))
        )

    impacts.sort(key=lambda item: item.impact, reverse=True)
    return impacts


def simulate_exam_outcome(
    topics: Sequence[Topic],
    topics_on_exam: int,
    iterations: int = DEFAULT_ITERATIONS,
    *,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
    workers: int = 1,
) -> SimulationResult:
    """
    Simulate exam outcomes by random topic draws.

    Args:
        topics: Topics the exam can draw from
        topics_on_exam: Topics per exam, clamped to len(topics)
        iterations: Number of simulated exams
        rng: PRNG to draw from; created from `seed` when omitted
        seed: Seed for a fresh PRNG (ignored when `rng` is given)
        workers: Threads to spread trials over

    Returns:
        SimulationResult (all grade-floor values for degenerate input)
    """
    topics = list(topics)
    if not topics or topics_on_exam <= 0 or iterations <= 0:
        return SimulationResult.degenerate()

    rng = rng or random.Random(seed)
    k = min(topics_on_exam, len(topics))
    scores = [topic_exam_score(t) for t in topics]

    workers = max(1, min(workers, iterations // MIN_TRIALS_PER_WORKER or 1))
    if workers > 1:
        means = _run_trials_parallel(scores, k, iterations, rng, workers)
    else:
        means = _run_trials(scores, k, iterations, rng)

    expected = statistics.fmean(means)
    spread = statistics.pstdev(means)
    sorted_means = sorted(means)
    # Bounded by the mean so worst <= expected <= best holds for skewed draws
    best = max(_percentile(sorted_means, BEST_PERCENTILE), expected)
    worst = min(_percentile(sorted_means, WORST_PERCENTILE), expected)

    impacts = _impact_topics(topics, scores)

    logger.debug(
        f"Simulated {iterations} exams ({k} of {len(topics)} topics, {workers} worker(s)): "
        f"expected {expected:.2f}, range {worst:.2f}-{best:.2f}"
    )

    return SimulationResult(
        best_case=best,
        worst_case=worst,
        expected=expected,
        variance=spread,
        critical_topics=[item.topic_id for item in impacts],
        impact_topics=[item for item in impacts if item.impact > 0],
    )
