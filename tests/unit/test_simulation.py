"""
Unit tests for the Monte Carlo exam simulator.
"""

import random

import pytest

from conftest import make_topic

from study_planner.core.models import TopicStatus
from study_planner.prediction.simulation import (
    STATUS_BASE_SCORE,
    SimulationResult,
    simulate_exam_outcome,
    topic_exam_score,
)


def _topics():
    return [
        make_topic("solid", status=TopicStatus.SOLID, grades=(6.0,)),
        make_topic("learned", status=TopicStatus.LEARNED),
        make_topic("weak", status=TopicStatus.WEAK, grades=(3.0,)),
        make_topic("new", status=TopicStatus.NOT_STARTED),
        make_topic("new2", status=TopicStatus.NOT_STARTED, grades=(2.0,)),
    ]


class TestTopicExamScore:
    def test_status_base_without_grades(self):
        assert topic_exam_score(make_topic(status=TopicStatus.LEARNED)) == 4.5

    def test_averaged_with_avg_grade(self):
        topic = make_topic(status=TopicStatus.WEAK, grades=(5.0, 6.0))
        assert topic_exam_score(topic) == pytest.approx((3.5 + 5.5) / 2)

    def test_every_status_has_a_base(self):
        assert set(STATUS_BASE_SCORE) == set(TopicStatus)


class TestDegenerate:
    def test_no_topics(self):
        result = simulate_exam_outcome([], 5)
        assert result == SimulationResult(
            best_case=2, worst_case=2, expected=2, variance=0, critical_topics=[], impact_topics=[]
        )

    def test_zero_topics_on_exam(self):
        assert simulate_exam_outcome(_topics(), 0) == SimulationResult.degenerate()

    def test_zero_iterations(self):
        assert simulate_exam_outcome(_topics(), 2, iterations=0) == SimulationResult.degenerate()


class TestSimulation:
    @pytest.mark.parametrize("k", [1, 2, 3, 5, 50])
    @pytest.mark.parametrize("seed", [0, 1, 42])
    def test_ordering(self, k, seed):
        result = simulate_exam_outcome(_topics(), k, 300, seed=seed)
        assert result.worst_case <= result.expected <= result.best_case

    def test_seed_is_reproducible(self):
        first = simulate_exam_outcome(_topics(), 2, 500, seed=7)
        second = simulate_exam_outcome(_topics(), 2, 500, seed=7)
        assert first == second

    def test_injected_rng(self):
        first = simulate_exam_outcome(_topics(), 2, 200, rng=random.Random(3))
        second = simulate_exam_outcome(_topics(), 2, 200, rng=random.Random(3))
        assert first == second

    def test_drawing_every_topic_has_no_spread(self):
        topics = _topics()
        result = simulate_exam_outcome(topics, len(topics), 100, seed=1)
        mean = sum(topic_exam_score(t) for t in topics) / len(topics)
        assert result.expected == pytest.approx(mean)
        assert result.variance == pytest.approx(0, abs=1e-9)
        assert result.best_case == pytest.approx(mean)
        assert result.worst_case == pytest.approx(mean)

    def test_topics_on_exam_is_clamped(self):
        clamped = simulate_exam_outcome(_topics(), 99, 50, seed=1)
        full = simulate_exam_outcome(_topics(), 5, 50, seed=1)
        assert clamped.expected == pytest.approx(full.expected)

    def test_expected_near_population_mean(self):
        topics = _topics()
        result = simulate_exam_outcome(topics, 2, 4000, seed=11)
        mean = sum(topic_exam_score(t) for t in topics) / len(topics)
        assert result.expected == pytest.approx(mean, abs=0.05)
        assert result.variance > 0

    def test_parallel_workers_keep_trial_count_and_ordering(self):
        result = simulate_exam_outcome(_topics(), 2, 2000, seed=5, workers=4)
        assert result.worst_case <= result.expected <= result.best_case
        again = simulate_exam_outcome(_topics(), 2, 2000, seed=5, workers=4)
        assert result == again


class TestCriticalTopics:
    def test_only_weak_and_not_started(self):
        result = simulate_exam_outcome(_topics(), 2, 50, seed=1)
        assert set(result.critical_topics) == {"weak", "new", "new2"}

    def test_sorted_by_impact(self):
        result = simulate_exam_outcome(_topics(), 2, 50, seed=1)
        impacts = [item.impact for item in result.impact_topics]
        assert impacts == sorted(impacts, reverse=True)
        # new2 scores (2.5 + 2.0) / 2 = 2.25, the lowest
        assert result.impact_topics[0].topic_id == "new2"
        assert result.impact_topics[0].impact == pytest.approx((5.0 - 2.25) / 5)

    def test_at_most_five(self):
        topics = [make_topic(f"n{i}") for i in range(8)]
        result = simulate_exam_outcome(topics, 3, 20, seed=1)
        assert len(result.critical_topics) == 5

    def test_no_critical_topics_when_all_solid(self):
        topics = [make_topic(f"s{i}", status=TopicStatus.SOLID) for i in range(3)]
        result = simulate_exam_outcome(topics, 2, 20, seed=1)
        assert result.critical_topics == []
        assert result.impact_topics == []
