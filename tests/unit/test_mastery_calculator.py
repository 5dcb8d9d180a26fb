"""
Unit tests for the mastery and priority scorer.
"""

import pytest

from conftest import TODAY, days_ago, days_ahead, make_topic, quiz

from study_planner.core.models import Subject, TopicStatus
from study_planner.study.mastery_calculator import (
    rank_topics,
    recency_factor,
    subject_progress,
    topic_priority,
    weighted_mastery_score,
)


class TestWeightedMasteryScore:
    def test_empty_history_is_zero(self):
        assert weighted_mastery_score(make_topic()) == 0

    def test_single_quiz_is_unweighted(self):
        topic = make_topic(quiz_history=(quiz(80, weight=1.0),))
        assert weighted_mastery_score(topic) == 80

    def test_recent_attempts_count_more(self):
        improving = make_topic(quiz_history=(quiz(40), quiz(100)))
        declining = make_topic(quiz_history=(quiz(100), quiz(40)))
        assert weighted_mastery_score(improving) > weighted_mastery_score(declining)

    def test_formula(self):
        # weights: 1 * 1.0, 2 * 1.25 -> (50*1 + 90*2.5) / 3.5 = 78.57
        topic = make_topic(quiz_history=(quiz(50, weight=1.0), quiz(90, weight=2.0)))
        assert weighted_mastery_score(topic) == 79

    def test_rounds_half_up(self):
        half = make_topic(quiz_history=(quiz(40.5),))
        assert weighted_mastery_score(half) == 41

    def test_scores_are_clamped(self):
        topic = make_topic(quiz_history=(quiz(150), quiz(-30)))
        assert 0 <= weighted_mastery_score(topic) <= 100

    def test_zero_weights_score_zero(self):
        topic = make_topic(quiz_history=(quiz(90, weight=0.0), quiz(70, weight=-1.0)))
        assert weighted_mastery_score(topic) == 0

    @pytest.mark.parametrize(
        "scores",
        [(0,), (100,), (100, 100, 100), (0, 100, 0, 100), (33.3, 66.6, 99.9)],
    )
    def test_bounds(self, scores):
        topic = make_topic(quiz_history=tuple(quiz(s) for s in scores))
        assert 0 <= weighted_mastery_score(topic) <= 100

    def test_recency_factor(self):
        assert recency_factor(0, 1) == 1.0
        assert recency_factor(2, 4) == 1.25


class TestTopicPriority:
    def test_formula(self):
        topic = make_topic(
            status=TopicStatus.LEARNED,
            last_reviewed=days_ago(3),
            quiz_history=(quiz(80),),
            current_bloom_level=2,
        )
        # 80 + 2*5 - 3*2 - 10
        assert topic_priority(topic, TODAY) == 74

    def test_staleness_penalty_is_capped(self):
        stale = make_topic(status=TopicStatus.SOLID, last_reviewed=days_ago(100), quiz_history=(quiz(90),))
        # 90 + 5 - 20 - 0
        assert topic_priority(stale, TODAY) == 75

    def test_never_reviewed_gets_full_staleness(self):
        topic = make_topic(status=TopicStatus.SOLID, quiz_history=(quiz(90),))
        assert topic_priority(topic, TODAY) == 75

    def test_future_review_date_earns_no_bonus(self):
        history = (quiz(90),)
        future = make_topic(status=TopicStatus.WEAK, last_reviewed=days_ahead(10), quiz_history=history)
        fresh = make_topic(status=TopicStatus.WEAK, last_reviewed=TODAY, quiz_history=history)
        # 90 + 5 - 0 - 20
        assert topic_priority(future, TODAY) == topic_priority(fresh, TODAY) == 75

    @pytest.mark.parametrize("status", list(TopicStatus))
    def test_non_negative(self, status):
        topic = make_topic(status=status, last_reviewed=None)
        assert topic_priority(topic, TODAY) >= 0

    def test_weak_topics_are_more_urgent(self):
        weak = make_topic(status=TopicStatus.WEAK, last_reviewed=days_ago(1), quiz_history=(quiz(70),))
        solid = make_topic(status=TopicStatus.SOLID, last_reviewed=days_ago(1), quiz_history=(quiz(70),))
        assert topic_priority(weak, TODAY) < topic_priority(solid, TODAY)


class TestRankTopics:
    def test_most_urgent_first(self):
        topics = [
            make_topic("solid", status=TopicStatus.SOLID, last_reviewed=days_ago(1), quiz_history=(quiz(95),)),
            make_topic("new", status=TopicStatus.NOT_STARTED),
            make_topic("weak", status=TopicStatus.WEAK, last_reviewed=days_ago(2), quiz_history=(quiz(60),)),
        ]
        assert [t.id for t in rank_topics(topics, TODAY)] == ["new", "weak", "solid"]

    def test_stable_for_ties(self):
        topics = [make_topic(f"n{i}") for i in range(5)]
        assert [t.id for t in rank_topics(topics, TODAY)] == ["n0", "n1", "n2", "n3", "n4"]


class TestSubjectProgress:
    def test_empty_subject(self):
        pct, counts = subject_progress(Subject(id="s"))
        assert pct == 0
        assert sum(counts.values()) == 0

    def test_weighted_percentage(self, mixed_subject):
        pct, counts = subject_progress(mixed_subject)
        # (1.0 + 0.7 + 0.3 + 0) / 4
        assert pct == 50
        assert counts[TopicStatus.SOLID] == 1
        assert counts[TopicStatus.NOT_STARTED] == 1
