"""
Decay State Machine.

Downgrades a topic's coarse mastery status when it has gone unreviewed for
too long. Rules are ordered (threshold_days, downgrade_to) tuples evaluated
top-down, first match wins. Declaration order matters at the boundaries and
must not be re-sorted.

Elapsed time is always measured against the status the topic had at its last
review (``Topic.reviewed_status``), so applying decay twice on the same day
yields the same topic as applying it once.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date

from loguru import logger

from study_planner.core.dates import days_since
from study_planner.core.models import Subject, Topic, TopicStatus

DECAY_RULES: dict[TopicStatus, tuple[tuple[int, TopicStatus], ...]] = {
    TopicStatus.SOLID: (
        (28, TopicStatus.WEAK),
        (18, TopicStatus.LEARNED),
    ),
    TopicStatus.LEARNED: (
        (28, TopicStatus.NOT_STARTED),
        (14, TopicStatus.WEAK),
    ),
    TopicStatus.WEAK: (
        (18, TopicStatus.NOT_STARTED),
    ),
    TopicStatus.NOT_STARTED: (),
}


def decayed_status(baseline: TopicStatus, elapsed_days: float) -> TopicStatus:
    """
    Look up the status a topic falls to after `elapsed_days` without review.

    When a rule fires, the downgraded status starts aging by its own rules
    from that rule's threshold, so a Solid topic reaches Weak at 28 days and
    NotStarted at 28 + 18 = 46 days.

    Args:
        baseline: Status at the last review
        elapsed_days: Days since that review (math.inf if never reviewed)

    Returns:
        Downgraded status, or `baseline` when no rule matches
    """
    status = baseline
    remaining = elapsed_days
    while True:
        for threshold, downgrade_to in DECAY_RULES[status]:
            if remaining >= threshold:
                status = downgrade_to
                remaining -= threshold
                break
        else:
            return status


def apply_decay(topic: Topic, today: date) -> Topic:
    """
    Age a topic's status by the time since its last review.

    NOT_STARTED topics are returned unchanged. A downgrade only applies when it
    lowers the current status; decay never raises a status.
    """
    if topic.status is TopicStatus.NOT_STARTED:
        return topic

    baseline = topic.reviewed_status or topic.status
    elapsed = days_since(topic.last_reviewed, today)
    target = decayed_status(baseline, elapsed)

    if target.rank >= topic.status.rank:
        return topic

    logger.debug(
        f"Decay: topic {topic.id} {topic.status.value} -> {target.value} "
        f"({elapsed:g} days since review)"
    )
    return replace(topic, status=target, reviewed_status=baseline)


def apply_decay_to_all(subjects: list[Subject], today: date) -> list[Subject]:
    """Apply decay to every topic of every subject."""
    return [
        replace(subject, topics=tuple(apply_decay(t, today) for t in subject.topics))
        for subject in subjects
    ]


def grade_to_status(avg_grade: float) -> TopicStatus:
    """
    Map an average grade to the status a grade recorder should assign.

    Used by the external grade-recording flow (the only path that upgrades a
    status); decay never calls it.
    """
    if avg_grade >= 5.5:
        return TopicStatus.SOLID
    if avg_grade >= 4.5:
        return TopicStatus.LEARNED
    return TopicStatus.WEAK
