"""
Unit tests for the daily plan generator, budget and alerts.
"""

import pytest

from conftest import TODAY, days_ago, days_ahead, make_topic, quiz

from study_planner.core.models import (
    DailyStatus,
    ExamFormat,
    ScheduleEntry,
    Subject,
    TaskBucket,
    TopicSize,
    TopicStatus,
)
from study_planner.study.planner import (
    AlertLevel,
    PlanConfig,
    Urgency,
    daily_workload,
    effective_minutes,
    generate_daily_plan,
    get_alerts,
)

TOMORROW = 3  # TODAY is a Wednesday


def _subject(subject_id, statuses, reviewed=1, **kwargs):
    return Subject(
        id=subject_id,
        name=subject_id.title(),
        topics=tuple(
            make_topic(
                f"{subject_id}-{i}",
                status=status,
                last_reviewed=None if status is TopicStatus.NOT_STARTED else days_ago(reviewed),
            )
            for i, status in enumerate(statuses)
        ),
        **kwargs,
    )


def _plan(subjects, schedule=(), minutes=200, **kwargs):
    return generate_daily_plan(subjects, list(schedule), minutes, today=TODAY, **kwargs)


class TestCriticalPass:
    def test_tomorrows_class_gets_forty_percent(self):
        subject = _subject("bio", [TopicStatus.WEAK, TopicStatus.SOLID, TopicStatus.LEARNED])
        tasks = _plan([subject], [ScheduleEntry(TOMORROW, "bio")])

        assert tasks[0].bucket is TaskBucket.CRITICAL
        assert tasks[0].estimated_minutes == 80
        assert [t.id for t in tasks[0].topics] == ["bio-0", "bio-2"]

    def test_split_across_entries(self):
        subjects = [_subject("bio", [TopicStatus.WEAK]), _subject("chem", [TopicStatus.WEAK])]
        schedule = [ScheduleEntry(TOMORROW, "bio"), ScheduleEntry(TOMORROW, "chem")]
        tasks = [t for t in _plan(subjects, schedule) if t.bucket is TaskBucket.CRITICAL]
        assert [t.estimated_minutes for t in tasks] == [40, 40]

    def test_ignores_other_days_and_no_prep(self):
        subject = _subject("bio", [TopicStatus.WEAK])
        schedule = [
            ScheduleEntry(TOMORROW + 1, "bio"),
            ScheduleEntry(TOMORROW, "bio", requires_preparation=False),
        ]
        assert all(t.bucket is not TaskBucket.CRITICAL for t in _plan([subject], schedule))

    def test_at_most_five_ranked_topics(self):
        practiced = tuple(
            make_topic(f"w{i}", status=TopicStatus.WEAK, last_reviewed=days_ago(1), quiz_history=(quiz(90),))
            for i in range(4)
        )
        new = tuple(make_topic(f"n{i}") for i in range(4))
        subject = Subject(id="bio", topics=practiced + new)

        task = _plan([subject], [ScheduleEntry(TOMORROW, "bio")])[0]

        assert len(task.topics) == 5
        # NotStarted topics rank most urgent
        assert [t.id for t in task.topics[:4]] == ["n0", "n1", "n2", "n3"]

    def test_all_solid_subject_is_skipped(self):
        subject = _subject("bio", [TopicStatus.SOLID])
        assert _plan([subject], [ScheduleEntry(TOMORROW, "bio")]) == []


class TestHighPass:
    def test_nearest_exam_first(self):
        subjects = [
            _subject("later", [TopicStatus.WEAK], exam_date=days_ahead(6)),
            _subject("sooner", [TopicStatus.WEAK], exam_date=days_ahead(2)),
            _subject("far", [TopicStatus.WEAK], exam_date=days_ahead(30)),
        ]
        high = [t for t in _plan(subjects) if t.bucket is TaskBucket.HIGH]
        assert [t.subject_id for t in high] == ["sooner", "later"]
        assert high[0].label == "Exam in 2 days"
        # 50% of 200 split across two subjects
        assert [t.estimated_minutes for t in high] == [50, 50]

    def test_exam_today_counts(self):
        subject = _subject("bio", [TopicStatus.WEAK], exam_date=TODAY)
        assert _plan([subject])[0].bucket is TaskBucket.HIGH

    def test_past_exam_ignored(self):
        subject = _subject("bio", [TopicStatus.WEAK], exam_date=days_ago(1))
        assert all(t.bucket is not TaskBucket.HIGH for t in _plan([subject]))

    def test_caps_at_eight_topics(self):
        subject = _subject("bio", [TopicStatus.WEAK] * 12, exam_date=days_ahead(3))
        assert len(_plan([subject])[0].topics) == 8

    def test_format_aware_description(self):
        topic = make_topic(
            "t1",
            status=TopicStatus.WEAK,
            last_reviewed=days_ago(1),
            quiz_history=(quiz(30, bloom_level=4),),
        )
        subject = Subject(
            id="bio",
            topics=(topic,),
            exam_date=days_ahead(4),
            exam_format=ExamFormat(mcq=20, case_studies=2),
        )
        task = _plan([subject])[0]
        assert "2 case studies" in task.description


class TestMediumPass:
    def test_stale_topics(self):
        subject = _subject("bio", [TopicStatus.LEARNED, TopicStatus.SOLID, TopicStatus.NOT_STARTED], reviewed=9)
        tasks = _plan([subject])
        assert tasks[0].bucket is TaskBucket.MEDIUM
        assert {t.id for t in tasks[0].topics} == {"bio-0", "bio-1"}
        # 30% of 200, halved
        assert tasks[0].estimated_minutes == 30

    def test_fresh_topics_skipped(self):
        subject = _subject("bio", [TopicStatus.LEARNED], reviewed=3)
        assert _plan([subject]) == []

    def test_caps_at_five(self):
        subject = _subject("bio", [TopicStatus.WEAK] * 7, reviewed=10)
        assert len(_plan([subject])[0].topics) == 5


class TestNormalPass:
    def test_new_material_when_behind(self):
        subject = _subject("bio", [TopicStatus.NOT_STARTED] * 10, exam_date=days_ahead(10))
        tasks = _plan([subject])
        normal = [t for t in tasks if t.bucket is TaskBucket.NORMAL]
        assert len(normal) == 1
        assert len(normal[0].topics) == 3
        assert normal[0].estimated_minutes == 100

    def test_not_behind_skipped(self):
        # 2 new topics / 10 days = 0.2
        subject = _subject("bio", [TopicStatus.NOT_STARTED] * 2, exam_date=days_ahead(10))
        assert _plan([subject]) == []

    def test_no_exam_date_skipped(self):
        subject = _subject("bio", [TopicStatus.NOT_STARTED] * 10)
        assert _plan([subject]) == []

    def test_stops_at_fifteen_minutes(self):
        subjects = [
            _subject(f"s{i}", [TopicStatus.NOT_STARTED] * 10, exam_date=days_ahead(10))
            for i in range(6)
        ]
        tasks = _plan(subjects, minutes=100)
        # 100 -> 50 -> 25 -> 12.5, then stop
        assert [t.estimated_minutes for t in tasks] == [50, 25, 13]

    def test_min_normal_minutes_configurable(self):
        subject = _subject("bio", [TopicStatus.NOT_STARTED] * 10, exam_date=days_ahead(10))
        assert _plan([subject], minutes=30, config=PlanConfig(min_normal_minutes=30)) == []


class TestBudget:
    @pytest.mark.parametrize("minutes", [0, 17, 60, 125, 240, 601])
    def test_conservation(self, minutes, mixed_subject):
        subjects = [
            mixed_subject,
            _subject("exam", [TopicStatus.WEAK, TopicStatus.NOT_STARTED] * 5, reviewed=8, exam_date=days_ahead(3)),
            _subject("late", [TopicStatus.LEARNED] * 3, reviewed=12),
        ]
        schedule = [ScheduleEntry(TOMORROW, "anatomy"), ScheduleEntry(TOMORROW, "exam")]
        tasks = _plan(subjects, schedule, minutes=minutes)
        assert sum(t.estimated_minutes for t in tasks) <= minutes + len(tasks)

    def test_topic_minutes_follow_size(self):
        subject = Subject(
            id="bio",
            topics=(
                make_topic("small", status=TopicStatus.WEAK, last_reviewed=days_ago(1), size=TopicSize.SMALL),
                make_topic("large", status=TopicStatus.WEAK, last_reviewed=days_ago(1), size=TopicSize.LARGE),
            ),
        )
        task = _plan([subject], [ScheduleEntry(TOMORROW, "bio")], minutes=150)[0]
        # 60 minutes split 15:60
        assert task.topic_minutes == {"small": 12, "large": 48}


class TestEffectiveMinutes:
    def test_no_modifiers(self):
        assert effective_minutes(DailyStatus(available_minutes=240)) == 240

    def test_sick_and_tired(self):
        status = DailyStatus(available_minutes=400, sick=True, sleep_quality=2, energy=2)
        # 400 * 0.5 * 0.7 * 0.8
        assert effective_minutes(status) == 112

    def test_floor_of_sixty(self):
        status = DailyStatus(available_minutes=100, sick=True, holiday=True)
        assert effective_minutes(status) == 60

    def test_floor_never_exceeds_available(self):
        assert effective_minutes(DailyStatus(available_minutes=40, sick=True)) == 40


class TestDailyWorkload:
    def test_urgency_and_minimums(self):
        subjects = [
            _subject("low", [TopicStatus.WEAK] * 4, exam_date=days_ahead(40)),
            _subject("crit", [TopicStatus.WEAK] * 9, exam_date=days_ahead(2)),
            _subject("high", [TopicStatus.WEAK] * 2, exam_date=days_ahead(6)),
            _subject("done", [TopicStatus.SOLID], exam_date=days_ahead(2)),
            _subject("none", [TopicStatus.WEAK]),
        ]
        workload = daily_workload(subjects, DailyStatus(available_minutes=240), TODAY)

        by_id = {e.subject_id: e for e in workload.by_subject}
        assert set(by_id) == {"low", "crit", "high"}
        assert by_id["crit"].urgency is Urgency.CRITICAL
        assert by_id["crit"].topics == 5
        assert by_id["high"].topics == 3
        assert by_id["low"].topics == 1
        assert [e.subject_id for e in workload.by_subject][0] == "crit"
        assert workload.total_topics == 9

    def test_capped_at_ten(self):
        subject = _subject("crit", [TopicStatus.WEAK] * 50, exam_date=days_ahead(1))
        workload = daily_workload([subject], DailyStatus(available_minutes=240), TODAY)
        assert workload.by_subject[0].topics == 10

    @pytest.mark.parametrize(
        "sick,holiday,expected",
        [(False, False, 8), (True, False, 4), (False, True, 4), (True, True, 2)],
    )
    def test_modifiers(self, sick, holiday, expected):
        subject = _subject("crit", [TopicStatus.WEAK] * 8, exam_date=days_ahead(1))
        status = DailyStatus(available_minutes=240, sick=sick, holiday=holiday)
        assert daily_workload([subject], status, TODAY).total_topics == expected


class TestAlerts:
    def test_all_alert_kinds(self):
        subjects = [
            _subject("bio", [TopicStatus.WEAK] * 3, reviewed=8, exam_date=days_ahead(2)),
            _subject("chem", [TopicStatus.WEAK], exam_date=days_ahead(5)),
        ]
        alerts = get_alerts(subjects, [ScheduleEntry(TOMORROW, "chem", label="Lab")], TODAY)

        assert alerts[0].level is AlertLevel.CRITICAL
        assert "Lab tomorrow" in alerts[0].message
        levels = {(a.subject_id, a.level) for a in alerts}
        assert ("bio", AlertLevel.CRITICAL) in levels
        assert ("chem", AlertLevel.WARNING) in levels
        assert any("3 topics" in a.message for a in alerts)

    def test_quiet_day(self, mixed_subject):
        assert get_alerts([mixed_subject], [], TODAY) == []
