"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from datetime import date, timedelta
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from study_planner.core.models import QuizResult, Subject, Topic, TopicStatus  # noqa: E402

# Fixed reference day so date math is reproducible (a Wednesday)
TODAY = date(2026, 1, 14)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def today():
    """Reference day shared by all date-dependent tests."""
    return TODAY


def days_ago(n: int) -> date:
    return TODAY - timedelta(days=n)


def days_ahead(n: int) -> date:
    return TODAY + timedelta(days=n)


def quiz(score: float, bloom_level: int = 1, weight: float = 1.0, when: date | None = None) -> QuizResult:
    return QuizResult(date=when or TODAY, bloom_level=bloom_level, score=score, weight=weight)


def make_topic(topic_id: str = "t1", **kwargs) -> Topic:
    kwargs.setdefault("name", topic_id.upper())
    return Topic(id=topic_id, **kwargs)


@pytest.fixture
def mixed_subject():
    """Provide a subject with one topic in every status."""
    return Subject(
        id="anatomy",
        name="Anatomy",
        topics=(
            make_topic("bones", status=TopicStatus.SOLID, last_reviewed=days_ago(2), grades=(6.0, 5.5)),
            make_topic("muscles", status=TopicStatus.LEARNED, last_reviewed=days_ago(6), grades=(5.0,)),
            make_topic("nerves", status=TopicStatus.WEAK, last_reviewed=days_ago(10), grades=(3.0, 4.0)),
            make_topic("vessels", status=TopicStatus.NOT_STARTED),
        ),
        exam_date=days_ahead(20),
    )
