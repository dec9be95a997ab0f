"""Pytest configuration for the compliance engine test suite."""

import os

import pytest

# Keep tests independent of any developer .env
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("SLA_POLL_INTERVAL_SECONDS", "300")

from compliance_engine.config import UserRole  # noqa: E402

from fakes import (  # noqa: E402
    FixedClock,
    InMemoryAssignmentHistory,
    InMemoryUserDirectory,
    RecordingPublisher,
    make_user,
)


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture()
def history() -> InMemoryAssignmentHistory:
    return InMemoryAssignmentHistory()


@pytest.fixture()
def directory() -> InMemoryUserDirectory:
    """Investigators A and C, triage lead B, and a non-routable employee E, in creation order."""
    return InMemoryUserDirectory([
        make_user("A", order=1),
        make_user("B", order=2, role=UserRole.TRIAGE_LEAD.value),
        make_user("C", order=3),
        make_user("E", order=4, role=UserRole.EMPLOYEE.value),
    ])
