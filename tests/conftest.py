"""
Pytest fixtures for testing
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stackr.application.achievements import AchievementEngine
from stackr.application.guardrails import GuardrailsMonitor
from stackr.application.notifications import NotificationService
from stackr.application.reminders import ReminderService
from stackr.application.scorecard import ScorecardService, StaticSnapshotSource
from stackr.application.summaries import FinancialSummaryGenerator
from stackr.infrastructure.db.session import create_schema
from stackr.infrastructure.store import InMemoryStore

UTC = timezone.utc
NOW = datetime(2026, 3, 18, 12, 0, tzinfo=UTC)


class FakeClock:
    """Callable clock that tests move by hand."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def notifications(store, clock):
    return NotificationService(store, clock=clock)


@pytest.fixture
def achievements(store, notifications, clock):
    return AchievementEngine(store, notifications, clock=clock, tz=UTC)


@pytest.fixture
def guardrails(store, notifications, clock):
    return GuardrailsMonitor(store, notifications, clock=clock, tz=UTC)


@pytest.fixture
def summaries(store, notifications, clock):
    return FinancialSummaryGenerator(store, notifications, clock=clock, tz=UTC)


@pytest.fixture
def reminders(store, notifications, clock):
    return ReminderService(store, notifications, clock=clock)


@pytest.fixture
def snapshots():
    return StaticSnapshotSource()


@pytest.fixture
def scorecards(store, notifications, snapshots, clock):
    return ScorecardService(store, notifications, snapshots, clock=clock)
