"""
Pytest configuration and fixtures for backend tests.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from core.clock import FixedClock  # noqa: E402
from core.correlation import set_correlation_id  # noqa: E402
from core.id_generator import SequentialIdGenerator  # noqa: E402
from models.moderation_types import (  # noqa: E402
    ActivitySeverity,
    ActivityTargetType,
    ActivityType,
    HackathonStatus,
)
from models.schemas import ActivityItem  # noqa: E402
from repositories.database import Base  # noqa: E402
import repositories.db_models as db_models  # noqa: E402

# Test database engine (in-memory SQLite)
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Fixed "now" for every test that takes the clock fixture
TEST_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh in-memory database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_correlation_id():
    """Start every test without a bound correlation ID."""
    set_correlation_id("")
    yield
    set_correlation_id("")


@pytest.fixture
def fixed_clock() -> FixedClock:
    """Clock frozen at TEST_NOW."""
    return FixedClock(TEST_NOW)


@pytest.fixture
def id_generator() -> SequentialIdGenerator:
    """Deterministic id source."""
    return SequentialIdGenerator()


@pytest.fixture
def make_activity() -> Callable[..., ActivityItem]:
    """
    Factory for in-memory activities.

    ``minutes_ago`` is relative to TEST_NOW.
    """
    counter = {"n": 0}

    def _make(
        activity_type: ActivityType = ActivityType.USER_SIGNUP,
        minutes_ago: float = 0,
        actor_id: Optional[str] = None,
        severity: ActivitySeverity = ActivitySeverity.INFO,
        target_type: ActivityTargetType = ActivityTargetType.USER,
        target_id: str = "target-1",
    ) -> ActivityItem:
        counter["n"] += 1
        return ActivityItem(
            id=f"act-{counter['n']}",
            activity_type=activity_type,
            actor_id=actor_id,
            target_type=target_type,
            target_id=target_id,
            action=f"{activity_type.value} #{counter['n']}",
            severity=severity,
            created_at=TEST_NOW - timedelta(minutes=minutes_ago),
        )

    return _make


@pytest.fixture
def make_activities(
    make_activity: Callable[..., ActivityItem],
) -> Callable[..., list[ActivityItem]]:
    """Build ``count`` activities of one type spread over a few minutes."""

    def _make_many(
        count: int,
        activity_type: ActivityType = ActivityType.USER_SIGNUP,
        minutes_ago: float = 0,
        actor_id: Optional[str] = None,
    ) -> list[ActivityItem]:
        return [
            make_activity(activity_type, minutes_ago=minutes_ago, actor_id=actor_id)
            for _ in range(count)
        ]

    return _make_many


@pytest.fixture
def profile(db_session: Session) -> db_models.Profile:
    """A verified participant created 90 days before TEST_NOW."""
    record = db_models.Profile(
        email="participant@example.com",
        username="participant",
        is_verified=True,
        created_at=TEST_NOW - timedelta(days=90),
    )
    db_session.add(record)
    db_session.commit()
    db_session.refresh(record)
    return record


@pytest.fixture
def organizer(db_session: Session) -> db_models.OrganizerProfile:
    """An organizer profile created 60 days before TEST_NOW."""
    user = db_models.Profile(
        email="organizer@example.com",
        username="organizer",
        is_verified=True,
        created_at=TEST_NOW - timedelta(days=60),
    )
    db_session.add(user)
    db_session.commit()
    record = db_models.OrganizerProfile(
        user_id=user.id,
        organization_name="Hack Club",
        created_at=TEST_NOW - timedelta(days=60),
    )
    db_session.add(record)
    db_session.commit()
    db_session.refresh(record)
    return record


@pytest.fixture
def make_hackathon(db_session: Session) -> Callable[..., db_models.OrganizerHackathon]:
    """Factory for hackathons owned by an organizer user id."""

    def _make(
        organizer_id: Optional[int],
        status: HackathonStatus = HackathonStatus.PUBLISHED,
        title: str = "Spring Hack",
    ) -> db_models.OrganizerHackathon:
        record = db_models.OrganizerHackathon(
            organizer_id=organizer_id, title=title, status=status
        )
        db_session.add(record)
        db_session.commit()
        db_session.refresh(record)
        return record

    return _make


@pytest.fixture
def add_rows(db_session: Session) -> Callable[..., list[Any]]:
    """Insert ORM rows and return them refreshed."""

    def _add(*rows: Any) -> list[Any]:
        db_session.add_all(rows)
        db_session.commit()
        for row in rows:
            db_session.refresh(row)
        return list(rows)

    return _add
