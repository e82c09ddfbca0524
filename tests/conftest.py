"""Pytest fixtures and configuration for pairplan tests."""

import pytest
import uuid
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from helpers import utc
from pairplan.database.database import Base
from pairplan.database import models  # noqa: F401  (registers tables on Base.metadata)
from pairplan.database.event_repository import EventRepository
from pairplan.database.household_task_repository import HouseholdTaskRepository
from pairplan.database.task_completion_repository import TaskCompletionRepository
from pairplan.models.event import Event
from pairplan.models.household_task import HouseholdTask


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture
def fixed_now():
    """Pinned clock value shared by a test and the code under test."""
    return utc(2024, 12, 1, 12, 0, 0)


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def event_repository(db_session: Session):
    """Create an EventRepository instance for testing."""
    return EventRepository(db_session)


@pytest.fixture
def task_repository(db_session: Session):
    """Create a HouseholdTaskRepository instance for testing."""
    return HouseholdTaskRepository(db_session)


@pytest.fixture
def completion_repository(db_session: Session):
    """Create a TaskCompletionRepository instance for testing."""
    return TaskCompletionRepository(db_session)


@pytest.fixture
def sample_event_base():
    """Base event data; override fields per test."""
    return {
        "id": str(uuid.uuid4()),
        "title": "Date night",
        "description": "Dinner downtown",
        "date": utc(2025, 1, 6, 0, 0, 0),
        "start_time": "19:00",
        "end_time": "21:00",
        "location": None,
        "emoji": None,
        "period": "evening",
        "recurrence": "never",
        "recurrence_end": None,
        "recurrence_rule": None,
        "timezone": None,
    }


@pytest.fixture
def sample_event(sample_event_base):
    return Event(**sample_event_base)


@pytest.fixture
def weekly_event(sample_event_base):
    """Monday 2025-01-06, repeating weekly."""
    return Event(**{**sample_event_base, "recurrence": "weekly", "recurrence_rule": "FREQ=WEEKLY"})


@pytest.fixture
def sample_task_base():
    """Base household task data; override fields per test."""
    return {
        "id": str(uuid.uuid4()),
        "title": "Take out the trash",
        "description": None,
        "frequency": "once",
        "assigned_to": "partner-a",
        "due_date": None,
        "completed": False,
        "completed_at": None,
        "next_due_date": None,
        "recurrence_rule": None,
        "weekdays": None,
        "month_day": None,
        "priority": 1,
        "position": 0,
    }


@pytest.fixture
def sample_task(sample_task_base):
    return HouseholdTask(**sample_task_base)


@pytest.fixture
def test_client(db_session: Session, fixed_now):
    """FastAPI test client with the database session and clock overridden."""
    from pairplan.api.app import app, get_now
    from pairplan.database.database import get_db

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # The db_session fixture closes the session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: fixed_now

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
