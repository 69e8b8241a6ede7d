"""
Pytest configuration and fixtures for backend tests.

Provides shared fixtures for:
- Test database sessions (in-memory SQLite shared with the app)
- In-memory store fake for the lifecycle engine
- Sample data factories
- FastAPI test client with staff area login helper
"""

import os
from datetime import datetime

import pytest

# Set test environment variables before importing app modules
os.environ['EVENTFLOW_DB_URL'] = 'sqlite:///:memory:'
os.environ['EVENTFLOW_LIFECYCLE_ENABLED'] = 'false'
os.environ['SESSION_SECRET_KEY'] = 'test-secret-key-for-eventflow-integration-tests'

from backend.src.db.database import SessionLocal, engine
from backend.src.models import Attendee, Base, Event, EventStatus
from backend.src.services.exceptions import StoreError


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope='function')
def test_db_engine():
    """
    The application engine, bound to an in-memory SQLite database.

    Tables are created for each test and dropped afterwards, so background
    components using SessionLocal see the same data as the test.
    """
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope='function')
def test_session_factory(test_db_engine):
    """Session factory for components that open their own sessions."""
    return SessionLocal


@pytest.fixture(scope='function')
def test_db_session(test_session_factory):
    """Create a test database session."""
    session = test_session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ============================================================================
# Store Fake
# ============================================================================

class FakeEventStore:
    """
    In-memory stand-in for TableStore(Event).

    Rows are plain dicts. Set fail_updates_for to a set of GUIDs (or True for
    all) to make update() raise StoreError.
    """

    def __init__(self, events=None):
        self.rows = [dict(e) for e in (events or [])]
        self.updates = []
        self.fail_updates_for = set()
        self.fail_selects = False

    def select_all(self, order_by=None, descending=False):
        if self.fail_selects:
            raise StoreError("select", "events")
        rows = [dict(r) for r in self.rows]
        if order_by:
            rows.sort(key=lambda r: r[order_by], reverse=descending)
        return rows

    def update(self, values, **match):
        guid = match["guid"]
        if self.fail_updates_for is True or guid in self.fail_updates_for:
            raise StoreError("update", "events")
        self.updates.append((guid, dict(values)))
        updated = []
        for row in self.rows:
            if row["guid"] == guid:
                row.update(values)
                updated.append(dict(row))
        return updated

    def get(self, guid):
        return next(r for r in self.rows if r["guid"] == guid)


@pytest.fixture
def make_event_record():
    """Factory for event dicts as produced by Event.to_record()."""
    counter = {"n": 0}

    def _create(
        cue_order,
        status=EventStatus.SCHEDULED.value,
        location="Main Hall",
        start_time=None,
        end_time=None,
        duration=30,
        title=None,
    ):
        counter["n"] += 1
        return {
            "guid": f"evt_{counter['n']:026d}",
            "title": title or f"Event {cue_order}",
            "description": None,
            "presenter": None,
            "location": location,
            "notes": None,
            "color": "#007bff",
            "start_time": start_time,
            "end_time": end_time,
            "duration": duration,
            "status": status,
            "cue_order": cue_order,
            "created_at": datetime(2026, 1, 1),
            "updated_at": datetime(2026, 1, 1),
        }

    return _create


@pytest.fixture
def fake_store():
    """Factory for FakeEventStore."""
    return FakeEventStore


# ============================================================================
# Sample Data Factories
# ============================================================================

@pytest.fixture
def sample_attendee(test_db_session):
    """Factory for creating sample Attendee models in the database."""
    def _create(name='Ann Lee', email='ann@x.io', company=None, checked_in=False, check_in_time=None):
        attendee = Attendee(
            name=name,
            email=email,
            company=company,
            checked_in=checked_in,
            check_in_time=check_in_time,
        )
        test_db_session.add(attendee)
        test_db_session.commit()
        test_db_session.refresh(attendee)
        return attendee
    return _create


@pytest.fixture
def sample_event(test_db_session):
    """Factory for creating sample Event models in the database."""
    def _create(
        title='Keynote',
        cue_order=1,
        location='Main Hall',
        status=EventStatus.SCHEDULED.value,
        start_time=None,
        end_time=None,
        duration=30,
        **kwargs
    ):
        event = Event(
            title=title,
            cue_order=cue_order,
            location=location,
            status=status,
            start_time=start_time,
            end_time=end_time,
            duration=duration,
            **kwargs
        )
        test_db_session.add(event)
        test_db_session.commit()
        test_db_session.refresh(event)
        return event
    return _create


# ============================================================================
# API Client Fixtures
# ============================================================================

@pytest.fixture
def test_client(test_db_engine):
    """
    Create a test client for the FastAPI application.

    The lifespan runs (change relay, display hub); the lifecycle runner is
    disabled through EVENTFLOW_LIFECYCLE_ENABLED so statuses only change
    when a test asks for it.
    """
    from fastapi.testclient import TestClient
    from backend.src.main import app

    with TestClient(app) as client:
        yield client


@pytest.fixture
def login(test_client):
    """Unlock a staff area on the test client's session."""
    def _login(area):
        from backend.src.config.settings import get_settings
        password = get_settings().area_passwords[area]
        response = test_client.post(
            "/api/auth/login", json={"area": area, "password": password}
        )
        assert response.status_code == 200
        return response.json()
    return _login


@pytest.fixture
def utcnow():
    """Current naive UTC time truncated to seconds."""
    return datetime.utcnow().replace(microsecond=0)
