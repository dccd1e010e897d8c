"""
Pytest configuration and fixtures
"""
import os
from datetime import date, datetime

# Must be set before diary.* is imported: the app builds its engine at import time
os.environ["DIARY_DATABASE_URL"] = "sqlite://"
os.environ.setdefault("DIARY_LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from diary.api.deps import get_clock
from diary.core.clock import FixedClock
from diary.db.init_db import init_db
from diary.db.session import build_engine, get_db
from diary.main import app
from diary.models.activity import ActivityType
from diary.models.program import ScheduledActivity
from diary.services.catalog import catalog_cache
from diary.services.schedule import ScheduleService

# 2024-01-01 is a Monday
MONDAY = date(2024, 1, 1)


@pytest.fixture(autouse=True)
def clear_catalog_cache():
    catalog_cache.clear()
    yield
    catalog_cache.clear()


@pytest.fixture
def engine():
    """Fresh in-memory database per test, default catalog seeded."""
    engine = build_engine("sqlite://")
    init_db(engine, seed=True)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def clock():
    """Tuesday 2024-01-02, 09:30."""
    return FixedClock(datetime(2024, 1, 2, 9, 30))


@pytest.fixture
def service(db, clock):
    return ScheduleService(db, clock)


@pytest.fixture
def walking(db):
    return db.query(ActivityType).filter(ActivityType.name == "Walking").one()


@pytest.fixture
def make_program(db, walking):
    """Factory that stores a program and returns it."""
    def _make(**overrides):
        fields = {
            "activity_type_id": walking.id,
            "name": "Morning walk",
            "duration_minutes": 30,
            "frequency_type": "daily",
            "frequency_value": None,
            "start_date": MONDAY,
            "is_active": True,
            "reminder_enabled": False,
        }
        fields.update(overrides)
        program = ScheduledActivity(**fields)
        db.add(program)
        db.commit()
        db.refresh(program)
        return program
    return _make


@pytest.fixture
def client(engine, clock):
    """TestClient bound to the per-test database and the fixed clock."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
