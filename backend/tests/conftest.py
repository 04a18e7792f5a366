"""Shared pytest fixtures."""

import itertools
import os

# Приложение не должно трогать рабочую БД и запускать планировщик в тестах
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from nightwatch.database import Base, enable_sqlite_foreign_keys, get_db
from nightwatch.models import Booking, Schedule, User
from nightwatch.services.occurrence_service import shift_end


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", enable_sqlite_foreign_keys)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    """Factory for committed users."""
    counter = itertools.count(1)

    def _make(name=None, phone=None, role="owl"):
        number = next(counter)
        user = User(
            phone=phone or f"+2782555{number:04d}",
            name=name if name is not None else f"Member {number}",
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_schedule(db):
    """Factory for committed schedules (no validation, malformed patterns allowed)."""

    def _make(
        name="Evening patrol",
        cron_expr="0 * * * *",
        duration_minutes=60,
        start_date=None,
        end_date=None,
        timezone=None,
    ):
        schedule = Schedule(
            name=name,
            cron_expr=cron_expr,
            duration_minutes=duration_minutes,
            start_date=start_date,
            end_date=end_date,
            timezone=timezone,
        )
        db.add(schedule)
        db.commit()
        db.refresh(schedule)
        return schedule

    return _make


@pytest.fixture
def make_booking(db):
    """Factory for bookings inserted directly, bypassing validation."""

    def _make(user, schedule, start, buddy_name=None):
        booking = Booking(
            user_id=user.id,
            schedule_id=schedule.id,
            shift_start=start,
            shift_end=shift_end(start, schedule.duration_minutes),
            buddy_name=buddy_name,
            attended=False,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make


@pytest.fixture
def client(session_factory):
    """TestClient with get_db bound to the test engine."""
    from nightwatch.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
