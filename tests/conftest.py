"""Pytest configuration and shared fixtures for HabitPulse tests.

This module provides database fixtures and test data factories for testing the
metrics engine, aggregators and repositories without touching a real database.
"""

from __future__ import annotations

import tempfile
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Iterable

import pytest
from sqlmodel import Session, SQLModel, create_engine, select

# Import all models to ensure they're registered with SQLModel metadata
from habitpulse.models import Completion, Follow, Habit, User  # noqa: F401
from habitpulse.services.habits import CompletionRecord, Frequency, HabitSnapshot

# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine connected to test database
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Create a database session for a single test.

    Yields:
        Session: SQLModel session for test
    """
    session = Session(db_engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory for repositories that expect Callable[[], Session]."""

    def factory():
        return Session(db_engine, expire_on_commit=False)

    return factory


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user_factory(db_session):
    """Factory for creating persisted users."""

    def _create_user(username: str = "tester", full_name: str = "Test User") -> User:
        existing = db_session.exec(select(User).where(User.username == username)).first()
        if existing:
            return existing
        u = User(username=username, full_name=full_name)
        db_session.add(u)
        db_session.commit()
        db_session.refresh(u)
        return u

    return _create_user


@pytest.fixture
def user(user_factory) -> User:
    """Create a default user for scoping data."""

    return user_factory()


@pytest.fixture
def habit_factory(db_session, user):
    """Factory for creating test habits with optional completion days.

    Returns:
        Callable: Function that creates and persists Habit instances
    """

    def _create_habit(
        name: str = "Test Habit",
        category: str = "Health & Fitness",
        frequency: str = "daily",
        color: str = "#10B981",
        created_at: datetime | None = None,
        completed_on: Iterable[date] = (),
        is_active: bool = True,
        owner: User | None = None,
    ) -> Habit:
        """Create a test habit with sensible defaults.

        Args:
            name: Habit name
            category: One of the fixed habit categories
            frequency: 'daily' or 'weekly'
            created_at: Creation timestamp (defaults to now)
            completed_on: Days to record completions for, logged at noon

        Returns:
            Habit: Persisted habit instance
        """
        owner = owner or user
        habit = Habit(
            user_id=owner.id,
            name=name,
            category=category,
            frequency=frequency,
            color=color,
            is_active=is_active,
            created_at=created_at or datetime.now(timezone.utc),
        )
        db_session.add(habit)
        db_session.commit()
        db_session.refresh(habit)

        for day in completed_on:
            db_session.add(
                Completion(
                    habit_id=habit.id,
                    completed_on=day,
                    created_at=datetime.combine(day, time(hour=12), tzinfo=timezone.utc),
                )
            )
        db_session.commit()
        return habit

    return _create_habit


@pytest.fixture
def snapshot_factory():
    """Factory for in-memory habit snapshots used by pure engine tests."""

    counter = {"next_id": 1}

    def _create_snapshot(
        completed_on: Iterable[date] = (),
        *,
        frequency: str = "daily",
        created_at: datetime = datetime(2024, 1, 1, 9, 0),
        name: str | None = None,
        category: str = "Health & Fitness",
        color: str = "#10B981",
        user_id: int = 1,
        is_active: bool = True,
        completions: Iterable[CompletionRecord] | None = None,
    ) -> HabitSnapshot:
        habit_id = counter["next_id"]
        counter["next_id"] += 1
        if completions is None:
            completions = [
                CompletionRecord(
                    completed_on=day,
                    created_at=datetime.combine(day, time(hour=12), tzinfo=timezone.utc),
                    id=index,
                )
                for index, day in enumerate(completed_on, start=1)
            ]
        return HabitSnapshot(
            id=habit_id,
            user_id=user_id,
            name=name or f"Habit {habit_id}",
            category=category,
            frequency=Frequency.parse(frequency),
            color=color,
            created_at=created_at,
            is_active=is_active,
            completions=tuple(completions),
        )

    return _create_snapshot
