"""Tests for demo data seeding."""

from __future__ import annotations

from datetime import date

from habitpulse.infra.repositories import SQLModelHabitRepository, SQLModelUserRepository
from habitpulse.services.analytics import build_user_report
from habitpulse.services.seed import DEMO_HABITS, DEMO_USERS, run_demo_seed

TODAY = date(2024, 3, 10)


def test_seed_creates_full_history(session_factory):
    summary = run_demo_seed(session_factory, today=TODAY, completion_chance=1.0, rng_seed=1)

    assert summary.users == len(DEMO_USERS)
    assert summary.habits == len(DEMO_USERS) * len(DEMO_HABITS)
    assert summary.completions == summary.habits * 7
    assert summary.follows == 2

    john = SQLModelUserRepository(session_factory).get_by_username("john_doe")
    report = build_user_report(
        repository=SQLModelHabitRepository(session_factory), user_id=john.id, now=TODAY
    )
    assert report["stats"].total_habits == len(DEMO_HABITS)
    assert report["stats"].completed_in_current_period == len(DEMO_HABITS)


def test_seed_is_idempotent(session_factory):
    run_demo_seed(session_factory, today=TODAY, rng_seed=1)

    again = run_demo_seed(session_factory, today=TODAY, rng_seed=1)

    assert (again.users, again.habits, again.completions, again.follows) == (0, 0, 0, 0)
