"""Demo data seeding: users, habits, completion history and follow edges."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, ContextManager, Optional

from sqlmodel import Session

from ..infra.repositories.habit import SQLModelHabitRepository
from ..infra.repositories.user import SQLModelUserRepository
from ..models import Habit, User

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], ContextManager[Session]]

DEMO_USERS = [
    ("john_doe", "John Doe"),
    ("jane_smith", "Jane Smith"),
    ("mike_wilson", "Mike Wilson"),
]

DEMO_HABITS = [
    ("Morning Exercise", "30 minutes of cardio or strength training", "Health & Fitness", "daily", "#10B981"),
    ("Read for 30 minutes", "Read books, articles, or educational content", "Learning", "daily", "#8B5CF6"),
    ("Meditation", "10 minutes of mindfulness meditation", "Mindfulness", "daily", "#06B6D4"),
    ("Weekly Planning", "Plan and organize the upcoming week", "Productivity", "weekly", "#F59E0B"),
]

# follower username -> followee usernames
DEMO_FOLLOWS = {"john_doe": ["jane_smith", "mike_wilson"]}


@dataclass(frozen=True)
class SeedSummary:
    """Counts of rows created by a seed run."""

    users: int
    habits: int
    completions: int
    follows: int


def run_demo_seed(
    session_factory: SessionFactory,
    *,
    today: Optional[date] = None,
    history_days: int = 7,
    completion_chance: float = 0.7,
    rng_seed: Optional[int] = None,
) -> SeedSummary:
    """Seed demo users with habits and a recent completion history.

    Existing users and habits are reused, so running twice never duplicates
    them; completions are only generated for newly created habits.
    """

    today = today or date.today()
    rng = random.Random(rng_seed)
    users_repo = SQLModelUserRepository(session_factory)
    habits_repo = SQLModelHabitRepository(session_factory)

    users: dict[str, User] = {}
    created_users = created_habits = created_completions = created_follows = 0

    for username, full_name in DEMO_USERS:
        user = users_repo.get_by_username(username)
        if user is None:
            user = users_repo.create(User(username=username, full_name=full_name))
            created_users += 1
        users[username] = user

    created_at = datetime.combine(
        today - timedelta(days=history_days), time.min, tzinfo=timezone.utc
    )
    for user in users.values():
        for name, description, category, frequency, color in DEMO_HABITS:
            if habits_repo.get_by_name(name, user_id=user.id) is not None:
                continue
            habit = habits_repo.create(
                Habit(
                    name=name,
                    description=description,
                    category=category,
                    frequency=frequency,
                    color=color,
                    created_at=created_at,
                ),
                user_id=user.id,
            )
            created_habits += 1
            for offset in range(history_days):
                if rng.random() >= completion_chance:
                    continue
                day = today - timedelta(days=offset)
                logged_at = datetime.combine(
                    day, time(hour=rng.randint(6, 22), minute=rng.randint(0, 59)), tzinfo=timezone.utc
                )
                habits_repo.toggle_completion(habit.id, day, user_id=user.id, logged_at=logged_at)
                created_completions += 1

    for follower, followees in DEMO_FOLLOWS.items():
        for followee in followees:
            if users_repo.follow(users[follower].id, users[followee].id):
                created_follows += 1

    summary = SeedSummary(
        users=created_users,
        habits=created_habits,
        completions=created_completions,
        follows=created_follows,
    )
    logger.info("Demo seed completed", extra={"summary": summary})
    return summary


__all__ = ["SeedSummary", "run_demo_seed"]
