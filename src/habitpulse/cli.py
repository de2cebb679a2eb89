"""Command line entry points for HabitPulse."""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from typing import Any, Optional

import click

from .config import BaseConfig
from .constants.categories import (
    DEFAULT_CATEGORY,
    DEFAULT_COLOR,
    DEFAULT_FREQUENCY,
    HABIT_CATEGORIES,
    HABIT_FREQUENCIES,
)
from .infra.database import bootstrap_database
from .infra.repositories import SQLModelHabitRepository, SQLModelUserRepository
from .logging_config import get_logger, setup_logging
from .models import Habit, User
from .services.analytics import build_user_report, load_habit_detail
from .services.habits import compute_metrics
from .services.seed import run_demo_seed
from .services.social import activity_for_user

DATE_TYPE = click.DateTime(formats=["%Y-%m-%d"])


def _jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    return value


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(_jsonable(payload), indent=2, default=str))


class AppState:
    """Config, session factory and repositories shared by commands."""

    def __init__(self, config: BaseConfig):
        self.config = config
        self.engine, self.session_factory = bootstrap_database(config)
        self.habits = SQLModelHabitRepository(self.session_factory)
        self.users = SQLModelUserRepository(self.session_factory)

    def require_user(self, username: str) -> User:
        user = self.users.get_by_username(username)
        if user is None:
            raise click.ClickException(f"Unknown user {username!r}.")
        return user

    def require_habit(self, user: User, habit_name: str) -> Habit:
        habit = self.habits.get_by_name(habit_name, user_id=user.id)
        if habit is None:
            raise click.ClickException(f"Unknown habit {habit_name!r}.")
        return habit


@click.group()
@click.pass_context
def main(ctx: click.Context) -> None:
    """Habit streaks, completion rates and activity feeds."""

    config = BaseConfig()
    setup_logging(config)
    ctx.obj = AppState(config)
    ctx.call_on_close(ctx.obj.engine.dispose)


@main.command("init-db")
@click.pass_obj
def init_db(state: AppState) -> None:
    """Create database tables."""

    click.echo(f"Database ready: {state.config.DATABASE_URL}")


@main.command("seed")
@click.option("--days", default=7, show_default=True, help="Days of completion history")
@click.option("--rng-seed", type=int, default=None, help="Seed for reproducible demo data")
@click.pass_obj
def seed(state: AppState, days: int, rng_seed: Optional[int]) -> None:
    """Seed demo users, habits, completions and follows."""

    summary = run_demo_seed(state.session_factory, history_days=days, rng_seed=rng_seed)
    _echo_json(summary)


@main.command("add-user")
@click.argument("username")
@click.option("--full-name", default="", help="Display name")
@click.pass_obj
def add_user(state: AppState, username: str, full_name: str) -> None:
    """Register a user."""

    if state.users.get_by_username(username) is not None:
        raise click.ClickException(f"User {username!r} already exists.")
    user = state.users.create(User(username=username, full_name=full_name))
    _echo_json({"id": user.id, "username": user.username})


@main.command("add-habit")
@click.option("--user", "username", required=True, help="Owner username")
@click.option("--name", required=True, help="Habit name")
@click.option("--category", type=click.Choice(HABIT_CATEGORIES), default=DEFAULT_CATEGORY)
@click.option("--frequency", type=click.Choice(HABIT_FREQUENCIES), default=DEFAULT_FREQUENCY)
@click.option("--color", default=DEFAULT_COLOR, show_default=True)
@click.option("--description", default="")
@click.pass_obj
def add_habit(
    state: AppState,
    username: str,
    name: str,
    category: str,
    frequency: str,
    color: str,
    description: str,
) -> None:
    """Create a habit for a user."""

    user = state.require_user(username)
    try:
        habit = state.habits.create(
            Habit(
                name=name,
                description=description,
                category=category,
                frequency=frequency,
                color=color,
            ),
            user_id=user.id,
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_json({"id": habit.id, "name": habit.name, "frequency": habit.frequency})


@main.command("update-habit")
@click.option("--user", "username", required=True, help="Owner username")
@click.option("--habit", "habit_name", required=True, help="Current habit name")
@click.option("--name", "new_name", default=None, help="New habit name")
@click.option("--category", type=click.Choice(HABIT_CATEGORIES), default=None)
@click.option("--frequency", type=click.Choice(HABIT_FREQUENCIES), default=None)
@click.option("--color", default=None)
@click.option("--description", default=None)
@click.pass_obj
def update_habit(
    state: AppState,
    username: str,
    habit_name: str,
    new_name: Optional[str],
    category: Optional[str],
    frequency: Optional[str],
    color: Optional[str],
    description: Optional[str],
) -> None:
    """Change a habit's name, category, frequency, color or description."""

    user = state.require_user(username)
    habit = state.require_habit(user, habit_name)
    try:
        updated = state.habits.update(
            habit.id,
            user_id=user.id,
            name=new_name,
            category=category,
            frequency=frequency,
            color=color,
            description=description,
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    metrics = compute_metrics(
        state.habits.snapshot(updated.id, user_id=user.id),
        date.today(),
        week_start=state.config.WEEK_START,
    )
    _echo_json({"id": updated.id, "name": updated.name, "metrics": metrics})


@main.command("delete-habit")
@click.option("--user", "username", required=True, help="Owner username")
@click.option("--habit", "habit_name", required=True, help="Habit name")
@click.pass_obj
def delete_habit(state: AppState, username: str, habit_name: str) -> None:
    """Deactivate a habit; its history is kept but leaves every metric."""

    user = state.require_user(username)
    habit = state.require_habit(user, habit_name)
    state.habits.deactivate(habit.id, user_id=user.id)
    _echo_json({"id": habit.id, "name": habit.name, "active": False})


@main.command("habit-stats")
@click.option("--user", "username", required=True, help="Owner username")
@click.option("--habit", "habit_name", required=True, help="Habit name")
@click.option("--today", type=DATE_TYPE, default=None, help="Evaluate as of this day")
@click.pass_obj
def habit_stats(state: AppState, username: str, habit_name: str, today: Optional[datetime]) -> None:
    """Print one habit's metrics and its most recent completions."""

    user = state.require_user(username)
    habit = state.require_habit(user, habit_name)
    detail = load_habit_detail(
        repository=state.habits,
        habit_id=habit.id,
        user_id=user.id,
        now=today.date() if today else date.today(),
        week_start=state.config.WEEK_START,
    )
    _echo_json(detail)


@main.command("toggle")
@click.option("--user", "username", required=True, help="Owner username")
@click.option("--habit", "habit_name", required=True, help="Habit name")
@click.option("--day", type=DATE_TYPE, default=None, help="Day to toggle (default today)")
@click.pass_obj
def toggle(state: AppState, username: str, habit_name: str, day: Optional[datetime]) -> None:
    """Mark or unmark a habit as done for a day."""

    user = state.require_user(username)
    habit = state.require_habit(user, habit_name)

    target = day.date() if day else date.today()
    completed = state.habits.toggle_completion(habit.id, target, user_id=user.id)
    metrics = compute_metrics(
        state.habits.snapshot(habit.id, user_id=user.id),
        target,
        week_start=state.config.WEEK_START,
    )
    _echo_json({"completed": completed, "day": target, "metrics": metrics})


@main.command("follow")
@click.option("--user", "username", required=True, help="Follower username")
@click.argument("target")
@click.pass_obj
def follow(state: AppState, username: str, target: str) -> None:
    """Follow another user."""

    follower = state.require_user(username)
    followee = state.require_user(target)
    try:
        added = state.users.follow(follower.id, followee.id)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_json({"following": target, "added": added})


@main.command("unfollow")
@click.option("--user", "username", required=True, help="Follower username")
@click.argument("target")
@click.pass_obj
def unfollow(state: AppState, username: str, target: str) -> None:
    """Stop following another user."""

    follower = state.require_user(username)
    followee = state.require_user(target)
    removed = state.users.unfollow(follower.id, followee.id)
    _echo_json({"unfollowed": target, "removed": removed})


@main.command("stats")
@click.option("--user", "username", required=True, help="Username to report on")
@click.option("--today", type=DATE_TYPE, default=None, help="Evaluate as of this day")
@click.pass_obj
def stats(state: AppState, username: str, today: Optional[datetime]) -> None:
    """Print overview, category and weekly analytics."""

    user = state.require_user(username)
    report = build_user_report(
        repository=state.habits,
        user_id=user.id,
        now=today.date() if today else date.today(),
        week_start=state.config.WEEK_START,
        grid_days=state.config.WEEKLY_GRID_DAYS,
    )
    _echo_json(report)


@main.command("feed")
@click.option("--user", "username", required=True, help="Username whose followees to show")
@click.option("--today", type=DATE_TYPE, default=None, help="Evaluate as of this day")
@click.pass_obj
def feed(state: AppState, username: str, today: Optional[datetime]) -> None:
    """Print recent activity from followed users."""

    user = state.require_user(username)
    events = activity_for_user(
        repository=state.habits,
        user_id=user.id,
        now=today.date() if today else date.today(),
        window_days=state.config.ACTIVITY_WINDOW_DAYS,
        limit=state.config.FEED_LIMIT,
        source_limit=state.config.FEED_SOURCE_LIMIT,
        week_start=state.config.WEEK_START,
    )
    get_logger("cli").info("Feed rendered", extra={"user_id": user.id, "events": len(events)})
    _echo_json({"activities": events})


if __name__ == "__main__":  # pragma: no cover
    main()
