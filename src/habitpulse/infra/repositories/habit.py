"""SQLModel implementation of Habit repository."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional, cast

from sqlmodel import Session, select

from ...constants.categories import COLOR_PATTERN, HABIT_CATEGORIES
from ...models.habit import Completion, Habit
from ...models.user import Follow, User
from ...services.habits import CompletionRecord, Frequency, HabitSnapshot
from ...services.social import ActivityUser, FeedSource

logger = logging.getLogger(__name__)

HABIT_ID_COLUMN = cast(Any, Habit.id)
HABIT_USER_COLUMN = cast(Any, Habit.user_id)
COMPLETION_HABIT_COLUMN = cast(Any, Completion.habit_id)

UPDATABLE_FIELDS = frozenset({"name", "description", "category", "frequency", "color"})


class DuplicateHabitError(ValueError):
    """Raised when a user already has an active habit with the same name."""


def validate_habit(habit: Habit) -> None:
    """Check name, category, frequency and color before persisting."""

    habit.name = (habit.name or "").strip()
    if not habit.name:
        raise ValueError("Habit name is required.")
    if habit.category not in HABIT_CATEGORIES:
        raise ValueError(f"Invalid category {habit.category!r}.")
    habit.frequency = Frequency.parse(habit.frequency).value
    if not COLOR_PATTERN.match(habit.color or ""):
        raise ValueError(f"Invalid color {habit.color!r}; expected #RRGGBB.")


def to_snapshot(habit: Habit, completions: list[Completion]) -> HabitSnapshot:
    """Convert a persisted habit and its completion rows to an engine snapshot."""

    return HabitSnapshot(
        id=cast(int, habit.id),
        user_id=habit.user_id,
        name=habit.name,
        category=habit.category,
        frequency=Frequency.parse(habit.frequency),
        color=habit.color,
        created_at=habit.created_at,
        is_active=habit.is_active,
        completions=tuple(
            CompletionRecord(completed_on=c.completed_on, created_at=c.created_at, id=c.id)
            for c in completions
        ),
    )


class SQLModelHabitRepository:
    """SQLModel-based habit repository implementation."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_name(self, name: str, *, user_id: int) -> Optional[Habit]:
        """Retrieve an active habit by name."""
        with self.session_factory() as session:
            statement = select(Habit).where(
                Habit.name == name.strip(),
                Habit.user_id == user_id,
                Habit.is_active == True,  # noqa: E712
            )
            obj = session.exec(statement).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int, include_inactive: bool = False) -> list[Habit]:
        """List habits ordered by name, optionally including inactive ones."""
        with self.session_factory() as session:
            statement = (
                select(Habit).where(Habit.user_id == user_id).order_by(Habit.name)  # type: ignore
            )

            if not include_inactive:
                statement = statement.where(Habit.is_active == True)  # noqa: E712

            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_active(self, *, user_id: int) -> list[Habit]:
        """List only active habits."""
        return self.list_all(user_id=user_id, include_inactive=False)

    def create(self, habit: Habit, *, user_id: int) -> Habit:
        """Create a new habit; active names are unique per user."""
        validate_habit(habit)
        with self.session_factory() as session:
            self._ensure_unique_name(session, habit.name, user_id=user_id)

            habit.user_id = user_id
            session.add(habit)
            session.commit()
            session.refresh(habit)
            session.expunge(habit)

        logger.info(
            "Habit created",
            extra={"habit_id": habit.id, "user_id": user_id, "frequency": habit.frequency},
        )
        return habit

    def _ensure_unique_name(
        self, session: Session, name: str, *, user_id: int, exclude_id: Optional[int] = None
    ) -> None:
        statement = select(Habit).where(
            Habit.user_id == user_id,
            Habit.name == name,
            Habit.is_active == True,  # noqa: E712
        )
        if exclude_id is not None:
            statement = statement.where(HABIT_ID_COLUMN != exclude_id)
        if session.exec(statement).first() is not None:
            raise DuplicateHabitError(f"Habit {name!r} already exists.")

    def update(self, habit_id: int, *, user_id: int, **changes: Any) -> Habit:
        """Apply field changes to an active habit, re-validating the result.

        Only ``name``, ``description``, ``category``, ``frequency`` and ``color``
        can change; ``None`` values are skipped.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}.")

        with self.session_factory() as session:
            habit = session.exec(
                select(Habit).where(
                    Habit.id == habit_id,
                    Habit.user_id == user_id,
                    Habit.is_active == True,  # noqa: E712
                )
            ).first()
            if habit is None:
                raise LookupError(f"Habit {habit_id} not found.")

            applied = {key: value for key, value in changes.items() if value is not None}
            for key, value in applied.items():
                setattr(habit, key, value)
            validate_habit(habit)
            self._ensure_unique_name(session, habit.name, user_id=user_id, exclude_id=habit_id)

            session.add(habit)
            session.commit()
            session.refresh(habit)
            session.expunge(habit)

        logger.info(
            "Habit updated",
            extra={"habit_id": habit_id, "user_id": user_id, "fields": sorted(applied)},
        )
        return habit

    def deactivate(self, habit_id: int, *, user_id: int) -> Habit:
        """Soft-delete a habit so it drops out of metrics and feeds."""
        with self.session_factory() as session:
            habit = session.exec(
                select(Habit).where(Habit.id == habit_id, Habit.user_id == user_id)
            ).first()
            if habit is None:
                raise LookupError(f"Habit {habit_id} not found.")
            habit.is_active = False
            session.add(habit)
            session.commit()
            session.refresh(habit)
            session.expunge(habit)

        logger.info("Habit deactivated", extra={"habit_id": habit_id, "user_id": user_id})
        return habit

    def toggle_completion(
        self,
        habit_id: int,
        day: date,
        *,
        user_id: int,
        logged_at: Optional[datetime] = None,
    ) -> bool:
        """Add or remove the completion for a day; return whether the day is now completed."""
        with self.session_factory() as session:
            habit = session.exec(
                select(Habit).where(
                    Habit.id == habit_id,
                    Habit.user_id == user_id,
                    Habit.is_active == True,  # noqa: E712
                )
            ).first()
            if habit is None:
                raise LookupError(f"Habit {habit_id} not found.")

            existing = list(
                session.exec(
                    select(Completion)
                    .where(Completion.habit_id == habit_id)
                    .where(Completion.completed_on == day)
                ).all()
            )
            if existing:
                for row in existing:
                    session.delete(row)
                completed = False
            else:
                session.add(
                    Completion(
                        habit_id=habit_id,
                        completed_on=day,
                        created_at=logged_at or datetime.now(timezone.utc),
                    )
                )
                completed = True
            session.commit()

        logger.info(
            "Completion toggled",
            extra={"habit_id": habit_id, "day": day.isoformat(), "completed": completed},
        )
        return completed

    def _completions_by_habit(
        self, session: Session, habit_ids: list[int]
    ) -> dict[int, list[Completion]]:
        grouped: dict[int, list[Completion]] = defaultdict(list)
        if not habit_ids:
            return grouped
        rows = session.exec(
            select(Completion).where(COMPLETION_HABIT_COLUMN.in_(habit_ids))
        ).all()
        for row in rows:
            grouped[row.habit_id].append(row)
        return grouped

    def snapshot(self, habit_id: int, *, user_id: int) -> HabitSnapshot:
        """Materialize a single habit (active or not) with its completions."""
        with self.session_factory() as session:
            habit = session.exec(
                select(Habit).where(Habit.id == habit_id, Habit.user_id == user_id)
            ).first()
            if habit is None:
                raise LookupError(f"Habit {habit_id} not found.")
            completions = self._completions_by_habit(session, [habit_id])
            return to_snapshot(habit, completions[habit_id])

    def list_snapshots(self, *, user_id: int) -> list[HabitSnapshot]:
        """Materialize active habits with their completions."""
        with self.session_factory() as session:
            habits = list(
                session.exec(
                    select(Habit)
                    .where(Habit.user_id == user_id)
                    .where(Habit.is_active == True)  # noqa: E712
                    .order_by(Habit.created_at)  # type: ignore
                ).all()
            )
            completions = self._completions_by_habit(session, [cast(int, h.id) for h in habits])
            return [to_snapshot(h, completions[cast(int, h.id)]) for h in habits]

    def following_ids(self, user_id: int) -> list[int]:
        """IDs of the users ``user_id`` follows."""
        with self.session_factory() as session:
            rows = session.exec(select(Follow.followee_id).where(Follow.follower_id == user_id))
            return list(rows.all())

    def feed_sources(self, user_ids: list[int]) -> list[FeedSource]:
        """Active habits (with owners) belonging to ``user_ids``."""
        if not user_ids:
            return []
        with self.session_factory() as session:
            pairs = list(
                session.exec(
                    select(Habit, User)
                    .join(User, HABIT_USER_COLUMN == User.id)
                    .where(HABIT_USER_COLUMN.in_(user_ids))
                    .where(Habit.is_active == True)  # noqa: E712
                ).all()
            )
            completions = self._completions_by_habit(
                session, [cast(int, habit.id) for habit, _ in pairs]
            )
            return [
                FeedSource(
                    user=ActivityUser(
                        id=cast(int, user.id),
                        username=user.username,
                        full_name=user.full_name,
                        avatar=user.avatar,
                    ),
                    habit=to_snapshot(habit, completions[cast(int, habit.id)]),
                )
                for habit, user in pairs
            ]
