"""Per-user habit analytics: overview stats, category breakdown, weekly grid and habit detail."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Sequence

from ..domain.repositories.habit import HabitRepository
from .habits import (
    DEFAULT_WEEK_START,
    CompletionRecord,
    DayLike,
    HabitMetrics,
    HabitSnapshot,
    compute_metrics,
    distinct_days,
    normalize_day,
)

logger = logging.getLogger(__name__)

RECENT_COMPLETIONS_LIMIT = 30


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 always going up (never banker's rounding)."""

    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


@dataclass(slots=True)
class UserStats:
    """Overview numbers across all of a user's active habits."""

    total_habits: int
    completed_in_current_period: int
    current_streak: int
    longest_streak: int
    completion_rate: int
    total_completions: int

    @classmethod
    def empty(cls) -> "UserStats":
        """Fixed zero record returned for users without habits."""

        return cls(
            total_habits=0,
            completed_in_current_period=0,
            current_streak=0,
            longest_streak=0,
            completion_rate=0,
            total_completions=0,
        )


@dataclass(slots=True)
class CategoryHabit:
    """Per-habit row inside a category breakdown."""

    name: str
    completions: int
    completion_rate: float
    streak: int


@dataclass(slots=True)
class CategoryStats:
    """Aggregate numbers for one habit category."""

    category: str
    total_habits: int
    total_completions: int
    avg_completion_rate: int
    habits: list[CategoryHabit] = field(default_factory=list)


@dataclass(slots=True)
class DayStats:
    """One cell of the trailing weekly grid."""

    day: date
    completions: int
    total_habits: int
    completion_rate: float


def aggregate_user_stats(metrics: Sequence[HabitMetrics]) -> UserStats:
    """Reduce per-habit metrics into the user's overview stats."""

    if not metrics:
        return UserStats.empty()

    return UserStats(
        total_habits=len(metrics),
        completed_in_current_period=sum(1 for m in metrics if m.completed_in_current_period),
        current_streak=round_half_up(_mean([m.current_streak for m in metrics])),
        longest_streak=max(m.longest_streak for m in metrics),
        completion_rate=round_half_up(_mean([m.completion_rate for m in metrics])),
        total_completions=sum(m.total_completions for m in metrics),
    )


def aggregate_by_category(metrics: Iterable[HabitMetrics]) -> list[CategoryStats]:
    """Partition habits by category; categories appear in first-seen order."""

    grouped: dict[str, list[HabitMetrics]] = {}
    for metric in metrics:
        grouped.setdefault(metric.category, []).append(metric)

    results: list[CategoryStats] = []
    for category, members in grouped.items():
        results.append(
            CategoryStats(
                category=category,
                total_habits=len(members),
                total_completions=sum(m.total_completions for m in members),
                avg_completion_rate=round_half_up(_mean([m.completion_rate for m in members])),
                habits=[
                    CategoryHabit(
                        name=m.name,
                        completions=m.total_completions,
                        completion_rate=m.completion_rate,
                        streak=m.current_streak,
                    )
                    for m in members
                ],
            )
        )
    return results


def weekly_grid(
    completion_sets: Sequence[Iterable[DayLike]],
    today: DayLike,
    *,
    days: int = 7,
) -> list[DayStats]:
    """Same-day presence counts for the ``days`` calendar days ending ``today``.

    Each entry in ``completion_sets`` is one habit's completion days. Habit
    frequency is irrelevant here: a weekly habit only counts on the exact day
    it was logged. Rows are ordered oldest first.
    """

    if days < 1:
        raise ValueError("days must be at least 1")

    end = normalize_day(today)
    per_habit = [distinct_days(values) for values in completion_sets]
    total = len(per_habit)

    grid: list[DayStats] = []
    for offset in range(days - 1, -1, -1):
        day = end - timedelta(days=offset)
        hits = sum(1 for habit_days in per_habit if day in habit_days)
        grid.append(
            DayStats(
                day=day,
                completions=hits,
                total_habits=total,
                completion_rate=(hits / total * 100) if total else 0.0,
            )
        )
    return grid


def habit_metrics(
    habits: Iterable[HabitSnapshot],
    now: DayLike,
    *,
    week_start: int = DEFAULT_WEEK_START,
) -> list[HabitMetrics]:
    """Compute metrics for each active habit."""

    return [
        compute_metrics(habit, now, week_start=week_start) for habit in habits if habit.is_active
    ]


@dataclass(slots=True)
class HabitDetail:
    """Metrics for one habit plus its most recent completion records."""

    metrics: HabitMetrics
    recent_completions: list[CompletionRecord]


def habit_detail(
    habit: HabitSnapshot,
    now: DayLike,
    *,
    week_start: int = DEFAULT_WEEK_START,
    recent_limit: int = RECENT_COMPLETIONS_LIMIT,
) -> HabitDetail:
    """Metrics for ``habit`` at ``now`` and its latest completions, newest day first."""

    recent = sorted(
        habit.completions, key=lambda record: normalize_day(record.completed_on), reverse=True
    )
    return HabitDetail(
        metrics=compute_metrics(habit, now, week_start=week_start),
        recent_completions=recent[:recent_limit],
    )


def load_habit_detail(
    *,
    repository: HabitRepository,
    habit_id: int,
    user_id: int,
    now: DayLike,
    week_start: int = DEFAULT_WEEK_START,
    recent_limit: int = RECENT_COMPLETIONS_LIMIT,
) -> HabitDetail:
    """Detail view for an active habit owned by ``user_id``."""

    snapshot = repository.snapshot(habit_id, user_id=user_id)
    if not snapshot.is_active:
        raise LookupError(f"Habit {habit_id} not found.")
    return habit_detail(snapshot, now, week_start=week_start, recent_limit=recent_limit)


def build_user_report(
    *,
    repository: HabitRepository,
    user_id: int,
    now: DayLike,
    week_start: int = DEFAULT_WEEK_START,
    grid_days: int = 7,
) -> dict[str, Any]:
    """Compose overview, category, weekly and per-habit trend data for a user."""

    snapshots = repository.list_snapshots(user_id=user_id)
    metrics = habit_metrics(snapshots, now, week_start=week_start)
    active = [habit for habit in snapshots if habit.is_active]

    logger.info(
        "Built user report",
        extra={"user_id": user_id, "habit_count": len(metrics)},
    )

    return {
        "stats": aggregate_user_stats(metrics),
        "categories": aggregate_by_category(metrics),
        "weekly": weekly_grid([habit.completion_days for habit in active], now, days=grid_days),
        "trends": metrics,
    }


__all__ = [
    "CategoryHabit",
    "CategoryStats",
    "DayStats",
    "HabitDetail",
    "RECENT_COMPLETIONS_LIMIT",
    "UserStats",
    "aggregate_by_category",
    "aggregate_user_stats",
    "build_user_report",
    "habit_detail",
    "habit_metrics",
    "load_habit_detail",
    "round_half_up",
    "weekly_grid",
]
