"""Habit metrics engine: streaks, completion rates and current-period status.

Every function here is a pure projection of (frequency, creation date,
completion days, reference day). Nothing reads the system clock; callers pass
``as_of``/``now`` explicitly. Day inputs may be ``date`` or ``datetime``; a
datetime is reduced to its calendar day before any comparison, and repeated
days collapse into one logical completion.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, Optional, Union

DayLike = Union[date, datetime]

DEFAULT_WEEK_START = calendar.SUNDAY


class InvalidFrequencyError(ValueError):
    """Raised when a habit frequency is not one of the supported values."""


class Frequency(str, Enum):
    """How often a habit is expected to be completed."""

    DAILY = "daily"
    WEEKLY = "weekly"

    @classmethod
    def parse(cls, value: Union[str, "Frequency"]) -> "Frequency":
        """Return the matching member or raise ``InvalidFrequencyError``."""

        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as exc:
            raise InvalidFrequencyError(
                f"Unsupported habit frequency {value!r}; expected 'daily' or 'weekly'."
            ) from exc


@dataclass(frozen=True, slots=True)
class CompletionRecord:
    """One completion event as read from the store."""

    completed_on: date
    created_at: Optional[datetime] = None
    id: Optional[int] = None


@dataclass(frozen=True, slots=True)
class HabitSnapshot:
    """Fully materialized habit configuration plus its completions."""

    id: int
    user_id: int
    name: str
    category: str
    frequency: Frequency
    color: str
    created_at: datetime
    is_active: bool = True
    completions: tuple[CompletionRecord, ...] = field(default_factory=tuple)

    @property
    def completion_days(self) -> list[date]:
        return [record.completed_on for record in self.completions]


@dataclass(slots=True)
class HabitMetrics:
    """Derived metrics for a single habit evaluated at one instant."""

    habit_id: int
    name: str
    category: str
    frequency: Frequency
    color: str
    current_streak: int
    longest_streak: int
    completion_rate: float
    completed_in_current_period: bool
    total_completions: int


def normalize_day(value: DayLike) -> date:
    """Strip time-of-day, returning the calendar day."""

    if isinstance(value, datetime):
        return value.date()
    return value


def distinct_days(values: Iterable[DayLike]) -> set[date]:
    """Collapse completion values into the set of distinct calendar days."""

    return {normalize_day(value) for value in values}


def week_start_of(day: DayLike, week_start: int = DEFAULT_WEEK_START) -> date:
    """Return the first day of the week bucket containing ``day``."""

    day = normalize_day(day)
    offset = (day.weekday() - week_start) % 7
    return day - timedelta(days=offset)


def _period_keys(days: Iterable[date], frequency: Frequency, week_start: int) -> set[date]:
    if frequency is Frequency.DAILY:
        return set(days)
    return {week_start_of(day, week_start) for day in days}


def _period_step(frequency: Frequency) -> timedelta:
    return timedelta(days=1) if frequency is Frequency.DAILY else timedelta(weeks=1)


def current_streak(
    completions: Iterable[DayLike],
    frequency: Union[str, Frequency],
    as_of: DayLike,
    *,
    week_start: int = DEFAULT_WEEK_START,
) -> int:
    """Count consecutive satisfied periods walking backward from ``as_of``.

    The period containing ``as_of`` must itself be satisfied; a missing period
    ends the walk. Completions dated after ``as_of`` never contribute.
    """

    frequency = Frequency.parse(frequency)
    anchor = normalize_day(as_of)
    days = [day for day in distinct_days(completions) if day <= anchor]
    if not days:
        return 0

    satisfied = _period_keys(days, frequency, week_start)
    step = _period_step(frequency)
    cursor = anchor if frequency is Frequency.DAILY else week_start_of(anchor, week_start)

    streak = 0
    while cursor in satisfied:
        streak += 1
        cursor -= step
    return streak


def longest_streak(
    completions: Iterable[DayLike],
    frequency: Union[str, Frequency],
    *,
    week_start: int = DEFAULT_WEEK_START,
) -> int:
    """Return the longest run of consecutive satisfied periods ever recorded."""

    frequency = Frequency.parse(frequency)
    periods = sorted(_period_keys(distinct_days(completions), frequency, week_start))
    if not periods:
        return 0

    step = _period_step(frequency)
    longest = 1
    run = 1
    for previous, current in zip(periods, periods[1:]):
        if current - previous == step:
            run += 1
            longest = max(longest, run)
        else:
            run = 1
    return longest


def streak_as_of(
    completions: Iterable[DayLike],
    frequency: Union[str, Frequency],
    anchor: DayLike,
    *,
    week_start: int = DEFAULT_WEEK_START,
) -> int:
    """Streak length as it stood on ``anchor`` (e.g. when a feed event happened)."""

    anchor_day = normalize_day(anchor)
    history = [day for day in distinct_days(completions) if day <= anchor_day]
    return current_streak(history, frequency, anchor_day, week_start=week_start)


def elapsed_periods(
    frequency: Union[str, Frequency],
    created_at: DayLike,
    as_of: DayLike,
) -> int:
    """Number of expected periods since creation, inclusive, never below one."""

    frequency = Frequency.parse(frequency)
    days = (normalize_day(as_of) - normalize_day(created_at)).days
    if frequency is Frequency.DAILY:
        return max(1, days + 1)
    return max(1, days // 7 + 1)


def completion_rate(
    completions: Iterable[DayLike],
    frequency: Union[str, Frequency],
    created_at: DayLike,
    as_of: DayLike,
    *,
    week_start: int = DEFAULT_WEEK_START,
) -> float:
    """Percentage of expected periods completed since creation, capped at 100."""

    frequency = Frequency.parse(frequency)
    anchor = normalize_day(as_of)
    days = [day for day in distinct_days(completions) if day <= anchor]
    if not days:
        return 0.0

    completed = len(_period_keys(days, frequency, week_start))
    expected = elapsed_periods(frequency, created_at, anchor)
    return min(100.0, completed / expected * 100)


def completed_in_current_period(
    completions: Iterable[DayLike],
    frequency: Union[str, Frequency],
    now: DayLike,
    *,
    week_start: int = DEFAULT_WEEK_START,
) -> bool:
    """True when the day (daily) or week bucket (weekly) containing ``now`` is done."""

    frequency = Frequency.parse(frequency)
    today = normalize_day(now)
    days = distinct_days(completions)
    if frequency is Frequency.DAILY:
        return today in days

    start = week_start_of(today, week_start)
    end = start + timedelta(days=6)
    return any(start <= day <= end for day in days)


def compute_metrics(
    habit: HabitSnapshot,
    now: DayLike,
    *,
    week_start: int = DEFAULT_WEEK_START,
) -> HabitMetrics:
    """Evaluate every derived metric for ``habit`` at ``now``."""

    frequency = Frequency.parse(habit.frequency)
    days = habit.completion_days
    return HabitMetrics(
        habit_id=habit.id,
        name=habit.name,
        category=habit.category,
        frequency=frequency,
        color=habit.color,
        current_streak=current_streak(days, frequency, now, week_start=week_start),
        longest_streak=longest_streak(days, frequency, week_start=week_start),
        completion_rate=completion_rate(
            days, frequency, habit.created_at, now, week_start=week_start
        ),
        completed_in_current_period=completed_in_current_period(
            days, frequency, now, week_start=week_start
        ),
        total_completions=len(distinct_days(days)),
    )


__all__ = [
    "CompletionRecord",
    "DEFAULT_WEEK_START",
    "Frequency",
    "HabitMetrics",
    "HabitSnapshot",
    "InvalidFrequencyError",
    "completed_in_current_period",
    "completion_rate",
    "compute_metrics",
    "current_streak",
    "distinct_days",
    "elapsed_periods",
    "longest_streak",
    "normalize_day",
    "streak_as_of",
    "week_start_of",
]
