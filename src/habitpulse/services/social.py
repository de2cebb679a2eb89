"""Activity feed built from the completions of followed users.

The feed is capped twice. ``source_limit`` bounds how many habits are even
considered (most recently logged first), then ``limit`` truncates the sorted
events. The first cap can drop genuinely recent completions of a followee
whose habits fall outside the source pool; callers that need a complete feed
must raise ``source_limit``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional

from ..domain.repositories.habit import HabitRepository
from .habits import DEFAULT_WEEK_START, DayLike, HabitSnapshot, normalize_day, streak_as_of

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 7
DEFAULT_FEED_LIMIT = 20
DEFAULT_SOURCE_LIMIT = 50


@dataclass(frozen=True, slots=True)
class ActivityUser:
    """Public profile fields shown next to an activity."""

    id: int
    username: str
    full_name: str = ""
    avatar: Optional[str] = None


@dataclass(frozen=True, slots=True)
class FeedSource:
    """A followee's habit together with its owner."""

    user: ActivityUser
    habit: HabitSnapshot


@dataclass(slots=True)
class ActivityEvent:
    """One completion as displayed in the feed."""

    id: str
    user: ActivityUser
    habit_id: int
    habit_name: str
    habit_color: str
    completed_on: date
    created_at: Optional[datetime]
    streak: int


def _logged_at(completed_on: date, created_at: Optional[datetime]) -> datetime:
    """Ordering key in UTC: the logging timestamp, or midnight of the day when unknown.

    Naive timestamps are taken to be UTC, matching what the store writes.
    """

    if created_at is None:
        return datetime.combine(completed_on, time.min, tzinfo=timezone.utc)
    if created_at.tzinfo is None:
        return created_at.replace(tzinfo=timezone.utc)
    return created_at.astimezone(timezone.utc)


def _latest_logged(source: FeedSource) -> datetime:
    return max(_logged_at(c.completed_on, c.created_at) for c in source.habit.completions)


def build_activity_feed(
    sources: Iterable[FeedSource],
    followee_ids: Iterable[int],
    now: DayLike,
    *,
    window_days: int = DEFAULT_WINDOW_DAYS,
    limit: int = DEFAULT_FEED_LIMIT,
    source_limit: int = DEFAULT_SOURCE_LIMIT,
    week_start: int = DEFAULT_WEEK_START,
) -> list[ActivityEvent]:
    """Return recent followee completions, newest logging time first."""

    followees = set(followee_ids)
    if not followees:
        return []

    candidates = [
        source
        for source in sources
        if source.user.id in followees and source.habit.is_active and source.habit.completions
    ]
    candidates.sort(key=_latest_logged, reverse=True)
    if len(candidates) > source_limit:
        logger.info(
            "Activity source pool truncated",
            extra={"candidates": len(candidates), "source_limit": source_limit},
        )
        candidates = candidates[:source_limit]

    today = normalize_day(now)
    # window_days calendar days ending today, inclusive
    window_start = today - timedelta(days=window_days - 1)

    events: list[ActivityEvent] = []
    for source in candidates:
        habit = source.habit
        history = habit.completion_days
        for index, completion in enumerate(habit.completions):
            day = normalize_day(completion.completed_on)
            if not window_start <= day <= today:
                continue
            completion_key = completion.id if completion.id is not None else index
            events.append(
                ActivityEvent(
                    id=f"{habit.id}_{completion_key}",
                    user=source.user,
                    habit_id=habit.id,
                    habit_name=habit.name,
                    habit_color=habit.color,
                    completed_on=day,
                    created_at=completion.created_at,
                    streak=streak_as_of(history, habit.frequency, day, week_start=week_start),
                )
            )

    events.sort(key=lambda event: _logged_at(event.completed_on, event.created_at), reverse=True)
    return events[:limit]


def activity_for_user(
    *,
    repository: HabitRepository,
    user_id: int,
    now: DayLike,
    window_days: int = DEFAULT_WINDOW_DAYS,
    limit: int = DEFAULT_FEED_LIMIT,
    source_limit: int = DEFAULT_SOURCE_LIMIT,
    week_start: int = DEFAULT_WEEK_START,
) -> list[ActivityEvent]:
    """Load the follow graph and followee habits, then build the feed."""

    followee_ids = repository.following_ids(user_id)
    if not followee_ids:
        return []

    return build_activity_feed(
        repository.feed_sources(followee_ids),
        followee_ids,
        now,
        window_days=window_days,
        limit=limit,
        source_limit=source_limit,
        week_start=week_start,
    )


__all__ = [
    "ActivityEvent",
    "ActivityUser",
    "DEFAULT_FEED_LIMIT",
    "DEFAULT_SOURCE_LIMIT",
    "DEFAULT_WINDOW_DAYS",
    "FeedSource",
    "activity_for_user",
    "build_activity_feed",
]
