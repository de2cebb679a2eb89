"""Tests for the followee activity feed."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from habitpulse.infra.repositories import SQLModelHabitRepository, SQLModelUserRepository
from habitpulse.services.habits import CompletionRecord
from habitpulse.services.social import (
    ActivityUser,
    FeedSource,
    activity_for_user,
    build_activity_feed,
)

NOW = datetime(2024, 3, 10, 20, 0)
ALICE = ActivityUser(id=2, username="alice", full_name="Alice A")
BOB = ActivityUser(id=3, username="bob", full_name="Bob B")
CAROL = ActivityUser(id=4, username="carol")


def record(day: date, hour: int = 12, ident: int | None = None) -> CompletionRecord:
    return CompletionRecord(
        completed_on=day,
        created_at=datetime(day.year, day.month, day.day, hour, 0, tzinfo=timezone.utc),
        id=ident,
    )


class TestBuildActivityFeed:
    """Tests for filtering, ordering and capping feed events."""

    def test_same_day_completions_order_by_logging_time(self, snapshot_factory):
        """Two completions for one calendar day stay separate, newest log first."""
        day = date(2024, 3, 10)
        run = snapshot_factory(completions=[record(day, hour=8, ident=1)], user_id=ALICE.id, name="Run")
        read = snapshot_factory(completions=[record(day, hour=11, ident=2)], user_id=ALICE.id, name="Read")

        feed = build_activity_feed(
            [FeedSource(ALICE, run), FeedSource(ALICE, read)], [ALICE.id], NOW
        )

        assert [event.habit_name for event in feed] == ["Read", "Run"]
        assert feed[0].created_at - feed[1].created_at == timedelta(hours=3)
        assert all(event.completed_on == day for event in feed)

    def test_orders_by_logging_time_not_calendar_day(self, snapshot_factory):
        """A backfilled older day logged later sorts first."""
        habit = snapshot_factory(
            completions=[
                CompletionRecord(date(2024, 3, 9), datetime(2024, 3, 9, 7, 0), 1),
                CompletionRecord(date(2024, 3, 5), datetime(2024, 3, 9, 21, 0), 2),
            ],
            user_id=ALICE.id,
        )

        feed = build_activity_feed([FeedSource(ALICE, habit)], [ALICE.id], NOW)

        assert [event.completed_on for event in feed] == [date(2024, 3, 5), date(2024, 3, 9)]

    def test_window_covers_seven_days_ending_today(self, snapshot_factory):
        habit = snapshot_factory(
            [date(2024, 3, 3), date(2024, 3, 4), date(2024, 3, 10), date(2024, 3, 11)],
            user_id=ALICE.id,
        )

        feed = build_activity_feed([FeedSource(ALICE, habit)], [ALICE.id], NOW)

        assert sorted(event.completed_on for event in feed) == [date(2024, 3, 4), date(2024, 3, 10)]

    def test_completion_a_week_back_is_outside_window(self, snapshot_factory):
        habit = snapshot_factory([date(2024, 3, 3)], user_id=ALICE.id)

        assert build_activity_feed([FeedSource(ALICE, habit)], [ALICE.id], NOW) == []

    def test_custom_window_length(self, snapshot_factory):
        habit = snapshot_factory([date(2024, 3, 8), date(2024, 3, 9)], user_id=ALICE.id)

        feed = build_activity_feed([FeedSource(ALICE, habit)], [ALICE.id], NOW, window_days=2)

        assert [event.completed_on for event in feed] == [date(2024, 3, 9)]

    def test_mixed_timestamp_awareness_sorts(self, snapshot_factory):
        """Aware, naive and missing logging times order together as UTC."""
        habit = snapshot_factory(
            completions=[
                CompletionRecord(date(2024, 3, 9), datetime(2024, 3, 9, 8, tzinfo=timezone.utc), 1),
                CompletionRecord(date(2024, 3, 10), None, 2),
                CompletionRecord(date(2024, 3, 8), datetime(2024, 3, 9, 9, 0), 3),
            ],
            user_id=ALICE.id,
        )
        other = snapshot_factory(completions=[CompletionRecord(date(2024, 3, 7), None, 4)], user_id=BOB.id)

        feed = build_activity_feed(
            [FeedSource(BOB, other), FeedSource(ALICE, habit)], [ALICE.id, BOB.id], NOW
        )

        assert [event.id for event in feed] == [
            f"{habit.id}_2",
            f"{habit.id}_3",
            f"{habit.id}_1",
            f"{other.id}_4",
        ]
        assert feed[0].created_at is None

    def test_streak_is_computed_at_each_completion(self, snapshot_factory):
        habit = snapshot_factory(
            [date(2024, 3, 6), date(2024, 3, 7), date(2024, 3, 8)], user_id=ALICE.id
        )

        feed = build_activity_feed([FeedSource(ALICE, habit)], [ALICE.id], NOW)

        assert [(event.completed_on.day, event.streak) for event in feed] == [(8, 3), (7, 2), (6, 1)]

    def test_weekly_habit_streak_uses_week_buckets(self, snapshot_factory):
        habit = snapshot_factory(
            [date(2024, 2, 27), date(2024, 3, 5)], frequency="weekly", user_id=ALICE.id
        )

        feed = build_activity_feed([FeedSource(ALICE, habit)], [ALICE.id], NOW)

        assert [event.streak for event in feed] == [2]

    def test_event_fields(self, snapshot_factory):
        habit = snapshot_factory(
            completions=[record(date(2024, 3, 10), ident=42)],
            user_id=ALICE.id,
            name="Meditation",
            color="#06B6D4",
        )

        (event,) = build_activity_feed([FeedSource(ALICE, habit)], [ALICE.id], NOW)

        assert event.id == f"{habit.id}_42"
        assert event.user == ALICE
        assert event.habit_id == habit.id
        assert event.habit_name == "Meditation"
        assert event.habit_color == "#06B6D4"
        assert event.created_at == datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)

    def test_filters_non_followees_and_inactive_habits(self, snapshot_factory):
        followed = snapshot_factory([date(2024, 3, 9)], user_id=ALICE.id)
        inactive = snapshot_factory([date(2024, 3, 9)], user_id=ALICE.id, is_active=False)
        stranger = snapshot_factory([date(2024, 3, 9)], user_id=CAROL.id)

        feed = build_activity_feed(
            [FeedSource(ALICE, followed), FeedSource(ALICE, inactive), FeedSource(CAROL, stranger)],
            [ALICE.id],
            NOW,
        )

        assert [event.habit_id for event in feed] == [followed.id]

    def test_no_followees_returns_empty(self, snapshot_factory):
        habit = snapshot_factory([date(2024, 3, 9)], user_id=ALICE.id)
        assert build_activity_feed([FeedSource(ALICE, habit)], [], NOW) == []

    def test_truncates_to_limit_after_sorting(self, snapshot_factory):
        sources = []
        for hour in range(25):
            habit = snapshot_factory(
                completions=[record(date(2024, 3, 9), hour=hour % 24, ident=hour)],
                user_id=BOB.id,
            )
            sources.append(FeedSource(BOB, habit))

        feed = build_activity_feed(sources, [BOB.id], NOW, limit=20)

        assert len(feed) == 20
        stamps = [event.created_at for event in feed]
        assert stamps == sorted(stamps, reverse=True)
        assert stamps[0] == datetime(2024, 3, 9, 23, 0, tzinfo=timezone.utc)

    def test_source_cap_drops_least_recent_habits(self, snapshot_factory):
        """The upstream habit cap runs before windowing and can drop recent activity."""
        fresh = snapshot_factory(completions=[record(date(2024, 3, 10), hour=9)], user_id=ALICE.id)
        stale = snapshot_factory(completions=[record(date(2024, 3, 9), hour=9)], user_id=BOB.id)

        feed = build_activity_feed(
            [FeedSource(BOB, stale), FeedSource(ALICE, fresh)],
            [ALICE.id, BOB.id],
            NOW,
            source_limit=1,
        )

        assert [event.user for event in feed] == [ALICE]


class TestActivityForUser:
    """Feed assembled from persisted follow edges and habits."""

    def test_follow_graph_drives_feed(self, session_factory, habit_factory, user_factory):
        viewer = user_factory("viewer")
        alice = user_factory("alice", full_name="Alice A")
        carol = user_factory("carol")
        habit_factory(name="Run", owner=alice, completed_on=[date(2024, 3, 9), date(2024, 3, 10)])
        habit_factory(name="Swim", owner=carol, completed_on=[date(2024, 3, 10)])
        SQLModelUserRepository(session_factory).follow(viewer.id, alice.id)

        feed = activity_for_user(
            repository=SQLModelHabitRepository(session_factory),
            user_id=viewer.id,
            now=date(2024, 3, 10),
        )

        assert [(event.user.username, event.completed_on, event.streak) for event in feed] == [
            ("alice", date(2024, 3, 10), 2),
            ("alice", date(2024, 3, 9), 1),
        ]
        assert feed[0].user.full_name == "Alice A"

    def test_user_following_nobody_gets_empty_feed(self, session_factory, user):
        feed = activity_for_user(
            repository=SQLModelHabitRepository(session_factory),
            user_id=user.id,
            now=date(2024, 3, 10),
        )
        assert feed == []
