"""Habit repository protocol."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Optional, Protocol

from ...models.habit import Habit

if TYPE_CHECKING:  # pragma: no cover
    from ...services.habits import HabitSnapshot
    from ...services.social import FeedSource


class HabitRepository(Protocol):
    """Repository for habits, completions and the follow edges feeding the activity feed."""

    def get_by_name(self, name: str, *, user_id: int) -> Optional[Habit]:
        """Retrieve an active habit by name."""
        ...

    def list_active(self, *, user_id: int) -> list[Habit]:
        """List only active habits."""
        ...

    def create(self, habit: Habit, *, user_id: int) -> Habit:
        """Create a new habit."""
        ...

    def update(self, habit_id: int, *, user_id: int, **changes: Any) -> Habit:
        """Apply field changes to an active habit."""
        ...

    def deactivate(self, habit_id: int, *, user_id: int) -> Habit:
        """Soft-delete a habit."""
        ...

    def toggle_completion(
        self,
        habit_id: int,
        day: date,
        *,
        user_id: int,
        logged_at: Optional[datetime] = None,
    ) -> bool:
        """Add or remove the completion for a day; return whether the day is now completed."""
        ...

    def snapshot(self, habit_id: int, *, user_id: int) -> "HabitSnapshot":
        """Materialize a single habit with its completions."""
        ...

    def list_snapshots(self, *, user_id: int) -> list["HabitSnapshot"]:
        """Materialize active habits with their completions."""
        ...

    def following_ids(self, user_id: int) -> list[int]:
        """IDs of the users ``user_id`` follows."""
        ...

    def feed_sources(self, user_ids: list[int]) -> list["FeedSource"]:
        """Active habits (with owners) belonging to ``user_ids``."""
        ...
