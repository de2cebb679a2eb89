"""SQLModel table exports."""

from .habit import Completion, Habit
from .user import Follow, User

__all__ = [
    "Completion",
    "Follow",
    "Habit",
    "User",
]
