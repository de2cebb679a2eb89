"""Concrete repository implementations using SQLModel."""

from .habit import DuplicateHabitError, SQLModelHabitRepository
from .user import SQLModelUserRepository

__all__ = [
    "DuplicateHabitError",
    "SQLModelHabitRepository",
    "SQLModelUserRepository",
]
