"""Shared constants."""

from .categories import (
    COLOR_PATTERN,
    DEFAULT_CATEGORY,
    DEFAULT_COLOR,
    DEFAULT_FREQUENCY,
    HABIT_CATEGORIES,
    HABIT_FREQUENCIES,
)

__all__ = [
    "COLOR_PATTERN",
    "DEFAULT_CATEGORY",
    "DEFAULT_COLOR",
    "DEFAULT_FREQUENCY",
    "HABIT_CATEGORIES",
    "HABIT_FREQUENCIES",
]
