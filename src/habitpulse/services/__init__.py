"""Service module exports."""

from . import analytics, habits, social

__all__ = [
    "analytics",
    "habits",
    "social",
]
