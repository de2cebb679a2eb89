"""
Centralized habit category and frequency definitions.
These values match the seed data and the stored habit rows.
"""

import re

HABIT_CATEGORIES = [
    "Health & Fitness",
    "Learning",
    "Productivity",
    "Mindfulness",
    "Relationships",
    "Hobbies",
    "Finance",
    "Other",
]

DEFAULT_CATEGORY = "Other"

HABIT_FREQUENCIES = ["daily", "weekly"]

DEFAULT_FREQUENCY = "daily"

DEFAULT_COLOR = "#8B5CF6"

COLOR_PATTERN = re.compile(r"^#[0-9A-F]{6}$", re.IGNORECASE)
