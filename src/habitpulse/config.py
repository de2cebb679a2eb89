"""Application configuration objects and helpers."""

from __future__ import annotations

import calendar
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()

WEEKDAY_NAMES = {name.lower(): index for index, name in enumerate(calendar.day_name)}


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    """Read a positive integer from the environment."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    parsed = int(value)
    if parsed < 1:
        raise ValueError(f"{name} must be a positive integer, got {value!r}.")
    return parsed


def parse_week_start(value: str) -> int:
    """Map a weekday name (``"sunday"``, ``"Monday"``...) to Python's weekday number."""

    try:
        return WEEKDAY_NAMES[value.strip().lower()]
    except KeyError as exc:
        raise ValueError(
            f"Unknown first day of week {value!r}; expected one of {sorted(WEEKDAY_NAMES)}."
        ) from exc


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "HabitPulse"
    DB_FILENAME = "habitpulse.db"
    SQLITE_PRAGMAS = {"journal_mode": "wal", "foreign_keys": "on"}

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("HABITPULSE_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("HABITPULSE_DATABASE_URL", self._build_sqlite_url())
        self.WEEK_START = parse_week_start(os.getenv("HABITPULSE_WEEK_START", "sunday"))
        self.ACTIVITY_WINDOW_DAYS = _env_int("HABITPULSE_ACTIVITY_WINDOW_DAYS", 7)
        self.FEED_LIMIT = _env_int("HABITPULSE_FEED_LIMIT", 20)
        self.FEED_SOURCE_LIMIT = _env_int("HABITPULSE_FEED_SOURCE_LIMIT", 50)
        self.WEEKLY_GRID_DAYS = _env_int("HABITPULSE_WEEKLY_GRID_DAYS", 7)

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("HABITPULSE_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside the data directory."""

        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        if not self.DATABASE_URL.startswith("sqlite"):
            return {}
        return {"connect_args": {"check_same_thread": False}}


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False
