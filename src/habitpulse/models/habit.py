"""Habit tracking data structures."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

from ..constants.categories import DEFAULT_CATEGORY, DEFAULT_COLOR, DEFAULT_FREQUENCY

if TYPE_CHECKING:  # pragma: no cover
    from .user import User


class Habit(SQLModel, table=True):
    """A user-defined habit tracked on a daily or weekly cadence."""

    __tablename__: ClassVar[str] = "habit"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    name: str = Field(nullable=False, max_length=100, index=True)
    description: str = Field(default="", max_length=500)
    category: str = Field(default=DEFAULT_CATEGORY, max_length=32, index=True)
    frequency: str = Field(default=DEFAULT_FREQUENCY, max_length=16)
    color: str = Field(default=DEFAULT_COLOR, max_length=7)
    is_active: bool = Field(default=True, nullable=False, index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    completions: list["Completion"] = Relationship(
        back_populates="habit",
        sa_relationship=relationship(
            "Completion", back_populates="habit", cascade="all, delete-orphan"
        ),
    )

    user: "User" = Relationship(sa_relationship=relationship("User", back_populates="habits"))


class Completion(SQLModel, table=True):
    """A habit marked done on a calendar day.

    ``completed_on`` drives every streak and rate computation; ``created_at`` is
    when the record was logged and only orders the activity feed.
    """

    __tablename__: ClassVar[str] = "completion"

    id: Optional[int] = Field(default=None, primary_key=True)
    habit_id: int = Field(foreign_key="habit.id", nullable=False, index=True)
    completed_on: date = Field(nullable=False, index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    habit: "Habit" = Relationship(
        back_populates="completions",
        sa_relationship=relationship("Habit", back_populates="completions"),
    )
