"""User and follow-edge models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from .habit import Habit


class User(SQLModel, table=True):
    """Application user; credentials are owned by the auth service."""

    __tablename__: ClassVar[str] = "user"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(nullable=False, unique=True, index=True, max_length=64)
    full_name: str = Field(default="", max_length=128)
    avatar: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    habits: list["Habit"] = Relationship(
        back_populates="user",
        sa_relationship=relationship("Habit", back_populates="user"),
    )


class Follow(SQLModel, table=True):
    """Directed follow edge: ``follower_id`` follows ``followee_id``."""

    __tablename__: ClassVar[str] = "follow"

    follower_id: int = Field(foreign_key="user.id", primary_key=True)
    followee_id: int = Field(foreign_key="user.id", primary_key=True, index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
