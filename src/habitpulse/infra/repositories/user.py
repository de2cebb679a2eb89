"""SQLModel implementation of user and follow-edge persistence."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from sqlmodel import Session, select

from ...models.user import Follow, User

logger = logging.getLogger(__name__)


class SQLModelUserRepository:
    """Users and the directed follow graph."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_username(self, username: str) -> Optional[User]:
        """Retrieve a user by username."""
        with self.session_factory() as session:
            obj = session.exec(select(User).where(User.username == username)).first()
            if obj:
                session.expunge(obj)
            return obj

    def create(self, user: User) -> User:
        """Create a new user."""
        with self.session_factory() as session:
            session.add(user)
            session.commit()
            session.refresh(user)
            session.expunge(user)
            return user

    def follow(self, follower_id: int, followee_id: int) -> bool:
        """Add a follow edge; return False when it already existed."""
        if follower_id == followee_id:
            raise ValueError("Users cannot follow themselves.")
        with self.session_factory() as session:
            if session.get(User, followee_id) is None:
                raise LookupError(f"User {followee_id} not found.")
            if session.get(Follow, (follower_id, followee_id)) is not None:
                return False
            session.add(Follow(follower_id=follower_id, followee_id=followee_id))
            session.commit()

        logger.info("Follow added", extra={"follower_id": follower_id, "followee_id": followee_id})
        return True

    def unfollow(self, follower_id: int, followee_id: int) -> bool:
        """Remove a follow edge; return False when there was none."""
        with self.session_factory() as session:
            edge = session.get(Follow, (follower_id, followee_id))
            if edge is None:
                return False
            session.delete(edge)
            session.commit()
            return True
