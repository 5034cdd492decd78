"""User (identity) database model."""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


def new_identity_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """
    User account model.

    Follow relationships are stored denormalized as two mirrored JSON
    arrays: ``followers`` holds the ids of users following this one and
    ``following`` the ids this user follows. Both are treated as sets
    (no duplicates) and must be replaced, not mutated in place, for the
    change to be flushed.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_identity_id)
    username: Mapped[str | None] = mapped_column(String(30), unique=True, nullable=True)
    full_name: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String, unique=True)
    password_hash: Mapped[str | None] = mapped_column(String, nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String, default="user")  # user, admin
    account_status: Mapped[str] = mapped_column(String, default="active")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    followers: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    following: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    @property
    def follower_count(self) -> int:
        return len(self.followers or [])

    @property
    def following_count(self) -> int:
        return len(self.following or [])

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"
