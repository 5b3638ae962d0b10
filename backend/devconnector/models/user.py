"""
DevConnector Backend: User SQLAlchemy Model
============================================

What:  ORM model for the `users` table (the Credential Store).
Who:   UserService (registration, login, account lookup), ProfileService
       (name/avatar join, cascade delete) and PostService (author snapshot).

Table Design:
    - email is unique and stored normalized (trimmed, lower-case)
    - password_hash holds the bcrypt hash; the raw password is never stored
    - avatar is the Gravatar URL derived from the email at registration
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from devconnector.database import Base


class User(Base):
    """
    A registered account.

    Lifecycle:
        1. Created by POST /api/users
        2. Read on every login and by GET /api/auth
        3. Deleted together with its profile (and posts) by DELETE /api/profile
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )

    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)

    avatar: Mapped[str] = mapped_column(String(512), nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        # email and hash deliberately left out of log output
        return f"<User(id={self.id}, name='{self.name}')>"
