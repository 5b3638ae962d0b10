"""
DevConnector Backend: Post SQLAlchemy Model
============================================

What:  ORM model for the `posts` table (the Post Store).

Denormalization:
    `name` and `avatar` are copied from the author when the post is created
    and are NOT updated when the author later changes them. Comments embed
    the same snapshot for their own author.

Embedded documents (JSON, newest first):
    likes:    [{"user": "<uuid>"}]
    comments: [{"id", "user", "text", "name", "avatar", "date"}]

Concurrency: same version_id_col guard as Profile.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from devconnector.database import Base, JSONDocument


class Post(Base):
    """A user post with its likes and comments."""

    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    text: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    avatar: Mapped[str] = mapped_column(String(512), nullable=False, default="")

    likes: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONDocument, nullable=False, default=lambda: []
    )
    comments: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONDocument, nullable=False, default=lambda: []
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Newest-first listing is the only ordering the API exposes
    __table_args__ = (
        Index("idx_posts_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Post(id={self.id}, user_id={self.user_id}, "
            f"likes={len(self.likes or [])}, comments={len(self.comments or [])})>"
        )
