"""
DevConnector Backend: Profile SQLAlchemy Model
===============================================

What:  ORM model for the `profiles` table (the Profile Store).
How:   Scalar bio fields are columns; skills, social links, experience and
       education are JSON documents embedded in the row.

Embedded entry shapes (stored as JSON objects, newest first):
    experience: {id, title, company, location, from, to, current, description}
    education:  {id, school, degree, fieldofstudy, from, to, current, description}
    Dates are ISO strings (YYYY-MM-DD); `to` is null for ongoing entries.

Concurrency:
    `version` is SQLAlchemy's version_id_col. Every UPDATE carries
    `WHERE version = :expected`; a concurrent writer makes it match zero rows
    and the flush raises StaleDataError (mapped to ConflictError).
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devconnector.database import Base, JSONDocument
from devconnector.models.user import User


class Profile(Base):
    """
    A developer profile; at most one per user (unique `user_id`).

    `user` is loaded with a join so responses can show the owner's current
    name and avatar without a second query.
    """

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    company: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(255), nullable=False)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    githubusername: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    skills: Mapped[List[str]] = mapped_column(JSONDocument, nullable=False, default=lambda: [])
    social: Mapped[Dict[str, str]] = mapped_column(JSONDocument, nullable=False, default=lambda: {})
    experience: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONDocument, nullable=False, default=lambda: []
    )
    education: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONDocument, nullable=False, default=lambda: []
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    user: Mapped[User] = relationship(User, lazy="joined")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, user_id={self.user_id}, version={self.version})>"
