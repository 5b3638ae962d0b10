"""
ORM models. Importing this package registers every table with `Base.metadata`
(Alembic autogenerate and the test schema rely on that).
"""

from devconnector.models.post import Post
from devconnector.models.profile import Profile
from devconnector.models.user import User

__all__ = ["Post", "Profile", "User"]
