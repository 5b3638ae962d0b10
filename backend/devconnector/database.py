"""
DevConnector Backend: Database Session Management
==================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   Creates an async engine with connection pooling and provides a
       session dependency that commits on success and rolls back on error.
Who:   Route handlers via FastAPI's dependency injection; Alembic and the
       health check use `engine` directly.

Consistency Note:
    There is no transaction wrapping beyond the per-request session. Profile
    and post rows carry a `version` column (see models) so the
    read-modify-write sequences used for list edits are rejected instead of
    silently overwriting a concurrent change.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from devconnector.config import get_settings


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool options for server databases; SQLite (tests, local runs) ignores pooling."""
    settings = get_settings()
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
# No connection is opened here; the pool connects on first use.
engine = create_async_engine(
    get_settings().database_url,
    **_engine_options(get_settings().database_url),
)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: response models read attributes after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object between the models, Alembic's autogenerate
    and the test fixtures that build the schema with `create_all`.
    """
    pass


# Embedded lists and mappings (skills, experience, likes, comments, ...) live
# in one JSON column per field: JSONB on PostgreSQL, plain JSON elsewhere.
# Mutations must assign a new list/dict so SQLAlchemy sees the change.
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler (services flush their changes)
        3. On success: commits the transaction
        4. On error: rolls back the transaction and re-raises so the
           global error handler can respond
        5. Always: closes the session (returns connection to pool)
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Closes all pooled connections; called from the application lifespan on shutdown."""
    await engine.dispose()
