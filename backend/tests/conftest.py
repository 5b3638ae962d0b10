"""
DevConnector Backend: Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the whole suite.
How:   Service tests run against an in-memory SQLite database
       (sqlite+aiosqlite, StaticPool so every session shares the one
       connection) built from the ORM metadata. Endpoint tests drive the
       FastAPI app through httpx's ASGITransport with the database and
       GitHub dependencies overridden.

Fixture Hierarchy:
    ├── test_settings:    Settings with a test secret and bcrypt cost 4
    ├── security_config:  SecurityConfig derived from test_settings
    ├── db_engine:        fresh in-memory database per test
    ├── db_session:       AsyncSession on db_engine
    ├── mock_db_session:  AsyncMock session for forcing database failures
    ├── build_app:        factory for apps wired to db_engine
    └── test_client:      HTTPX AsyncClient against build_app(test_settings)
"""

import os

# Must run before any devconnector import: database.py builds its engine
# from these values at import time.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret-0123456789abcdef"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["GITHUB_TOKEN"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator, Callable  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from tenacity import wait_none  # noqa: E402

from devconnector.config import SecurityConfig, Settings  # noqa: E402
from devconnector.database import Base, get_db_session  # noqa: E402
from devconnector.services.github_service import GitHubService  # noqa: E402
from devconnector.services.token_service import TokenService  # noqa: E402
from devconnector.services.user_service import UserService  # noqa: E402

import devconnector.models  # noqa: E402,F401


# ══════════════════════════════════════════════════════════════════════════
# Configuration
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite://",
        jwt_secret="test-secret-0123456789abcdef",
        bcrypt_rounds=4,
        github_api_url="https://api.github.test",
        github_token="",
        retry_max_attempts=2,
        cb_failure_threshold=3,
        _env_file=None,
    )


@pytest.fixture
def security_config(test_settings) -> SecurityConfig:
    return test_settings.security


@pytest.fixture
def token_service(security_config) -> TokenService:
    return TokenService(security_config)


@pytest.fixture
def user_service(security_config, token_service) -> UserService:
    return UserService(security_config, token_service)


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """In-memory database with all tables; discarded after the test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession.

    Usage:
        mock_db_session.flush.side_effect = StaleDataError("...")
        with pytest.raises(ConflictError): ...
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

def github_not_found(request: httpx.Request) -> httpx.Response:
    return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture
def build_app(db_engine) -> Callable[..., FastAPI]:
    """
    Returns `build(settings, github_handler=None)`, which creates an app whose
    sessions run against `db_engine` and whose GitHub client is served by
    `github_handler` through httpx.MockTransport. Everything else, the JWT
    secret included, comes from `settings`.
    """
    from devconnector.main import create_app

    session_factory = async_sessionmaker(db_engine, expire_on_commit=False)

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    def build(settings: Settings, github_handler=None) -> FastAPI:
        app = create_app(settings)
        github = GitHubService(
            settings,
            transport=httpx.MockTransport(github_handler or github_not_found),
            retry_wait=wait_none(),
        )
        app.dependency_overrides[get_db_session] = override_db_session
        app.state.github_service = github
        return app

    return build


@pytest_asyncio.fixture
async def test_client(build_app, test_settings):
    """
    HTTPX AsyncClient talking to the app in-process.

    Usage:
        async def test_root(test_client):
            response = await test_client.get("/")
            assert response.text == "API Running..."
    """
    app = build_app(test_settings)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
