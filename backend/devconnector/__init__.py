"""
DevConnector Backend: Application Package
==========================================

What: Social-profile REST backend (accounts, developer profiles, posts).
Who:  Imported by uvicorn (`devconnector.main:app`), Alembic and pytest.

Architecture Note:
    The backend is split into layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Dependencies (Auth Gate, wiring)  │  ← bearer token → user id
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← validation, ownership, list edits
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Services take no request objects; they raise exceptions from
    `devconnector.exceptions`, which the application translates to JSON.
"""

__version__ = "1.0.0"
