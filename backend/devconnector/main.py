"""
DevConnector Backend: FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   `create_app()` wires middleware, exception handlers and routers;
       the module-level `app` is what uvicorn serves
       (uvicorn devconnector.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Request ID → Logging → GZip → CORS         │
    │                                                          │
    │  Routes:                                                 │
    │   /api/users   /api/auth   /api/profile   /api/posts     │
    │   /  /health                                             │
    │                                                          │
    │  Exception Handlers:                                     │
    │   DevConnectorError → its status_code (400/401/403/...)  │
    │   RequestValidationError → 400 with per-field messages   │
    │   Exception → 500                                        │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, GitHub client
    Shutdown: close the GitHub HTTP client, dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from devconnector import __version__
from devconnector.config import Settings, get_settings
from devconnector.database import dispose_engine
from devconnector.dependencies import close_github_service
from devconnector.exceptions import (
    CircuitBreakerOpenError,
    DevConnectorError,
    DuplicateUserError,
    ExternalServiceError,
    InvalidCredentialsError,
    StorageError,
    ValidationError,
)
from devconnector.middleware.logging import RequestLoggingMiddleware
from devconnector.middleware.request_id import RequestIDMiddleware, request_id_var
from devconnector.routes import auth, health, posts, profile, users
from devconnector.services.github_service import GitHubService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(settings: Settings) -> None:
    """Root logger to stdout at the configured level; noisy libraries raised to WARNING."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings)
    logger.info("DevConnector Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving; development setups run with the default secret
        logger.warning("Configuration warning: %s", str(e))

    # Tests may install a client built on a mock transport before startup
    if getattr(app.state, "github_service", None) is None:
        app.state.github_service = GitHubService(settings)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("DevConnector Backend shutting down...")
    await close_github_service(app)
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": error, "message": message}
    if details:
        body["details"] = details
    body["request_id"] = request_id_var.get("")
    return body


def _field_name(loc: tuple) -> str:
    # ("body", "email") → "email"; ("path", "exp_id") → "exp_id"
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts) or "body"


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """
    Map exceptions to the JSON error envelope.

    Handler hierarchy:
        ValidationError           → 400, details.errors per field
        RequestValidationError    → 400, same shape as ValidationError
        StorageError              → 500, generic message (context logged)
        CircuitBreakerOpenError   → 503 + Retry-After
        ExternalServiceError      → 503 (+ Retry-After)
        DevConnectorError (base)  → exc.status_code
        Exception (fallback)      → 500

    With `legacy_status_codes`, DuplicateUserError and InvalidCredentialsError
    are answered as the first API release did: 500 with `{"errors": {"msg": ...}}`.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body(exc.error_code, exc.message, {"errors": exc.errors}),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors: Dict[str, str] = {}
        for error in exc.errors():
            errors.setdefault(_field_name(tuple(error.get("loc", ()))), error.get("msg", "Invalid value"))
        message = next(iter(errors.values()), "Invalid request")
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), sorted(errors))
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", message, {"errors": errors}),
        )

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        logger.error("[%s] Storage error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body(exc.error_code, "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=503,
            content=_error_body(exc.error_code, exc.message, {"recovery_time": exc.recovery_time}),
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(ExternalServiceError)
    async def handle_external_service_error(request: Request, exc: ExternalServiceError):
        logger.error("[%s] External service error: %s", request_id_var.get(""), exc.message)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else {}
        return JSONResponse(
            status_code=503,
            content=_error_body(exc.error_code, exc.message),
            headers=headers,
        )

    @app.exception_handler(DevConnectorError)
    async def handle_app_error(request: Request, exc: DevConnectorError):
        if settings.legacy_status_codes and isinstance(exc, (DuplicateUserError, InvalidCredentialsError)):
            return JSONResponse(status_code=500, content={"errors": {"msg": exc.message}})
        status_code = exc.status_code
        if status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", request_id_var.get(""), type(exc).__name__, exc.message, exc.context)
        return JSONResponse(
            status_code=status_code,
            content=_error_body(exc.error_code, exc.message),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Stack trace goes to the log only; the client gets the request id."""
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Overrides `get_settings()`. Stored on `app.state` and read
                  by every dependency, so tests can pass their own to
                  change the JWT secret or flip `legacy_status_codes`.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="DevConnector API",
        description="Developer profiles, posts, likes and comments.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app, settings)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(users.router)
    app.include_router(auth.router)
    app.include_router(profile.router)
    app.include_router(posts.router)
    app.include_router(health.router)

    return app


app = create_app()
