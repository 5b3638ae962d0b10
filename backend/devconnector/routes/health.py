"""
DevConnector Backend: Health Check Routes
==========================================

What:  GET /health for monitoring and load balancer probes, GET / as a
       plain liveness string.
How:   Runs SELECT 1 against the database and reads the GitHub circuit
       breaker state (no outbound call).

Status levels:
    healthy:    database reachable, GitHub circuit closed
    degraded:   database reachable, GitHub circuit open or half-open
    unhealthy:  database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends, Response
from fastapi.responses import PlainTextResponse
from sqlalchemy import text

from devconnector import __version__
from devconnector.database import engine
from devconnector.dependencies import get_github_service
from devconnector.schemas.common import HealthResponse
from devconnector.services.github_service import CircuitBreaker, GitHubService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/", response_class=PlainTextResponse, summary="Liveness string")
async def root() -> str:
    return "API Running..."


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Database connectivity and GitHub lookup availability.",
)
async def health_check(
    response: Response,
    github: GitHubService = Depends(get_github_service),
) -> HealthResponse:
    db_status = "connected"
    github_status = "available"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if github.health_state != CircuitBreaker.CLOSED:
        github_status = "circuit_open"
        if overall == "healthy":
            overall = "degraded"

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        github=github_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
