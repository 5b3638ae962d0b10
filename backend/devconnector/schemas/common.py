"""
DevConnector Backend: Shared Response Schemas
==============================================

Error envelope, plain message bodies and the health report.
"""

from typing import Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Body of deletions: `{"msg": "Post removed"}`."""
    msg: str


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Please include a valid email",
            "details": {"errors": {"email": "Please include a valid email"}},
            "request_id": "1f2e3d4c"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health for monitoring and load balancer probes."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    github: str = Field(description="GitHub lookup status: available, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
