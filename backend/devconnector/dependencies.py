"""
DevConnector Backend: FastAPI Dependencies (Auth Gate)
=======================================================

What:  Builds the configured services and guards protected routes.
How:   `get_current_user_id` reads the bearer token, verifies it with the
       TokenService and returns the user id. The token may arrive as
       `Authorization: Bearer <token>` or in the `x-auth-token` header that
       older web clients send.
Who:   Route handlers via `Depends(...)`. Settings and the GitHub client
       live on `app.state`, so each app built by `create_app()` has its own.

Any token problem (missing, malformed, bad signature, expired) ends as
UnauthenticatedError (401); the specific reason is only logged.
"""

import logging
import uuid
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from devconnector.config import Settings
from devconnector.exceptions import TokenError, UnauthenticatedError
from devconnector.services.github_service import GitHubService
from devconnector.services.token_service import TokenService
from devconnector.services.user_service import UserService

logger = logging.getLogger(__name__)

# auto_error=False: a missing header is reported through our own 401 body
bearer_scheme = HTTPBearer(auto_error=False)


# ── Service Providers ─────────────────────────────────────────────────────

def get_app_settings(request: Request) -> Settings:
    """The settings `create_app()` was built with."""
    return request.app.state.settings


def get_token_service(settings: Settings = Depends(get_app_settings)) -> TokenService:
    return TokenService(settings.security)


def get_user_service(
    settings: Settings = Depends(get_app_settings),
    token_service: TokenService = Depends(get_token_service),
) -> UserService:
    return UserService(settings.security, token_service)


def get_github_service(request: Request) -> GitHubService:
    """
    One client and one circuit breaker per application.

    The lifespan creates it on startup; an app served without a lifespan
    gets it on first use.
    """
    github = getattr(request.app.state, "github_service", None)
    if github is None:
        github = request.app.state.github_service = GitHubService(request.app.state.settings)
    return github


async def close_github_service(app: FastAPI) -> None:
    """Closes the application's HTTP client, if one was created; called on shutdown."""
    github = getattr(app.state, "github_service", None)
    if github is not None:
        await github.aclose()
        app.state.github_service = None


# ── Auth Gate ─────────────────────────────────────────────────────────────

def extract_token(
    credentials: Optional[HTTPAuthorizationCredentials],
    legacy_token: Optional[str],
) -> Optional[str]:
    """Bearer credentials win over the legacy header; blank values count as absent."""
    if credentials is not None and credentials.credentials.strip():
        return credentials.credentials.strip()
    if legacy_token and legacy_token.strip():
        return legacy_token.strip()
    return None


def authenticate(token: Optional[str], token_service: TokenService) -> uuid.UUID:
    """
    Resolve a raw token to a user id.

    Raises:
        UnauthenticatedError: no token, or the token does not verify.
    """
    if not token:
        raise UnauthenticatedError()
    try:
        return token_service.verify(token)
    except TokenError as e:
        logger.warning("Rejected bearer token: %s (%s)", e.message, e.context.get("reason", e.error_code))
        raise UnauthenticatedError(message=e.message, context={"reason": e.error_code})


async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    x_auth_token: Optional[str] = Header(default=None, alias="x-auth-token"),
    token_service: TokenService = Depends(get_token_service),
) -> uuid.UUID:
    """Dependency for protected routes; also records the id for the access log."""
    user_id = authenticate(extract_token(credentials, x_auth_token), token_service)
    request.state.user_id = str(user_id)
    return user_id
