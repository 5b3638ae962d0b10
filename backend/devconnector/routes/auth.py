"""
DevConnector Backend: Auth Routes
==================================

What:  Login (POST /api/auth) and current-user lookup (GET /api/auth).
Who:   The web client on sign-in and on every page load with a stored token.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devconnector.database import get_db_session
from devconnector.dependencies import get_current_user_id, get_user_service
from devconnector.schemas.common import ErrorResponse
from devconnector.schemas.user import LoginRequest, TokenResponse, UserResponse
from devconnector.services.user_service import UserService

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.get(
    "",
    response_model=UserResponse,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        404: {"description": "Account no longer exists", "model": ErrorResponse},
    },
    summary="Get the authenticated user",
)
async def get_authenticated_user(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    user_service: UserService = Depends(get_user_service),
) -> UserResponse:
    """Returns the account behind the token, without the password hash."""
    return await user_service.get_user(db, user_id)


@router.post(
    "",
    response_model=TokenResponse,
    responses={
        400: {"description": "Invalid input", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Log in and get a token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    user_service: UserService = Depends(get_user_service),
) -> TokenResponse:
    token = await user_service.login(db, body.email, body.password)
    return TokenResponse(token=token)
