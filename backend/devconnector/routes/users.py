"""
DevConnector Backend: Registration Route
=========================================

POST /api/users: create an account and return a bearer token.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devconnector.database import get_db_session
from devconnector.dependencies import get_user_service
from devconnector.schemas.common import ErrorResponse
from devconnector.schemas.user import RegisterRequest, TokenResponse
from devconnector.services.user_service import UserService

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post(
    "",
    response_model=TokenResponse,
    responses={
        400: {"description": "Invalid input or user already exists", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Register a user",
)
async def register_user(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
    user_service: UserService = Depends(get_user_service),
) -> TokenResponse:
    token = await user_service.register(db, body.name, body.email, body.password)
    return TokenResponse(token=token)
