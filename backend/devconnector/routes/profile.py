"""
DevConnector Backend: Profile Routes
=====================================

What:  Profile CRUD, experience/education entries and the GitHub repo lookup.
How:   Thin handlers; ProfileService owns the rules, GitHubService the
       outbound call.

Route Inventory:
    GET    /api/profile/me                    own profile           (auth)
    POST   /api/profile                       create or update      (auth)
    GET    /api/profile                       all profiles
    GET    /api/profile/user/{user_id}        one user's profile
    DELETE /api/profile                       delete account        (auth)
    PUT    /api/profile/experience            add experience        (auth)
    DELETE /api/profile/experience/{exp_id}   remove experience     (auth)
    PUT    /api/profile/education             add education         (auth)
    DELETE /api/profile/education/{edu_id}    remove education      (auth)
    GET    /api/profile/github/{username}     latest GitHub repos
"""

import uuid
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devconnector.database import get_db_session
from devconnector.dependencies import get_current_user_id, get_github_service
from devconnector.exceptions import NotFoundError
from devconnector.schemas.common import ErrorResponse, MessageResponse
from devconnector.schemas.profile import (
    EducationCreate,
    ExperienceCreate,
    ProfileResponse,
    ProfileUpsertRequest,
)
from devconnector.services.github_service import GitHubService
from devconnector.services.profile_service import profile_service

router = APIRouter(prefix="/api/profile", tags=["Profile"])

_AUTH_ERRORS = {401: {"description": "Missing or invalid token", "model": ErrorResponse}}


def _parse_entry_id(entry_id: str, kind: str) -> uuid.UUID:
    # Entry ids are uuids; anything else names an entry that cannot exist
    try:
        return uuid.UUID(entry_id)
    except ValueError:
        raise NotFoundError(resource=kind, resource_id=entry_id)


@router.get(
    "/me",
    response_model=ProfileResponse,
    responses={**_AUTH_ERRORS, 404: {"description": "No profile yet", "model": ErrorResponse}},
    summary="Get the authenticated user's profile",
)
async def get_my_profile(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.get_own_profile(db, user_id)


@router.post(
    "",
    response_model=ProfileResponse,
    responses={
        **_AUTH_ERRORS,
        400: {"description": "status or skills missing", "model": ErrorResponse},
        409: {"description": "Concurrent update, retry", "model": ErrorResponse},
    },
    summary="Create or update the authenticated user's profile",
)
async def upsert_profile(
    body: ProfileUpsertRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.upsert_profile(db, user_id, body)


@router.get("", response_model=List[ProfileResponse], summary="List all profiles")
async def list_profiles(db: AsyncSession = Depends(get_db_session)) -> List[ProfileResponse]:
    return await profile_service.list_profiles(db)


@router.get(
    "/user/{user_id}",
    response_model=ProfileResponse,
    responses={404: {"description": "Profile not found", "model": ErrorResponse}},
    summary="Get a profile by user id",
)
async def get_profile_by_user(
    user_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    # A malformed id can never match a profile: answer 404, not 400
    try:
        owner_id = uuid.UUID(user_id)
    except ValueError:
        raise NotFoundError(resource="profile", message="Profile not found")
    return await profile_service.get_public_profile(db, owner_id)


@router.delete(
    "",
    response_model=MessageResponse,
    responses=_AUTH_ERRORS,
    summary="Delete the authenticated user's account, profile and posts",
)
async def delete_account(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await profile_service.delete_account(db, user_id)
    return MessageResponse(msg="User deleted")


# ── Experience ────────────────────────────────────────────────────────────

@router.put(
    "/experience",
    response_model=ProfileResponse,
    responses={**_AUTH_ERRORS, 400: {"description": "Missing fields", "model": ErrorResponse}},
    summary="Add an experience entry",
)
async def add_experience(
    body: ExperienceCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.add_experience(db, user_id, body)


@router.delete(
    "/experience/{exp_id}",
    response_model=ProfileResponse,
    responses={**_AUTH_ERRORS, 404: {"description": "No such entry", "model": ErrorResponse}},
    summary="Remove an experience entry",
)
async def remove_experience(
    exp_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.remove_experience(db, user_id, _parse_entry_id(exp_id, "experience"))


# ── Education ─────────────────────────────────────────────────────────────

@router.put(
    "/education",
    response_model=ProfileResponse,
    responses={**_AUTH_ERRORS, 400: {"description": "Missing fields", "model": ErrorResponse}},
    summary="Add an education entry",
)
async def add_education(
    body: EducationCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.add_education(db, user_id, body)


@router.delete(
    "/education/{edu_id}",
    response_model=ProfileResponse,
    responses={**_AUTH_ERRORS, 404: {"description": "No such entry", "model": ErrorResponse}},
    summary="Remove an education entry",
)
async def remove_education(
    edu_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.remove_education(db, user_id, _parse_entry_id(edu_id, "education"))


# ── GitHub ────────────────────────────────────────────────────────────────

@router.get(
    "/github/{username}",
    response_model=List[Dict[str, Any]],
    responses={
        404: {"description": "No GitHub profile found", "model": ErrorResponse},
        503: {"description": "GitHub unavailable", "model": ErrorResponse},
    },
    summary="Latest repositories of a GitHub user",
)
async def get_github_repos(
    username: str,
    github: GitHubService = Depends(get_github_service),
) -> List[Dict[str, Any]]:
    """Passes GitHub's repository objects through unchanged."""
    return await github.get_repos(username)
