"""
DevConnector Backend: Post Routes
==================================

What:  Posts, likes and comments. Every route requires a token.

Route Inventory:
    POST   /api/posts                               create post
    GET    /api/posts                               all posts, newest first
    GET    /api/posts/{post_id}                     one post
    DELETE /api/posts/{post_id}                     delete own post
    PUT    /api/posts/like/{post_id}                like        → likes list
    PUT    /api/posts/unlike/{post_id}              unlike      → likes list
    POST   /api/posts/comment/{post_id}             comment     → comments list
    DELETE /api/posts/comment/{post_id}/{comment_id} uncomment  → comments list

Ids that are not UUIDs cannot name an existing post, so they are answered
with 404 "Post not found" rather than a validation error.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devconnector.database import get_db_session
from devconnector.dependencies import get_current_user_id
from devconnector.exceptions import NotFoundError
from devconnector.schemas.common import ErrorResponse, MessageResponse
from devconnector.schemas.post import Comment, CommentCreate, Like, PostCreate, PostResponse
from devconnector.services.post_service import post_service

router = APIRouter(
    prefix="/api/posts",
    tags=["Posts"],
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
)

_POST_NOT_FOUND = {404: {"description": "Post not found", "model": ErrorResponse}}


def _parse_post_id(post_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(post_id)
    except ValueError:
        raise NotFoundError(resource="post", message="Post not found")


@router.post(
    "",
    response_model=PostResponse,
    responses={400: {"description": "Text is required", "model": ErrorResponse}},
    summary="Create a post",
)
async def create_post(
    body: PostCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.create_post(db, user_id, body.text)


@router.get("", response_model=List[PostResponse], summary="List posts, newest first")
async def list_posts(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[PostResponse]:
    return await post_service.list_posts(db)


@router.get("/{post_id}", response_model=PostResponse, responses=_POST_NOT_FOUND, summary="Get a post")
async def get_post(
    post_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.get_post(db, _parse_post_id(post_id))


@router.delete(
    "/{post_id}",
    response_model=MessageResponse,
    responses={**_POST_NOT_FOUND, 403: {"description": "Not the author", "model": ErrorResponse}},
    summary="Delete own post",
)
async def delete_post(
    post_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await post_service.delete_post(db, user_id, _parse_post_id(post_id))
    return MessageResponse(msg="Post removed")


# ── Likes ─────────────────────────────────────────────────────────────────

@router.put(
    "/like/{post_id}",
    response_model=List[Like],
    responses={**_POST_NOT_FOUND, 400: {"description": "Post already liked", "model": ErrorResponse}},
    summary="Like a post",
)
async def like_post(
    post_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[Like]:
    return await post_service.like_post(db, user_id, _parse_post_id(post_id))


@router.put(
    "/unlike/{post_id}",
    response_model=List[Like],
    responses={**_POST_NOT_FOUND, 400: {"description": "Post has not yet been liked", "model": ErrorResponse}},
    summary="Remove own like",
)
async def unlike_post(
    post_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[Like]:
    return await post_service.unlike_post(db, user_id, _parse_post_id(post_id))


# ── Comments ──────────────────────────────────────────────────────────────

@router.post(
    "/comment/{post_id}",
    response_model=List[Comment],
    responses={**_POST_NOT_FOUND, 400: {"description": "Text is required", "model": ErrorResponse}},
    summary="Comment on a post",
)
async def add_comment(
    post_id: str,
    body: CommentCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[Comment]:
    return await post_service.add_comment(db, user_id, _parse_post_id(post_id), body.text)


@router.delete(
    "/comment/{post_id}/{comment_id}",
    response_model=List[Comment],
    responses={**_POST_NOT_FOUND, 403: {"description": "Not the commenter", "model": ErrorResponse}},
    summary="Delete own comment",
)
async def remove_comment(
    post_id: str,
    comment_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[Comment]:
    try:
        parsed_comment_id = uuid.UUID(comment_id)
    except ValueError:
        raise NotFoundError(resource="comment", message="Comment does not exist")
    return await post_service.remove_comment(db, user_id, _parse_post_id(post_id), parsed_comment_id)
