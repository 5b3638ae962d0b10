"""
DevConnector Backend: Post Service
===================================

What:  Posts, likes and comments.
Who:   The /api/posts route handlers.

Data Rules:
    - A post and each comment store the author's name/avatar as they were
      at write time.
    - likes and comments are kept newest first.
    - A user appears at most once in a post's likes.
    - Only the author may delete a post or a comment.

Like/unlike and comment edits are read-modify-write on one JSON column.
The post's version column turns a lost race into ConflictError, so two
concurrent likes can never both be dropped or a like counted twice.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from devconnector.exceptions import (
    AlreadyLikedError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    NotLikedError,
    StorageError,
    ValidationError,
)
from devconnector.models.post import Post
from devconnector.models.user import User
from devconnector.schemas.post import Comment, Like, PostResponse

logger = logging.getLogger(__name__)


class PostService:
    """Business logic for the Post Store."""

    # ── Posts ─────────────────────────────────────────────────────────────

    async def create_post(self, db: AsyncSession, user_id: uuid.UUID, text: Optional[str]) -> PostResponse:
        """
        Publish a post with the author's current name and avatar.

        Raises:
            ValidationError: empty text
            NotFoundError:   the author's account no longer exists
        """
        if not text or not text.strip():
            raise ValidationError("Text is required", field="text")

        author = await self._get_author(db, user_id)
        post = Post(
            user_id=user_id,
            text=text,
            name=author.name,
            avatar=author.avatar,
            likes=[],
            comments=[],
        )
        db.add(post)
        await self._flush(db, "create post", user_id)
        logger.info("User %s created post %s", user_id, post.id)
        return PostResponse.model_validate(post)

    async def list_posts(self, db: AsyncSession) -> List[PostResponse]:
        """All posts, newest first."""
        try:
            result = await db.execute(select(Post).order_by(Post.created_at.desc()))
            posts = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing posts: %s", str(e))
            raise StorageError(context={"error_type": type(e).__name__})
        return [PostResponse.model_validate(p) for p in posts]

    async def get_post(self, db: AsyncSession, post_id: uuid.UUID) -> PostResponse:
        post = await self._require_post(db, post_id)
        return PostResponse.model_validate(post)

    async def delete_post(self, db: AsyncSession, user_id: uuid.UUID, post_id: uuid.UUID) -> None:
        """
        Raises:
            NotFoundError:  no such post
            ForbiddenError: caller is not the author
        """
        post = await self._require_post(db, post_id)
        if post.user_id != user_id:
            logger.warning("User %s tried to delete post %s owned by %s", user_id, post_id, post.user_id)
            raise ForbiddenError(context={"post_id": str(post_id)})

        await db.delete(post)
        await self._flush(db, "delete post", user_id)
        logger.info("User %s deleted post %s", user_id, post_id)

    # ── Likes ─────────────────────────────────────────────────────────────

    async def like_post(self, db: AsyncSession, user_id: uuid.UUID, post_id: uuid.UUID) -> List[Like]:
        """Prepend the caller to the like list. Raises AlreadyLikedError on a second like."""
        post = await self._require_post(db, post_id)
        likes = post.likes or []
        if any(like.get("user") == str(user_id) for like in likes):
            raise AlreadyLikedError(context={"post_id": str(post_id)})

        post.likes = [{"user": str(user_id)}, *likes]
        await self._flush(db, "like post", user_id)
        return [Like.model_validate(like) for like in post.likes]

    async def unlike_post(self, db: AsyncSession, user_id: uuid.UUID, post_id: uuid.UUID) -> List[Like]:
        """Remove the caller's like. Raises NotLikedError when there is none."""
        post = await self._require_post(db, post_id)
        likes = post.likes or []
        remaining = [like for like in likes if like.get("user") != str(user_id)]
        if len(remaining) == len(likes):
            raise NotLikedError(context={"post_id": str(post_id)})

        post.likes = remaining
        await self._flush(db, "unlike post", user_id)
        return [Like.model_validate(like) for like in post.likes]

    # ── Comments ──────────────────────────────────────────────────────────

    async def add_comment(
        self, db: AsyncSession, user_id: uuid.UUID, post_id: uuid.UUID, text: Optional[str]
    ) -> List[Comment]:
        """
        Prepend a comment carrying the commenter's current name and avatar.

        Raises:
            ValidationError: empty text
            NotFoundError:   no such post, or the commenter's account is gone
        """
        if not text or not text.strip():
            raise ValidationError("Text is required", field="text")

        author = await self._get_author(db, user_id)
        post = await self._require_post(db, post_id)
        comment: Dict[str, Any] = {
            "id": str(uuid.uuid4()),
            "user": str(user_id),
            "text": text,
            "name": author.name,
            "avatar": author.avatar,
            "date": datetime.now(timezone.utc).isoformat(),
        }
        post.comments = [comment, *(post.comments or [])]
        await self._flush(db, "add comment", user_id)
        return [Comment.model_validate(c) for c in post.comments]

    async def remove_comment(
        self, db: AsyncSession, user_id: uuid.UUID, post_id: uuid.UUID, comment_id: uuid.UUID
    ) -> List[Comment]:
        """
        Raises:
            NotFoundError:  no such post, or no such comment on it
            ForbiddenError: caller did not write the comment
        """
        post = await self._require_post(db, post_id)
        comments = post.comments or []
        target = next((c for c in comments if c.get("id") == str(comment_id)), None)
        if target is None:
            raise NotFoundError(
                resource="comment",
                message="Comment does not exist",
                context={"post_id": str(post_id), "comment_id": str(comment_id)},
            )
        if target.get("user") != str(user_id):
            raise ForbiddenError(context={"post_id": str(post_id), "comment_id": str(comment_id)})

        post.comments = [c for c in comments if c.get("id") != str(comment_id)]
        await self._flush(db, "remove comment", user_id)
        return [Comment.model_validate(c) for c in post.comments]

    # ── Internals ─────────────────────────────────────────────────────────

    async def _require_post(self, db: AsyncSession, post_id: uuid.UUID) -> Post:
        try:
            post = await db.get(Post, post_id)
        except SQLAlchemyError as e:
            logger.error("Database error loading post %s: %s", post_id, str(e))
            raise StorageError(context={"post_id": str(post_id)})
        if post is None:
            raise NotFoundError(resource="post", message="Post not found", context={"post_id": str(post_id)})
        return post

    async def _get_author(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        try:
            user = await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error loading user %s: %s", user_id, str(e))
            raise StorageError(context={"user_id": str(user_id)})
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    @staticmethod
    async def _flush(db: AsyncSession, operation: str, user_id: uuid.UUID) -> None:
        try:
            await db.flush()
        except (StaleDataError, IntegrityError) as e:
            logger.warning("Concurrent modification during %s by user %s", operation, user_id)
            raise ConflictError(context={"operation": operation, "error_type": type(e).__name__})
        except SQLAlchemyError as e:
            logger.error("Database error during %s by user %s: %s", operation, user_id, str(e))
            raise StorageError(context={"operation": operation})


# Stateless; one instance shared by all requests
post_service = PostService()
