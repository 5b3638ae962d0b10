"""
DevConnector Backend: Post Service Unit Tests
==============================================

What we test:
    ✅ Posts and comments snapshot the author's name/avatar
    ✅ Likes are unique per user; like then unlike restores the list
    ✅ Only authors may delete their post or comment
    ✅ Listing is newest first
    ✅ A lost optimistic-concurrency race surfaces as ConflictError
    ✅ Two sessions racing on one post: the stale writer gets ConflictError
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm.exc import StaleDataError

from devconnector.database import Base
from devconnector.exceptions import (
    AlreadyLikedError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    NotLikedError,
    ValidationError,
)
from devconnector.models.post import Post
from devconnector.models.user import User
from devconnector.services.post_service import PostService


async def make_user(db_session, user_service, token_service, name="Ann", email="ann@devs.io") -> uuid.UUID:
    token = await user_service.register(db_session, name, email, "secret1")
    return token_service.verify(token)


class TestCreatePost:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_new_post_has_author_snapshot_and_empty_lists(self, db_session, user_service, token_service):
        ann = await make_user(db_session, user_service, token_service)
        user = await db_session.get(User, ann)

        post = await self.service.create_post(db_session, ann, "hello")

        assert post.text == "hello"
        assert post.user == ann
        assert post.name == "Ann"
        assert post.avatar == user.avatar
        assert post.likes == []
        assert post.comments == []

    @pytest.mark.asyncio
    async def test_snapshot_not_updated_by_later_name_change(self, db_session, user_service, token_service):
        ann = await make_user(db_session, user_service, token_service)
        post = await self.service.create_post(db_session, ann, "hello")

        user = await db_session.get(User, ann)
        user.name = "Ann Renamed"
        await db_session.flush()

        assert (await self.service.get_post(db_session, post.id)).name == "Ann"

    @pytest.mark.asyncio
    async def test_empty_text_rejected(self, db_session, user_service, token_service):
        ann = await make_user(db_session, user_service, token_service)

        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_post(db_session, ann, "   ")
        assert exc_info.value.errors == {"text": "Text is required"}

    @pytest.mark.asyncio
    async def test_author_account_missing(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.create_post(db_session, uuid.uuid4(), "hello")


class TestReadPosts:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_list_newest_first(self, db_session, user_service, token_service):
        ann = await make_user(db_session, user_service, token_service)
        now = datetime.now(timezone.utc)
        for offset, text in ((2, "oldest"), (0, "newest"), (1, "middle")):
            db_session.add(Post(
                user_id=ann, text=text, name="Ann", avatar="",
                likes=[], comments=[], created_at=now - timedelta(minutes=offset),
            ))
        await db_session.flush()

        posts = await self.service.list_posts(db_session)

        assert [p.text for p in posts] == ["newest", "middle", "oldest"]

    @pytest.mark.asyncio
    async def test_get_missing_post(self, db_session):
        with pytest.raises(NotFoundError) as exc_info:
            await self.service.get_post(db_session, uuid.uuid4())
        assert exc_info.value.message == "Post not found"


class TestDeletePost:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_author_deletes_post(self, db_session, user_service, token_service):
        ann = await make_user(db_session, user_service, token_service)
        post = await self.service.create_post(db_session, ann, "hello")

        await self.service.delete_post(db_session, ann, post.id)

        with pytest.raises(NotFoundError):
            await self.service.get_post(db_session, post.id)

    @pytest.mark.asyncio
    async def test_other_user_cannot_delete(self, db_session, user_service, token_service):
        ann = await make_user(db_session, user_service, token_service)
        bob = await make_user(db_session, user_service, token_service, name="Bob", email="bob@devs.io")
        post = await self.service.create_post(db_session, ann, "hello")

        with pytest.raises(ForbiddenError):
            await self.service.delete_post(db_session, bob, post.id)

        assert await self.service.get_post(db_session, post.id) == post


class TestLikes:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_like_twice_rejected(self, db_session, user_service, token_service):
        ann = await make_user(db_session, user_service, token_service)
        post = await self.service.create_post(db_session, ann, "hello")

        likes = await self.service.like_post(db_session, ann, post.id)
        assert [like.user for like in likes] == [ann]

        with pytest.raises(AlreadyLikedError):
            await self.service.like_post(db_session, ann, post.id)
        assert len((await self.service.get_post(db_session, post.id)).likes) == 1

    @pytest.mark.asyncio
    async def test_like_then_unlike_restores_list(self, db_session, user_service, token_service):
        ann = await make_user(db_session, user_service, token_service)
        bob = await make_user(db_session, user_service, token_service, name="Bob", email="bob@devs.io")
        post = await self.service.create_post(db_session, ann, "hello")
        before = await self.service.like_post(db_session, bob, post.id)

        liked = await self.service.like_post(db_session, ann, post.id)
        assert [like.user for like in liked] == [ann, bob]

        after = await self.service.unlike_post(db_session, ann, post.id)
        assert after == before

    @pytest.mark.asyncio
    async def test_unlike_without_like(self, db_session, user_service, token_service):
        ann = await make_user(db_session, user_service, token_service)
        post = await self.service.create_post(db_session, ann, "hello")

        with pytest.raises(NotLikedError):
            await self.service.unlike_post(db_session, ann, post.id)

    @pytest.mark.asyncio
    async def test_like_missing_post(self, db_session, user_service, token_service):
        ann = await make_user(db_session, user_service, token_service)

        with pytest.raises(NotFoundError):
            await self.service.like_post(db_session, ann, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_concurrent_like_raises_conflict(self, mock_db_session):
        stored = MagicMock(spec=Post)
        stored.likes = []
        mock_db_session.get.return_value = stored
        mock_db_session.flush.side_effect = StaleDataError("0 rows matched")

        with pytest.raises(ConflictError):
            await self.service.like_post(mock_db_session, uuid.uuid4(), uuid.uuid4())


class TestComments:

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_comments_are_prepended_with_snapshot(self, db_session, user_service, token_service):
        ann = await make_user(db_session, user_service, token_service)
        bob = await make_user(db_session, user_service, token_service, name="Bob", email="bob@devs.io")
        post = await self.service.create_post(db_session, ann, "hello")

        await self.service.add_comment(db_session, ann, post.id, "first")
        comments = await self.service.add_comment(db_session, bob, post.id, "second")

        assert [c.text for c in comments] == ["second", "first"]
        assert comments[0].user == bob
        assert comments[0].name == "Bob"

    @pytest.mark.asyncio
    async def test_empty_comment_rejected(self, db_session, user_service, token_service):
        ann = await make_user(db_session, user_service, token_service)
        post = await self.service.create_post(db_session, ann, "hello")

        with pytest.raises(ValidationError):
            await self.service.add_comment(db_session, ann, post.id, "")

    @pytest.mark.asyncio
    async def test_author_removes_comment(self, db_session, user_service, token_service):
        ann = await make_user(db_session, user_service, token_service)
        post = await self.service.create_post(db_session, ann, "hello")
        comments = await self.service.add_comment(db_session, ann, post.id, "oops")

        remaining = await self.service.remove_comment(db_session, ann, post.id, comments[0].id)

        assert remaining == []

    @pytest.mark.asyncio
    async def test_other_user_cannot_remove_comment(self, db_session, user_service, token_service):
        ann = await make_user(db_session, user_service, token_service)
        bob = await make_user(db_session, user_service, token_service, name="Bob", email="bob@devs.io")
        post = await self.service.create_post(db_session, ann, "hello")
        comments = await self.service.add_comment(db_session, ann, post.id, "mine")

        with pytest.raises(ForbiddenError):
            await self.service.remove_comment(db_session, bob, post.id, comments[0].id)

    @pytest.mark.asyncio
    async def test_remove_missing_comment(self, db_session, user_service, token_service):
        ann = await make_user(db_session, user_service, token_service)
        post = await self.service.create_post(db_session, ann, "hello")

        with pytest.raises(NotFoundError) as exc_info:
            await self.service.remove_comment(db_session, ann, post.id, uuid.uuid4())
        assert exc_info.value.message == "Comment does not exist"


class TestVersionGuard:
    """Runs against a database file so two sessions hold separate connections."""

    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_stale_session_cannot_overwrite_a_newer_like(self, tmp_path, user_service, token_service):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'posts.db'}")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        session_factory = async_sessionmaker(engine, expire_on_commit=False)

        try:
            async with session_factory() as setup:
                ann = await make_user(setup, user_service, token_service)
                bob = await make_user(setup, user_service, token_service, name="Bob", email="bob@devs.io")
                post = await self.service.create_post(setup, ann, "hello")
                await setup.commit()

            async with session_factory() as slow, session_factory() as fast:
                loaded = await slow.get(Post, post.id)
                assert loaded.version == 1

                await self.service.like_post(fast, bob, post.id)
                await fast.commit()

                with pytest.raises(ConflictError):
                    await self.service.like_post(slow, ann, post.id)
                await slow.rollback()

            async with session_factory() as check:
                stored = await check.get(Post, post.id)
                assert stored.likes == [{"user": str(bob)}]
                assert stored.version == 2
        finally:
            await engine.dispose()
