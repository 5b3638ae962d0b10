"""
DevConnector Backend: Profile Service
======================================

What:  Profile upsert, experience/education list edits, public reads and
       account deletion.
Who:   The /api/profile route handlers.

Mutation Rules:
    upsert_profile    sparse patch: only non-empty fields are written, social
                      links are merged key by key; creates the profile on the
                      first call for a user
    add_*             entry gets a fresh id and is prepended (newest first)
    remove_*          entry is located by id; a miss is a NotFoundError
    delete_account    removes the user's posts, profile and user row

Concurrency:
    Each edit is load → modify → flush. The flush UPDATE is guarded by the
    profile's version column, so a concurrent edit that committed in between
    makes this one fail with ConflictError instead of being overwritten.
    JSON columns are always re-assigned (never mutated in place) so the
    change is tracked.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from devconnector.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from devconnector.models.post import Post
from devconnector.models.profile import Profile
from devconnector.models.user import User
from devconnector.schemas.profile import (
    EducationCreate,
    ExperienceCreate,
    ProfileResponse,
    ProfileUpsertRequest,
)

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("company", "website", "location", "bio", "status", "githubusername")
SOCIAL_PLATFORMS = ("youtube", "twitter", "facebook", "linkedin", "instagram")


def split_skills(skills: str) -> List[str]:
    """'python, sql ,go' → ['python', 'sql', 'go']; order kept, duplicates kept."""
    return [skill.strip() for skill in skills.split(",")]


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class ProfileService:
    """
    Business logic for profiles.

    Every public method takes the request's AsyncSession and returns
    response models; commit is left to the session dependency.
    """

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_own_profile(self, db: AsyncSession, user_id: uuid.UUID) -> ProfileResponse:
        """Raises NotFoundError when the user has not created a profile yet."""
        profile = await self._load_profile(db, user_id)
        if profile is None:
            raise NotFoundError(resource="profile", message="There is no profile for this user")
        return ProfileResponse.model_validate(profile)

    async def get_public_profile(self, db: AsyncSession, user_id: uuid.UUID) -> ProfileResponse:
        """Profile of any user by user id. Raises NotFoundError when absent."""
        profile = await self._load_profile(db, user_id)
        if profile is None:
            raise NotFoundError(resource="profile", message="Profile not found")
        return ProfileResponse.model_validate(profile)

    async def list_profiles(self, db: AsyncSession) -> List[ProfileResponse]:
        try:
            result = await db.execute(select(Profile).order_by(Profile.created_at))
            profiles = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing profiles: %s", str(e))
            raise StorageError(context={"error_type": type(e).__name__})
        return [ProfileResponse.model_validate(p) for p in profiles]

    # ── Upsert ────────────────────────────────────────────────────────────

    async def upsert_profile(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        fields: ProfileUpsertRequest,
    ) -> ProfileResponse:
        """
        Create or sparsely update the caller's profile.

        Raises:
            ValidationError: status or skills missing
            NotFoundError:   the account no longer exists
            ConflictError:   a concurrent request created/updated the profile first
        """
        errors: Dict[str, str] = {}
        if _blank(fields.status):
            errors["status"] = "Status is required"
        if _blank(fields.skills):
            errors["skills"] = "Skills is required"
        if errors:
            raise ValidationError.from_errors(errors)

        patch: Dict[str, Any] = {
            name: getattr(fields, name)
            for name in PROFILE_FIELDS
            if not _blank(getattr(fields, name))
        }
        patch["skills"] = split_skills(fields.skills)
        social_patch = {
            platform: getattr(fields, platform)
            for platform in SOCIAL_PLATFORMS
            if not _blank(getattr(fields, platform))
        }

        profile = await self._load_profile(db, user_id)

        if profile is not None:
            for name, value in patch.items():
                setattr(profile, name, value)
            if social_patch:
                profile.social = {**(profile.social or {}), **social_patch}
            await self._flush(db, "update profile", user_id)
            logger.info("Profile updated for user %s (fields=%s)", user_id, sorted(patch))
            return ProfileResponse.model_validate(profile)

        user = await self._get_user(db, user_id)
        profile = Profile(
            user_id=user_id,
            user=user,
            social=social_patch,
            experience=[],
            education=[],
            **patch,
        )
        db.add(profile)
        await self._flush(db, "create profile", user_id)
        logger.info("Profile created for user %s", user_id)
        return ProfileResponse.model_validate(profile)

    # ── Experience / Education ────────────────────────────────────────────

    async def add_experience(
        self, db: AsyncSession, user_id: uuid.UUID, entry: ExperienceCreate
    ) -> ProfileResponse:
        """Raises ValidationError (title, company, from required) or NotFoundError (no profile)."""
        errors: Dict[str, str] = {}
        if _blank(entry.title):
            errors["title"] = "Title is required"
        if _blank(entry.company):
            errors["company"] = "Company is required"
        if entry.from_ is None:
            errors["from"] = "From date is required"
        if errors:
            raise ValidationError.from_errors(errors)

        document = {
            "id": str(uuid.uuid4()),
            "title": entry.title.strip(),
            "company": entry.company.strip(),
            "location": entry.location,
            "from": entry.from_.isoformat(),
            "to": entry.to.isoformat() if entry.to else None,
            "current": entry.current,
            "description": entry.description,
        }
        profile = await self._require_profile(db, user_id)
        profile.experience = [document, *(profile.experience or [])]
        await self._flush(db, "add experience", user_id)
        return ProfileResponse.model_validate(profile)

    async def remove_experience(
        self, db: AsyncSession, user_id: uuid.UUID, entry_id: uuid.UUID
    ) -> ProfileResponse:
        profile = await self._require_profile(db, user_id)
        profile.experience = self._without_entry(profile.experience, entry_id, "experience")
        await self._flush(db, "remove experience", user_id)
        return ProfileResponse.model_validate(profile)

    async def add_education(
        self, db: AsyncSession, user_id: uuid.UUID, entry: EducationCreate
    ) -> ProfileResponse:
        """Raises ValidationError (school, degree, fieldofstudy, from required) or NotFoundError."""
        errors: Dict[str, str] = {}
        if _blank(entry.school):
            errors["school"] = "School is required"
        if _blank(entry.degree):
            errors["degree"] = "Degree is required"
        if _blank(entry.fieldofstudy):
            errors["fieldofstudy"] = "Field of study is required"
        if entry.from_ is None:
            errors["from"] = "From date is required"
        if errors:
            raise ValidationError.from_errors(errors)

        document = {
            "id": str(uuid.uuid4()),
            "school": entry.school.strip(),
            "degree": entry.degree.strip(),
            "fieldofstudy": entry.fieldofstudy.strip(),
            "from": entry.from_.isoformat(),
            "to": entry.to.isoformat() if entry.to else None,
            "current": entry.current,
            "description": entry.description,
        }
        profile = await self._require_profile(db, user_id)
        profile.education = [document, *(profile.education or [])]
        await self._flush(db, "add education", user_id)
        return ProfileResponse.model_validate(profile)

    async def remove_education(
        self, db: AsyncSession, user_id: uuid.UUID, entry_id: uuid.UUID
    ) -> ProfileResponse:
        profile = await self._require_profile(db, user_id)
        profile.education = self._without_entry(profile.education, entry_id, "education")
        await self._flush(db, "remove education", user_id)
        return ProfileResponse.model_validate(profile)

    # ── Account Deletion ──────────────────────────────────────────────────

    async def delete_account(self, db: AsyncSession, user_id: uuid.UUID) -> None:
        """
        Remove the user's posts, profile and user row.

        Likes and comments the user left on other people's posts are kept.
        """
        try:
            posts = await db.execute(delete(Post).where(Post.user_id == user_id))
            await db.execute(delete(Profile).where(Profile.user_id == user_id))
            await db.execute(delete(User).where(User.id == user_id))
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting account %s: %s", user_id, str(e))
            raise StorageError(context={"user_id": str(user_id)})
        logger.info("Deleted account %s (%d posts removed)", user_id, posts.rowcount or 0)

    # ── Internals ─────────────────────────────────────────────────────────

    async def _load_profile(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[Profile]:
        try:
            result = await db.execute(select(Profile).where(Profile.user_id == user_id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error loading profile for %s: %s", user_id, str(e))
            raise StorageError(context={"user_id": str(user_id)})

    async def _require_profile(self, db: AsyncSession, user_id: uuid.UUID) -> Profile:
        profile = await self._load_profile(db, user_id)
        if profile is None:
            raise NotFoundError(resource="profile", message="There is no profile for this user")
        return profile

    async def _get_user(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        try:
            user = await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error loading user %s: %s", user_id, str(e))
            raise StorageError(context={"user_id": str(user_id)})
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    @staticmethod
    def _without_entry(
        entries: Optional[List[Dict[str, Any]]], entry_id: uuid.UUID, kind: str
    ) -> List[Dict[str, Any]]:
        entries = entries or []
        remaining = [e for e in entries if e.get("id") != str(entry_id)]
        if len(remaining) == len(entries):
            raise NotFoundError(resource=kind, resource_id=str(entry_id))
        return remaining

    @staticmethod
    async def _flush(db: AsyncSession, operation: str, user_id: uuid.UUID) -> None:
        try:
            await db.flush()
        except (StaleDataError, IntegrityError) as e:
            logger.warning("Concurrent modification during %s for user %s", operation, user_id)
            raise ConflictError(context={"operation": operation, "error_type": type(e).__name__})
        except SQLAlchemyError as e:
            logger.error("Database error during %s for user %s: %s", operation, user_id, str(e))
            raise StorageError(context={"operation": operation})


# Stateless; one instance shared by all requests
profile_service = ProfileService()
