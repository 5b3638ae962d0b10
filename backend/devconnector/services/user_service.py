"""
DevConnector Backend: User Service (Credential Store)
=====================================================

What:  Registration, login and account lookup.
How:   bcrypt for salted password hashes (cost from `SecurityConfig`),
       TokenService for the bearer token returned on success, async
       SQLAlchemy for the `users` table.
Who:   POST /api/users, POST /api/auth, GET /api/auth.

Registration Flow:
    validate input → reject duplicate email → Gravatar URL → bcrypt hash
    → INSERT user → issue token

Login Flow:
    normalize email → SELECT user → bcrypt.checkpw → issue token
    Unknown email and wrong password raise the same InvalidCredentialsError.

Hashing and checking run in a worker thread, off the event loop.
"""

import logging
import uuid
from typing import Dict, Optional

import bcrypt
from email_validator import EmailNotValidError, validate_email
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from devconnector.config import SecurityConfig
from devconnector.exceptions import (
    DuplicateUserError,
    InvalidCredentialsError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from devconnector.models.user import User
from devconnector.schemas.user import UserResponse
from devconnector.services.avatar import gravatar_url
from devconnector.services.token_service import TokenService

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 30

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class UserService:
    """
    Account operations.

    Attributes:
        config:         Hashing cost and token settings.
        token_service:  Issues the token returned by register/login.
    """

    def __init__(self, config: SecurityConfig, token_service: Optional[TokenService] = None):
        self.config = config
        self.token_service = token_service or TokenService(config)

    # ── Password Hashing ──────────────────────────────────────────────────

    async def hash_password(self, password: str) -> str:
        """Salted bcrypt hash; a new random salt is generated per call."""
        salt = bcrypt.gensalt(rounds=self.config.bcrypt_rounds)
        hashed = await run_in_threadpool(bcrypt.hashpw, _password_bytes(password), salt)
        return hashed.decode("utf-8")

    async def verify_password(self, password: str, password_hash: str) -> bool:
        try:
            return await run_in_threadpool(
                bcrypt.checkpw, _password_bytes(password), password_hash.encode("utf-8")
            )
        except ValueError:
            # Stored value is not a bcrypt hash
            logger.error("Unreadable password hash in users table")
            return False

    # ── Validation ────────────────────────────────────────────────────────

    @staticmethod
    def validate_registration(name: str, email: str, password: str) -> None:
        """
        Collects every field failure and raises them together.

        Raises:
            ValidationError: with one message per offending field.
        """
        errors: Dict[str, str] = {}
        if not name or not name.strip():
            errors["name"] = "Name is required"
        try:
            validate_email((email or "").strip(), check_deliverability=False)
        except EmailNotValidError:
            errors["email"] = "Please include a valid email"
        if not password or not (PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH):
            errors["password"] = (
                f"Please enter a password between {PASSWORD_MIN_LENGTH} "
                f"and {PASSWORD_MAX_LENGTH} characters"
            )
        if errors:
            raise ValidationError.from_errors(errors)

    # ── Operations ────────────────────────────────────────────────────────

    async def register(self, db: AsyncSession, name: str, email: str, password: str) -> str:
        """
        Create an account and return a token for it.

        Raises:
            ValidationError:    empty name, malformed email, password length outside [6, 30]
            DuplicateUserError: the email already has an account
            StorageError:       the database failed
        """
        self.validate_registration(name, email, password)
        email = normalize_email(email)

        try:
            existing = await db.execute(select(User.id).where(User.email == email))
            if existing.scalar_one_or_none() is not None:
                raise DuplicateUserError()

            user = User(
                name=name.strip(),
                email=email,
                avatar=gravatar_url(email),
                password_hash=await self.hash_password(password),
            )
            db.add(user)
            await db.flush()
        except DuplicateUserError:
            raise
        except IntegrityError:
            # Lost the race against a concurrent registration of the same email
            raise DuplicateUserError(context={"source": "unique_constraint"})
        except SQLAlchemyError as e:
            logger.error("Database error registering user: %s", str(e))
            raise StorageError(context={"error_type": type(e).__name__})

        logger.info("Registered user %s", user.id)
        return self.token_service.issue(user.id)

    async def login(self, db: AsyncSession, email: str, password: str) -> str:
        """
        Check credentials and return a token.

        Raises:
            ValidationError:         malformed email or empty password
            InvalidCredentialsError: unknown email or wrong password (indistinguishable)
        """
        errors: Dict[str, str] = {}
        try:
            validate_email((email or "").strip(), check_deliverability=False)
        except EmailNotValidError:
            errors["email"] = "Please include a valid email"
        if not password:
            errors["password"] = "Password is required"
        if errors:
            raise ValidationError.from_errors(errors)

        try:
            result = await db.execute(select(User).where(User.email == normalize_email(email)))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error during login: %s", str(e))
            raise StorageError(context={"error_type": type(e).__name__})

        if user is None or not await self.verify_password(password, user.password_hash):
            logger.warning("Failed login attempt")
            raise InvalidCredentialsError()

        return self.token_service.issue(user.id)

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> UserResponse:
        """
        The account behind a verified token, without the password hash.

        Raises:
            NotFoundError: the account was deleted after the token was issued
        """
        try:
            user = await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching user %s: %s", user_id, str(e))
            raise StorageError(context={"user_id": str(user_id)})

        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return UserResponse.model_validate(user)
