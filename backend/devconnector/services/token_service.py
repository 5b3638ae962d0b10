"""
DevConnector Backend: Token Service
====================================

What:  Issues and verifies the signed, time-limited bearer tokens.
How:   PyJWT, HMAC signature (HS256 by default). The payload is

           {"user": {"id": "<uuid>"}, "iat": <issued>, "exp": <issued + lifetime>}

       Nothing else is embedded: no email, no password material.
Who:   UserService (issue after registration/login) and the Auth Gate
       (verify on every protected request).

Stateless: there is no token table and no revocation list. A token stays
valid until it expires, even if the account is deleted in the meantime.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from devconnector.config import SecurityConfig
from devconnector.exceptions import ExpiredTokenError, InvalidTokenError

logger = logging.getLogger(__name__)


class TokenService:
    """Signs and checks bearer tokens with the secret from `SecurityConfig`."""

    def __init__(self, config: SecurityConfig):
        self.config = config

    def issue(self, user_id: uuid.UUID, issued_at: Optional[datetime] = None) -> str:
        """
        Produce a token for `user_id`.

        Args:
            user_id:   The account the token identifies.
            issued_at: Override for the issue time (defaults to now, UTC).

        Returns:
            The encoded JWT string.
        """
        now = issued_at or datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "user": {"id": str(user_id)},
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self.config.token_lifetime)).timestamp()),
        }
        return jwt.encode(payload, self.config.jwt_secret, algorithm=self.config.jwt_algorithm)

    def verify(self, token: str) -> uuid.UUID:
        """
        Check signature and expiry and return the embedded user id.

        Raises:
            ExpiredTokenError: Signature valid but `exp` has passed.
            InvalidTokenError: Malformed token, bad signature, or no usable user id.
        """
        try:
            payload = jwt.decode(
                token,
                self.config.jwt_secret,
                algorithms=[self.config.jwt_algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError()
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(context={"reason": type(e).__name__})

        user = payload.get("user")
        raw_id = user.get("id") if isinstance(user, dict) else None
        if not isinstance(raw_id, str):
            raise InvalidTokenError(context={"reason": "missing user id"})
        try:
            return uuid.UUID(raw_id)
        except ValueError:
            raise InvalidTokenError(context={"reason": "malformed user id"})
