"""
DevConnector Backend: Account Schemas
======================================

Request bodies for registration/login and the public view of a user.

Request fields are intentionally permissive (missing → empty string):
UserService owns the validation rules so the same messages are produced
whether it is called over HTTP or directly.
"""

import uuid
from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field


class RegisterRequest(BaseModel):
    """Body of POST /api/users."""
    name: str = Field(default="", description="Display name")
    email: str = Field(default="", description="Login email, must be unique")
    password: str = Field(default="", description="6 to 30 characters")


class LoginRequest(BaseModel):
    """Body of POST /api/auth."""
    email: str = Field(default="")
    password: str = Field(default="")


class TokenResponse(BaseModel):
    """Bearer token handed out by registration and login."""
    token: str


class UserResponse(BaseModel):
    """A user without the password hash (GET /api/auth)."""
    id: uuid.UUID
    name: str
    email: str
    avatar: str
    date: datetime = Field(validation_alias=AliasChoices("created_at", "date"))

    model_config = {"from_attributes": True}
