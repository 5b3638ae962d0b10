"""
DevConnector Backend: Post Schemas
===================================

`name`/`avatar` on posts and comments are the author's values at write time.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field


class PostCreate(BaseModel):
    """Body of POST /api/posts."""
    text: Optional[str] = Field(default=None, description="Post body, required")


class CommentCreate(BaseModel):
    """Body of POST /api/posts/comment/{id}."""
    text: Optional[str] = Field(default=None, description="Comment body, required")


class Like(BaseModel):
    user: uuid.UUID


class Comment(BaseModel):
    id: uuid.UUID
    user: uuid.UUID
    text: str
    name: str
    avatar: str
    date: datetime


class PostResponse(BaseModel):
    id: uuid.UUID
    user: uuid.UUID = Field(validation_alias=AliasChoices("user_id", "user"))
    text: str
    name: str
    avatar: str
    likes: List[Like] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)
    date: datetime = Field(validation_alias=AliasChoices("created_at", "date"))

    model_config = {"from_attributes": True}
