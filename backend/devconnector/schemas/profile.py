"""
DevConnector Backend: Profile Schemas
======================================

What:  Request bodies for profile upsert and experience/education entries,
       and the profile response returned by every profile endpoint.

Field naming follows the public API (`githubusername`, `fieldofstudy`,
`from`, `to`). Profile upserts also take the camel-cased `githubUsername`
that web clients send. `from` is a Python keyword, so the attribute is `from_`
with alias "from"; both spellings are accepted on input.
"""

import datetime as dt
import uuid
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ProfileUpsertRequest(BaseModel):
    """
    Body of POST /api/profile.

    Only non-empty fields are written (sparse patch). `status` and `skills`
    are required; `skills` is a comma-separated string.
    """
    company: Optional[str] = None
    website: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    status: Optional[str] = None
    githubusername: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("githubUsername", "githubusername")
    )
    skills: Optional[str] = Field(default=None, description="Comma-separated, e.g. 'python, sql'")
    youtube: Optional[str] = None
    twitter: Optional[str] = None
    facebook: Optional[str] = None
    linkedin: Optional[str] = None
    instagram: Optional[str] = None


class ExperienceCreate(BaseModel):
    """Body of PUT /api/profile/experience. title, company and from are required."""
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    from_: Optional[dt.date] = Field(default=None, alias="from")
    to: Optional[dt.date] = None
    current: bool = False
    description: Optional[str] = None

    model_config = {"populate_by_name": True}


class EducationCreate(BaseModel):
    """Body of PUT /api/profile/education. school, degree, fieldofstudy and from are required."""
    school: Optional[str] = None
    degree: Optional[str] = None
    fieldofstudy: Optional[str] = None
    from_: Optional[dt.date] = Field(default=None, alias="from")
    to: Optional[dt.date] = None
    current: bool = False
    description: Optional[str] = None

    model_config = {"populate_by_name": True}


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ExperienceEntry(BaseModel):
    id: uuid.UUID
    title: str
    company: str
    location: Optional[str] = None
    from_: dt.date = Field(alias="from")
    to: Optional[dt.date] = None
    current: bool = False
    description: Optional[str] = None

    model_config = {"populate_by_name": True}


class EducationEntry(BaseModel):
    id: uuid.UUID
    school: str
    degree: str
    fieldofstudy: str
    from_: dt.date = Field(alias="from")
    to: Optional[dt.date] = None
    current: bool = False
    description: Optional[str] = None

    model_config = {"populate_by_name": True}


class SocialLinks(BaseModel):
    youtube: Optional[str] = None
    twitter: Optional[str] = None
    facebook: Optional[str] = None
    linkedin: Optional[str] = None
    instagram: Optional[str] = None


class ProfileOwner(BaseModel):
    """Name and avatar joined from the user row at read time."""
    id: uuid.UUID
    name: str
    avatar: str

    model_config = {"from_attributes": True}


class ProfileResponse(BaseModel):
    id: uuid.UUID
    user: ProfileOwner
    company: Optional[str] = None
    website: Optional[str] = None
    location: Optional[str] = None
    status: str
    bio: Optional[str] = None
    githubusername: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    social: SocialLinks = Field(default_factory=SocialLinks)
    experience: List[ExperienceEntry] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    date: dt.datetime = Field(validation_alias=AliasChoices("created_at", "date"))

    model_config = {"from_attributes": True}
