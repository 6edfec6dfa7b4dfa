"""User and profile Pydantic schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from api.schemas.common import ResumeInfo


class ProfileUpdate(BaseModel):
    """
    Editable profile fields. Unknown fields are rejected so role, email and
    verification state cannot be changed through this endpoint.
    """

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, max_length=255)
    organization_name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=32, description="Profile contact number")
    bio: Optional[str] = Field(None, max_length=5000)
    address: Optional[str] = Field(None, max_length=1000)
    website: Optional[str] = Field(None, max_length=2048)
    location: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)


class UserResponse(BaseModel):
    """User information response (owner's view)."""

    id: int
    name: str
    email: str
    role: str = Field(description="seeker or recruiter")
    organization_name: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    phone_verified: bool = False
    verified_phone: Optional[str] = None
    email_verified: bool = False
    resume: Optional[ResumeInfo] = None
    created_at: Optional[datetime] = None
