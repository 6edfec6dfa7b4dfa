"""Authentication and verification Pydantic schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from api.schemas.users import UserResponse
from database.models.users import UserRole


class RegisterRequest(BaseModel):
    """User signup request."""

    name: str = Field(max_length=255)
    email: str = Field(max_length=255)
    password: str = Field(max_length=128)
    role: UserRole
    organization_name: Optional[str] = Field(None, max_length=255, description="Required for recruiters")


class LoginRequest(BaseModel):
    """User login request."""

    email: str
    password: str


class TokenResponse(BaseModel):
    """Authentication response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Seconds until the token expires")
    user: UserResponse


class EmailVerificationConfirm(BaseModel):
    token: str = Field(min_length=1)


class EmailVerificationSent(BaseModel):
    email: str
    expires_at: datetime


class EmailVerificationResult(BaseModel):
    email: str
    email_verified: bool


class PhoneCodeRequest(BaseModel):
    """Ask for a verification code on WhatsApp."""

    phone_number: str = Field(min_length=1, max_length=32, description="Number as typed, e.g. 0812-345-6789")


class PhoneCodeConfirm(BaseModel):
    code: str = Field(min_length=1, max_length=12)


class PhoneCodeSent(BaseModel):
    phone_number: str = Field(description="Normalized, country-coded digits")
    expires_at: datetime
    expires_in: int


class PhoneVerificationResult(BaseModel):
    phone_verified: bool
    phone_number: str
    verified_at: datetime


class PhoneVerificationStatus(BaseModel):
    phone_verified: bool
    phone_number: Optional[str] = None
    verified_at: Optional[datetime] = None
    code_pending: bool = False
    pending_phone_number: Optional[str] = None
    code_expires_at: Optional[datetime] = None
