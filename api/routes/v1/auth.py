"""
Authentication endpoints.

Provides:
- Email/password signup and login (bearer access token)
- Current user lookup
- Email verification
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_notification_sender, require_actor, require_permission
from api.schemas.auth import (
    EmailVerificationConfirm,
    EmailVerificationResult,
    EmailVerificationSent,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
)
from api.schemas.users import UserResponse
from api.services import users as user_service
from core.config import settings
from core.integrations.notifications import NotificationSender
from core.middleware.authentication import Actor
from core.middleware.authorization import Permission
from core.security import create_access_token
from database.engine import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def _token_response(user: dict) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user["id"], user["role"]),
        expires_in=settings.access_token_expire_minutes * 60,
        user=user,
    )


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create a seeker or recruiter account. Recruiters must give an organization name.",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.register_user(
        db,
        name=body.name,
        email=body.email,
        password=body.password,
        role=body.role,
        organization_name=body.organization_name,
    )
    return _token_response(user)


@router.post(
    "/token",
    response_model=TokenResponse,
    summary="Log In",
    description="Exchange email and password for a bearer token.",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.authenticate(db, body.email, body.password)
    logger.info(f"User {user['id']} logged in")
    return _token_response(user)


@router.get("/me", response_model=UserResponse, summary="Current User")
async def me(
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_profile(db, actor)


@router.post(
    "/verify-email/request",
    response_model=EmailVerificationSent,
    summary="Send Verification Email",
)
async def request_email_verification(
    actor: Actor = Depends(require_permission(Permission.EMAIL_VERIFY)),
    db: AsyncSession = Depends(get_db),
    sender: NotificationSender = Depends(get_notification_sender),
):
    """Email a single-use verification link to the current user."""
    return await user_service.request_email_verification(db, sender, actor)


@router.post(
    "/verify-email/confirm",
    response_model=EmailVerificationResult,
    summary="Confirm Email",
    description="Consume the token from a verification link. No login required.",
)
async def confirm_email_verification(
    body: EmailVerificationConfirm,
    db: AsyncSession = Depends(get_db),
):
    return await user_service.confirm_email_verification(db, body.token)
