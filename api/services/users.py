"""
User account services: registration, credentials, profile, profile résumé
and email verification.
"""

from typing import Any, Dict, Mapping, Optional
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import (
    Conflict,
    Expired,
    InvalidCode,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from core.integrations.email import EmailTemplates
from core.integrations.notifications import NotificationSender
from core.middleware.authentication import Actor
from core.middleware.authorization import authorize, HasPermission, HasRole, Permission
from core.security import generate_token, hash_password, hash_token, verify_password
from core.storage.base import BlobStore, UploadedFile, discard_blob
from core.utils.datetime import add_hours, ensure_aware, is_past, now
from core.utils.timeouts import call_collaborator
from core.utils.validators import (
    normalize_phone_number,
    validate_email,
    validate_resume,
    validate_url,
)
from database.models.users import User, UserRole

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

# Fields the owner may edit through update_profile
PROFILE_FIELDS = {
    "name",
    "organization_name",
    "phone",
    "bio",
    "address",
    "website",
    "location",
    "description",
}


def user_to_dict(user: User) -> Dict[str, Any]:
    """Convert user model to dictionary (owner's view, no credentials)."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "organization_name": user.organization_name,
        "phone": user.phone,
        "bio": user.bio,
        "address": user.address,
        "website": user.website,
        "location": user.location,
        "description": user.description,
        "phone_verified": user.phone_verified,
        "verified_phone": user.verified_phone,
        "email_verified": user.email_verified,
        "resume": {
            "id": user.resume_blob_id,
            "url": user.resume_url,
            "filename": user.resume_filename,
            "uploaded_at": ensure_aware(user.resume_uploaded_at),
        } if user.resume_blob_id else None,
        "created_at": ensure_aware(user.created_at),
    }


async def _load_user(session: AsyncSession, user_id: int) -> User:
    result = await session.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise NotFound("User not found")
    return user


def _normalize_email(email: str) -> str:
    valid, normalized = validate_email((email or "").strip())
    if not valid:
        raise ValidationError(f"Invalid email address: {normalized}")
    return normalized.lower()


async def register_user(
    session: AsyncSession,
    name: str,
    email: str,
    password: str,
    role: str | UserRole,
    organization_name: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create an account.

    Raises:
        ValidationError: Bad email, short password, unknown role, or a
            recruiter without an organization name
        Conflict: Email already registered
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required")

    try:
        role = UserRole(role)
    except ValueError:
        raise ValidationError(f"Unknown role '{role}'")

    organization_name = (organization_name or "").strip() or None
    if role == UserRole.RECRUITER and not organization_name:
        raise ValidationError("Organization name is required for recruiters")
    if role == UserRole.SEEKER:
        organization_name = None

    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    email = _normalize_email(email)

    existing = await session.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise Conflict("Email already registered")

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        organization_name=organization_name,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise Conflict("Email already registered")

    logger.info(f"User {user.id} registered as {role.value}")
    return user_to_dict(user)


async def authenticate(session: AsyncSession, email: str, password: str) -> Dict[str, Any]:
    """
    Check credentials.

    Raises:
        Unauthenticated: Unknown email or wrong password (same message for both)
    """
    result = await session.execute(
        select(User).where(User.email == (email or "").strip().lower())
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(password or "", user.password_hash):
        logger.warning("Failed login attempt")
        raise Unauthenticated("Invalid email or password")

    return user_to_dict(user)


async def get_profile(session: AsyncSession, actor: Optional[Actor]) -> Dict[str, Any]:
    authorize(actor, HasPermission(Permission.PROFILE_READ))
    return user_to_dict(await _load_user(session, actor.id))


async def update_profile(
    session: AsyncSession,
    actor: Optional[Actor],
    changes: Mapping[str, Any],
) -> Dict[str, Any]:
    """
    Update the actor's own profile.

    Role, email and verification state are not editable here. Editing the
    profile phone does not affect the verified phone. Organization changes
    do not rewrite the snapshot stored on existing jobs.

    Raises:
        ValidationError: Non-editable field, empty name, recruiter without
            organization, bad phone or website
    """
    authorize(actor, HasPermission(Permission.PROFILE_UPDATE))

    blocked = set(changes) - PROFILE_FIELDS
    if blocked:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(blocked))}")

    user = await _load_user(session, actor.id)
    values: Dict[str, Any] = {}

    for field, raw in changes.items():
        value = raw.strip() if isinstance(raw, str) else raw
        values[field] = value or None

    if "name" in values and not values["name"]:
        raise ValidationError("Name is required")

    if "organization_name" in values:
        if user.role == UserRole.SEEKER:
            raise ValidationError("Only recruiters have an organization name")
        if not values["organization_name"]:
            raise ValidationError("Organization name is required for recruiters")

    if values.get("phone"):
        values["phone"] = normalize_phone_number(values["phone"])

    if values.get("website"):
        valid, error = validate_url(values["website"])
        if not valid:
            raise ValidationError(error)

    for field, value in values.items():
        setattr(user, field, value)
    await session.commit()

    logger.info(f"User {user.id} updated profile fields: {', '.join(sorted(values))}")
    return user_to_dict(await _load_user(session, actor.id))


async def upload_profile_resume(
    session: AsyncSession,
    blob_store: BlobStore,
    actor: Optional[Actor],
    resume: Optional[UploadedFile],
) -> Dict[str, Any]:
    """
    Store or replace the seeker's profile résumé. The previous blob is
    deleted after the new reference is committed.

    Raises:
        Forbidden: Actor is not a seeker
        ValidationError: Missing, oversized or non-PDF file
        UpstreamError: Upload failed or timed out
    """
    authorize(actor, HasRole(UserRole.SEEKER), HasPermission(Permission.RESUME_MANAGE))

    if resume is None:
        raise ValidationError("Resume file is required")
    validate_resume(resume.filename, resume.content_type, resume.data)

    user = await _load_user(session, actor.id)
    previous_blob_id = user.resume_blob_id

    blob = await call_collaborator(
        blob_store.upload(
            resume.data,
            resume.filename,
            content_type=resume.content_type,
            metadata={"user_id": user.id, "kind": "profile_resume"},
        ),
        "Resume upload",
    )

    try:
        user.resume_blob_id = blob.id
        user.resume_url = blob.url
        user.resume_filename = resume.filename
        user.resume_uploaded_at = now()
        await session.commit()
    except Exception:
        await session.rollback()
        await discard_blob(blob_store, blob.id)
        raise

    if previous_blob_id and previous_blob_id != blob.id:
        await discard_blob(blob_store, previous_blob_id)

    logger.info(f"User {user.id} uploaded profile resume")
    return user_to_dict(user)


async def delete_profile_resume(
    session: AsyncSession,
    blob_store: BlobStore,
    actor: Optional[Actor],
) -> Dict[str, Any]:
    """
    Remove the seeker's profile résumé.

    Raises:
        NotFound: No résumé on the profile
    """
    authorize(actor, HasRole(UserRole.SEEKER), HasPermission(Permission.RESUME_MANAGE))

    user = await _load_user(session, actor.id)
    blob_id = user.resume_blob_id
    if not blob_id:
        raise NotFound("No resume on profile")

    user.resume_blob_id = None
    user.resume_url = None
    user.resume_filename = None
    user.resume_uploaded_at = None
    await session.commit()

    await discard_blob(blob_store, blob_id)

    logger.info(f"User {user.id} deleted profile resume")
    return user_to_dict(user)


async def request_email_verification(
    session: AsyncSession,
    sender: NotificationSender,
    actor: Optional[Actor],
) -> Dict[str, Any]:
    """
    Email a single-use verification link. Only the token's hash is stored,
    and only after the email was accepted by the mail server.

    Raises:
        Conflict: Email already verified
        UpstreamError: Email could not be sent; nothing is stored
    """
    authorize(actor, HasPermission(Permission.EMAIL_VERIFY))

    user = await _load_user(session, actor.id)
    if user.email_verified:
        raise Conflict("Email already verified")

    token = generate_token()
    expires_at = add_hours(now(), settings.email_verification_ttl_hours)
    verify_url = f"{settings.frontend_url.rstrip('/')}/auth/verify-email?token={token}"
    template = EmailTemplates.email_verification(
        user.name, verify_url, settings.email_verification_ttl_hours
    )

    await call_collaborator(
        sender.send_email(user.email, template["subject"], template["body"], html=True),
        "Verification email",
    )

    user.email_verification_token_hash = hash_token(token)
    user.email_verification_expires_at = expires_at
    await session.commit()

    logger.info(f"Email verification sent for user {user.id}")
    return {"email": user.email, "expires_at": expires_at}


async def confirm_email_verification(session: AsyncSession, token: str) -> Dict[str, Any]:
    """
    Consume an email verification token.

    Raises:
        InvalidCode: Unknown or already used token
        Expired: Token expired; it is cleared
    """
    if not token:
        raise InvalidCode("Invalid verification token")

    token_hash = hash_token(token)
    result = await session.execute(
        select(User)
        .where(User.email_verification_token_hash == token_hash)
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise InvalidCode("Invalid verification token")

    cleared = {"email_verification_token_hash": None, "email_verification_expires_at": None}
    expires_at = user.email_verification_expires_at

    if expires_at is None or is_past(expires_at):
        await session.execute(
            update(User)
            .where(User.id == user.id, User.email_verification_token_hash == token_hash)
            .values(**cleared)
            .execution_options(synchronize_session=False)
        )
        await session.commit()
        raise Expired("Verification link has expired, request a new one")

    result = await session.execute(
        update(User)
        .where(User.id == user.id, User.email_verification_token_hash == token_hash)
        .values(email_verified=True, **cleared)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await session.rollback()
        raise InvalidCode("Invalid verification token")
    await session.commit()

    logger.info(f"User {user.id} verified email")
    return {"email": user.email, "email_verified": True}
