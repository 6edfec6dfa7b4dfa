"""
Phone verification over the WhatsApp relay.

unverified -> code-issued -> verified. A six digit code is sent first and
only its keyed hash is stored once delivery succeeded. Every write that
consumes or invalidates a code is conditional on the stored hash, so a
code replaced by a newer request can no longer be used.
"""

from typing import Any, Dict, Optional
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import Expired, InvalidCode, NotFound
from core.integrations.notifications import NotificationSender
from core.middleware.authentication import Actor
from core.middleware.authorization import authorize, HasPermission, Permission
from core.security import generate_numeric_code, hash_verification_code, verify_code_hash
from core.utils.datetime import add_seconds, ensure_aware, is_past, now
from core.utils.timeouts import call_collaborator
from core.utils.validators import normalize_phone_number
from database.models.users import User

logger = logging.getLogger(__name__)

CODE_LENGTH = 6

CLEARED_PENDING_STATE = {
    "pending_phone_code_hash": None,
    "pending_phone_number": None,
    "pending_phone_code_issued_at": None,
    "pending_phone_code_expires_at": None,
    "phone_code_failed_attempts": 0,
}


async def _load_user(session: AsyncSession, user_id: int) -> User:
    result = await session.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise NotFound("User not found")
    return user


async def _write_if_code_unchanged(
    session: AsyncSession, user_id: int, observed_hash: str, values: Dict[str, Any]
) -> bool:
    result = await session.execute(
        update(User)
        .where(User.id == user_id, User.pending_phone_code_hash == observed_hash)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await session.rollback()
        return False
    await session.commit()
    return True


async def request_code(
    session: AsyncSession,
    sender: NotificationSender,
    actor: Optional[Actor],
    phone_number: str,
) -> Dict[str, Any]:
    """
    Send a verification code to a phone number.

    Args:
        session: Database session
        sender: Notification sender
        actor: Authenticated user
        phone_number: Number as typed; normalized to country-coded digits

    Returns:
        Target number and code expiry

    Raises:
        ValidationError: Number cannot be normalized
        UpstreamError: Relay failed or timed out; nothing is stored
    """
    authorize(actor, HasPermission(Permission.PHONE_VERIFY))

    canonical = normalize_phone_number(phone_number)
    code = generate_numeric_code(CODE_LENGTH)

    await call_collaborator(sender.send_code(canonical, code), "Verification code delivery")

    issued_at = now()
    expires_at = add_seconds(issued_at, settings.phone_code_ttl_seconds)

    # Replaces any earlier unconsumed code
    await session.execute(
        update(User)
        .where(User.id == actor.id)
        .values(
            pending_phone_code_hash=hash_verification_code(code, canonical),
            pending_phone_number=canonical,
            pending_phone_code_issued_at=issued_at,
            pending_phone_code_expires_at=expires_at,
            phone_code_failed_attempts=0,
        )
        .execution_options(synchronize_session=False)
    )
    await session.commit()

    logger.info(f"Verification code issued for user {actor.id}")
    return {
        "phone_number": canonical,
        "expires_at": expires_at,
        "expires_in": settings.phone_code_ttl_seconds,
    }


async def confirm_code(
    session: AsyncSession,
    actor: Optional[Actor],
    code: str,
) -> Dict[str, Any]:
    """
    Check a code and mark the phone verified.

    Raises:
        InvalidCode: No pending code, wrong code, too many attempts, or the
            code was replaced meanwhile
        Expired: Code expired; the pending code is cleared
    """
    authorize(actor, HasPermission(Permission.PHONE_VERIFY))

    user = await _load_user(session, actor.id)
    observed_hash = user.pending_phone_code_hash

    if not observed_hash or not user.pending_phone_number:
        raise InvalidCode()

    expires_at = user.pending_phone_code_expires_at
    if expires_at is None or is_past(expires_at):
        await _write_if_code_unchanged(session, user.id, observed_hash, CLEARED_PENDING_STATE)
        logger.info(f"Expired verification code presented by user {user.id}")
        raise Expired("Verification code has expired, request a new code")

    candidate = (code or "").strip()
    if not verify_code_hash(candidate, user.pending_phone_number, observed_hash):
        attempts = user.phone_code_failed_attempts + 1
        if attempts >= settings.phone_code_max_attempts:
            await _write_if_code_unchanged(session, user.id, observed_hash, CLEARED_PENDING_STATE)
            logger.warning(f"User {user.id} exhausted verification attempts")
            raise InvalidCode("Too many failed attempts, request a new code")

        await _write_if_code_unchanged(
            session,
            user.id,
            observed_hash,
            {"phone_code_failed_attempts": User.phone_code_failed_attempts + 1},
        )
        logger.info(f"Wrong verification code from user {user.id} (attempt {attempts})")
        raise InvalidCode()

    verified_at = now()
    verified = await _write_if_code_unchanged(
        session,
        user.id,
        observed_hash,
        {
            **CLEARED_PENDING_STATE,
            "phone_verified": True,
            "verified_phone": user.pending_phone_number,
            "phone_verified_at": verified_at,
        },
    )
    if not verified:
        raise InvalidCode("Verification code was replaced, use the latest code")

    logger.info(f"User {user.id} verified phone number")
    return {
        "phone_verified": True,
        "phone_number": user.pending_phone_number,
        "verified_at": verified_at,
    }


async def get_status(session: AsyncSession, actor: Optional[Actor]) -> Dict[str, Any]:
    """Verification flag, verified number and any live pending code."""
    authorize(actor, HasPermission(Permission.PHONE_VERIFY))

    user = await _load_user(session, actor.id)
    expires_at = ensure_aware(user.pending_phone_code_expires_at)
    pending = bool(user.pending_phone_code_hash) and expires_at is not None and not is_past(expires_at)

    return {
        "phone_verified": user.phone_verified,
        "phone_number": user.verified_phone,
        "verified_at": ensure_aware(user.phone_verified_at),
        "code_pending": pending,
        "pending_phone_number": user.pending_phone_number if pending else None,
        "code_expires_at": expires_at if pending else None,
    }
