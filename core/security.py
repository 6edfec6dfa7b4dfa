"""
Security utilities: password hashing, access tokens and one-time secrets.
"""

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from core.config import settings
from core.exceptions import Unauthenticated

logger = logging.getLogger(__name__)


@dataclass
class JWTPayload:
    """Decoded access-token claims."""
    user_id: int
    role: str
    expires_at: datetime


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Malformed password hash encountered")
        return False


def create_access_token(
    user_id: int,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT for a user.

    Args:
        user_id: Subject of the token
        role: Role at issue time (informational, the request re-loads the user)
        expires_delta: Lifetime, defaults to settings

    Returns:
        Encoded token
    """
    issued_at = datetime.now(timezone.utc)
    expires_at = issued_at + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims = {
        "sub": str(user_id),
        "role": role,
        "iat": issued_at,
        "exp": expires_at,
        "type": "access",
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> JWTPayload:
    """
    Verify and decode an access token.

    Raises:
        Unauthenticated: If the token is expired, malformed or has a bad signature
    """
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.info(f"Rejected access token: {e}")
        raise Unauthenticated("Invalid authentication token")

    if claims.get("type") != "access":
        raise Unauthenticated("Invalid authentication token")

    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError):
        raise Unauthenticated("Invalid authentication token")

    return JWTPayload(
        user_id=user_id,
        role=claims.get("role", ""),
        expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
    )


def generate_numeric_code(length: int = 6) -> str:
    """Generate a zero-padded random numeric code."""
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def hash_verification_code(code: str, subject: str) -> str:
    """
    Keyed hash of a one-time code, bound to its subject (e.g. the phone number).
    """
    message = f"{subject}:{code}".encode("utf-8")
    return hmac.new(
        settings.jwt_secret_key.encode("utf-8"), message, hashlib.sha256
    ).hexdigest()


def verify_code_hash(code: str, subject: str, expected_hash: str) -> bool:
    return hmac.compare_digest(hash_verification_code(code, subject), expected_hash)


def generate_token() -> str:
    """Opaque URL-safe token for links sent by email."""
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
