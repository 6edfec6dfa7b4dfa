"""
Authentication: resolve an inbound request to an authenticated actor.

The bearer token only carries the user id. The user row is re-loaded on
every request so role and verification flags are always current.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import Unauthenticated
from core.security import decode_access_token
from database.models.users import User, UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of an operation."""
    id: int
    role: UserRole
    name: str
    email: str
    organization_name: Optional[str] = None
    phone_verified: bool = False
    email_verified: bool = False

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(
            id=user.id,
            role=UserRole(user.role),
            name=user.name,
            email=user.email,
            organization_name=user.organization_name,
            phone_verified=bool(user.phone_verified),
            email_verified=bool(user.email_verified),
        )

    @property
    def is_recruiter(self) -> bool:
        return self.role == UserRole.RECRUITER

    @property
    def is_seeker(self) -> bool:
        return self.role == UserRole.SEEKER


def extract_token(request: Request) -> Optional[str]:
    """
    Extract JWT token from Authorization header.

    Args:
        request: FastAPI request

    Returns:
        JWT token or None
    """
    auth_header = request.headers.get("Authorization")

    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        return token or None

    return None


async def resolve_actor(db: AsyncSession, token: Optional[str]) -> Optional[Actor]:
    """
    Resolve a bearer token to an actor.

    Args:
        db: Database session
        token: Raw bearer token, or None for anonymous requests

    Returns:
        Actor, or None when no token was presented

    Raises:
        Unauthenticated: If a token was presented but is invalid, or its user no longer exists
    """
    if not token:
        return None

    payload = decode_access_token(token)

    result = await db.execute(select(User).where(User.id == payload.user_id))
    user = result.scalar_one_or_none()

    if not user:
        logger.warning(f"Valid token for missing user {payload.user_id}")
        raise Unauthenticated("User account not found")

    return Actor.from_user(user)
