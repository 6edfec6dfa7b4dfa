"""
Authorization guard for role-based and ownership access control.

Every state-mutating or privacy-sensitive operation states its requirement
declaratively and passes it through ``authorize`` before touching records:

    authorize(actor, HasRole(UserRole.RECRUITER))
    authorize(actor, Owns(job, conceal=True))

Ownership is always compared against the record's stored owner field and
the authenticated actor id, never against ids supplied by the client.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Set

from core.exceptions import Forbidden, NotFound, Unauthenticated
from core.middleware.authentication import Actor
from database.models.users import UserRole

logger = logging.getLogger(__name__)


class Permission(str, Enum):
    """System-wide permissions."""

    # Jobs
    JOB_CREATE = "job:create"
    JOB_LIST_OWN = "job:list_own"
    JOB_UPDATE = "job:update"

    # Applications
    APPLICATION_CREATE = "application:create"
    APPLICATION_LIST_OWN = "application:list_own"
    APPLICATION_REVIEW = "application:review"

    # Profile
    PROFILE_READ = "profile:read"
    PROFILE_UPDATE = "profile:update"
    RESUME_MANAGE = "resume:manage"

    # Verification
    PHONE_VERIFY = "phone:verify"
    EMAIL_VERIFY = "email:verify"


# Role to permission mapping
ROLE_PERMISSIONS: dict[UserRole, Set[Permission]] = {
    UserRole.SEEKER: {
        Permission.APPLICATION_CREATE,
        Permission.APPLICATION_LIST_OWN,
        Permission.PROFILE_READ, Permission.PROFILE_UPDATE,
        Permission.RESUME_MANAGE,
        Permission.PHONE_VERIFY, Permission.EMAIL_VERIFY,
    },
    UserRole.RECRUITER: {
        Permission.JOB_CREATE, Permission.JOB_LIST_OWN, Permission.JOB_UPDATE,
        Permission.APPLICATION_REVIEW,
        Permission.PROFILE_READ, Permission.PROFILE_UPDATE,
        Permission.PHONE_VERIFY, Permission.EMAIL_VERIFY,
    },
}


class Requirement:
    """A condition an actor must satisfy."""

    def check(self, actor: Actor) -> None:
        raise NotImplementedError

    def describe(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class Authenticated(Requirement):
    def check(self, actor: Actor) -> None:
        # authorize() already rejects anonymous callers
        return None


@dataclass(frozen=True)
class HasRole(Requirement):
    role: UserRole

    def check(self, actor: Actor) -> None:
        if actor.role != self.role:
            raise Forbidden(f"This action requires the {self.role.value} role")

    def describe(self) -> str:
        return f"HasRole({self.role.value})"


@dataclass(frozen=True)
class HasPermission(Requirement):
    permission: Permission

    def check(self, actor: Actor) -> None:
        if self.permission not in ROLE_PERMISSIONS.get(actor.role, set()):
            raise Forbidden("You do not have permission to perform this action")

    def describe(self) -> str:
        return f"HasPermission({self.permission.value})"


@dataclass(frozen=True)
class Owns(Requirement):
    """
    The resource's owner field must equal the actor id.

    With ``conceal`` a missing resource or a mismatch raises NotFound, so a
    caller cannot tell "not yours" from "does not exist".
    """
    resource: Any
    field: str = "employer_id"
    conceal: bool = False

    def check(self, actor: Actor) -> None:
        owner_id = getattr(self.resource, self.field, None) if self.resource is not None else None
        if owner_id is not None and owner_id == actor.id:
            return
        if self.conceal or self.resource is None:
            raise NotFound()
        raise Forbidden("You do not own this resource")

    def describe(self) -> str:
        resource_id = getattr(self.resource, "id", None)
        return f"Owns({type(self.resource).__name__}:{resource_id}.{self.field})"


def get_role_permissions(role: UserRole) -> Set[Permission]:
    return set(ROLE_PERMISSIONS.get(role, set()))


def authorize(actor: Optional[Actor], *requirements: Requirement) -> Actor:
    """
    Check an actor against requirements, in order.

    Args:
        actor: Authenticated actor, or None for anonymous callers
        requirements: Requirements that must all hold

    Returns:
        The actor, for chaining

    Raises:
        Unauthenticated: If there is no actor
        Forbidden: On role, permission or (unconcealed) ownership mismatch
        NotFound: On concealed ownership mismatch
    """
    if actor is None:
        logger.warning(
            f"Anonymous request denied: {', '.join(r.describe() for r in requirements) or 'Authenticated'}"
        )
        raise Unauthenticated()

    for requirement in requirements:
        try:
            requirement.check(actor)
        except (Forbidden, NotFound):
            logger.warning(
                f"User {actor.id} with role {actor.role.value} denied: {requirement.describe()}"
            )
            raise

    return actor
