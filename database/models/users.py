from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from sqlalchemy import (
    String,
    Boolean,
    DateTime,
    Integer,
    Text,
    Enum as SQLEnum,
)
from database.engine import Base, BigIntId
from core.utils.datetime import now
from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.jobs import Job
    from database.models.applications import Application


# ==================== User Role ===================== #
class UserRole(str, PyEnum):
    SEEKER = "seeker"  # job seeker, applies to jobs
    RECRUITER = "recruiter"  # hiring organization, posts jobs


def enum_values(enum_cls: type[PyEnum]) -> list[str]:
    """Persist enum values ("seeker") rather than member names ("SEEKER")."""
    return [member.value for member in enum_cls]


class User(Base):
    """
    Account identity, public profile and verification state.

    Rows are never hard-deleted. ``role`` is fixed at registration.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(
        BigIntId, primary_key=True, nullable=False, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Stored lower-cased
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        index=True,
    )
    organization_name: Mapped[str | None] = mapped_column(String(255))

    # Profile
    phone: Mapped[str | None] = mapped_column(String(30))
    bio: Mapped[str | None] = mapped_column(Text)
    address: Mapped[str | None] = mapped_column(Text)
    website: Mapped[str | None] = mapped_column(String(500))
    location: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)

    # Profile résumé
    resume_blob_id: Mapped[str | None] = mapped_column(String(500))
    resume_url: Mapped[str | None] = mapped_column(String(1000))
    resume_filename: Mapped[str | None] = mapped_column(String(255))
    resume_uploaded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Phone verification
    phone_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verified_phone: Mapped[str | None] = mapped_column(String(20))
    phone_verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    pending_phone_code_hash: Mapped[str | None] = mapped_column(String(128))
    pending_phone_number: Mapped[str | None] = mapped_column(String(20))
    pending_phone_code_issued_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    pending_phone_code_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    phone_code_failed_attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    # Email verification
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_verification_token_hash: Mapped[str | None] = mapped_column(
        String(64), index=True
    )
    email_verification_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, onupdate=now
    )

    jobs: Mapped[list["Job"]] = relationship(
        "Job", back_populates="employer", lazy="raise"
    )
    applications: Mapped[list["Application"]] = relationship(
        "Application",
        back_populates="applicant",
        foreign_keys="Application.applicant_id",
        lazy="raise",
    )

    @validates("role")
    def _role_is_immutable(self, key, value):
        current = self.__dict__.get("role")
        if current is not None and UserRole(value) != current:
            raise ValueError("User role cannot be changed")
        return UserRole(value)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, role={self.role})>"
