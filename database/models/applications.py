"""
Application Models

A seeker's application to a job: answers, résumé reference and review status.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    ForeignKey,
    DateTime,
    Text,
    JSON,
    Enum as SQLEnum,
    Index,
    UniqueConstraint,
)
from database.engine import Base, BigIntId
from database.models.users import User, enum_values
from database.models.jobs import Job
from core.utils.datetime import now
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any


# ==================== Application Enums ===================== #
class ApplicationStatus(str, PyEnum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


# Legal status transitions; accepted and rejected are terminal
STATUS_TRANSITIONS: dict[ApplicationStatus, set[ApplicationStatus]] = {
    ApplicationStatus.PENDING: {
        ApplicationStatus.REVIEWED,
        ApplicationStatus.ACCEPTED,
        ApplicationStatus.REJECTED,
    },
    ApplicationStatus.REVIEWED: {
        ApplicationStatus.ACCEPTED,
        ApplicationStatus.REJECTED,
    },
    ApplicationStatus.ACCEPTED: set(),
    ApplicationStatus.REJECTED: set(),
}


def can_transition(current: ApplicationStatus, new: ApplicationStatus) -> bool:
    return new in STATUS_TRANSITIONS.get(current, set())


class Application(Base):
    """
    Job application. One per (job, applicant).

    ``employer_id`` is copied from the job owner at creation so ownership
    checks never need a join. Answers and résumé are immutable.
    """

    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(
        BigIntId, primary_key=True, nullable=False, autoincrement=True
    )
    job_id: Mapped[int] = mapped_column(
        BigIntId,
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    applicant_id: Mapped[int] = mapped_column(
        BigIntId,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    employer_id: Mapped[int] = mapped_column(
        BigIntId,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # [{"question_id": int, "question": str, "value": str | list[str]}]
    answers: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )

    # Résumé reference
    resume_blob_id: Mapped[str] = mapped_column(String(500), nullable=False)
    resume_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    resume_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    resume_uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )

    status: Mapped[ApplicationStatus] = mapped_column(
        SQLEnum(
            ApplicationStatus, native_enum=False, length=20, values_callable=enum_values
        ),
        nullable=False,
        default=ApplicationStatus.PENDING,
        index=True,
    )
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, onupdate=now
    )

    # Relationships
    job: Mapped["Job"] = relationship("Job", back_populates="applications", lazy="selectin")
    applicant: Mapped["User"] = relationship(
        "User",
        back_populates="applications",
        foreign_keys=[applicant_id],
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("job_id", "applicant_id", name="uq_application_job_applicant"),
        Index("idx_application_employer_created", "employer_id", "created_at"),
        Index("idx_application_applicant_created", "applicant_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, status={self.status})>"
