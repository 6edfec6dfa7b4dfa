"""
Job Models

Job postings owned by a recruiter, with their ordered screening questions.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from sqlalchemy import (
    String,
    Boolean,
    ForeignKey,
    DateTime,
    Integer,
    Text,
    JSON,
    Enum as SQLEnum,
    Index,
    UniqueConstraint,
)
from database.engine import Base, BigIntId
from database.models.users import User, enum_values
from core.utils.datetime import now
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.applications import Application


# ==================== Job Enums ===================== #
class JobStatus(str, PyEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    CLOSED = "closed"


class QuestionType(str, PyEnum):
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"


# Question types whose answers must be drawn from ``options``
CHOICE_QUESTION_TYPES = {QuestionType.SELECT, QuestionType.RADIO, QuestionType.CHECKBOX}


class Job(Base):
    """
    A job posting.

    ``organization_name`` is a snapshot of the owner's organization at
    creation time. ``applications_count`` is maintained in the same
    transaction as each application insert.
    """

    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(
        BigIntId, primary_key=True, nullable=False, autoincrement=True
    )
    employer_id: Mapped[int] = mapped_column(
        BigIntId,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    organization_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str | None] = mapped_column(String(255))
    salary: Mapped[str | None] = mapped_column(String(100))
    requirements: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    status: Mapped[JobStatus] = mapped_column(
        SQLEnum(JobStatus, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=JobStatus.ACTIVE,
        index=True,
    )
    applications_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, onupdate=now
    )

    # Relationships
    employer: Mapped["User"] = relationship(
        "User", back_populates="jobs", lazy="selectin"
    )
    questions: Mapped[list["JobQuestion"]] = relationship(
        "JobQuestion",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="JobQuestion.position",
        lazy="selectin",
    )
    applications: Mapped[list["Application"]] = relationship(
        "Application", back_populates="job", lazy="raise"
    )

    __table_args__ = (
        Index("idx_job_status_created", "status", "created_at"),
        Index("idx_job_employer_created", "employer_id", "created_at"),
    )

    @validates("employer_id")
    def _employer_is_immutable(self, key, value):
        current = self.__dict__.get("employer_id")
        if current is not None and value != current:
            raise ValueError("Job owner cannot be changed")
        return value

    def __repr__(self) -> str:
        return f"<Job(id={self.id}, status={self.status})>"


class JobQuestion(Base):
    """Custom screening question, ordered by ``position`` within a job."""

    __tablename__ = "job_questions"

    id: Mapped[int] = mapped_column(
        BigIntId, primary_key=True, nullable=False, autoincrement=True
    )
    job_id: Mapped[int] = mapped_column(
        BigIntId,
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[QuestionType] = mapped_column(
        SQLEnum(QuestionType, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=QuestionType.TEXT,
    )
    options: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    job: Mapped["Job"] = relationship("Job", back_populates="questions")

    __table_args__ = (
        UniqueConstraint("job_id", "position", name="uq_job_question_position"),
    )

    @property
    def is_choice(self) -> bool:
        return self.question_type in CHOICE_QUESTION_TYPES
