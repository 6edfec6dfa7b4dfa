"""Application-related Pydantic schemas."""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field

from api.schemas.common import ResumeInfo, TimestampMixin
from database.models.applications import ApplicationStatus


class AnswerIn(BaseModel):
    """One answer to a job's custom question."""

    question_id: int
    value: Any = Field(None, description="Text, or a list of strings for checkbox questions")


class AnswerOut(BaseModel):
    question_id: int
    question: str = Field(description="Question text when the answer was given")
    value: Any


class ApplicationStatusUpdate(BaseModel):
    """Schema for changing an application's status."""

    status: ApplicationStatus = Field(description="reviewed, accepted or rejected")
    notes: Optional[str] = Field(None, max_length=5000, description="Recruiter notes")


class ApplicantSummary(BaseModel):
    """Applicant profile as seen by the employer."""

    id: int
    name: str
    email: str
    phone: Optional[str] = None
    verified_phone: Optional[str] = None
    phone_verified: bool = False
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None


class JobSnapshot(BaseModel):
    id: int
    title: str
    organization_name: str
    location: Optional[str] = None
    salary: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    employer_name: Optional[str] = None


class ApplicationResponse(TimestampMixin):
    """Schema for application response."""

    id: int = Field(description="Unique application identifier")
    job_id: int
    applicant_id: int
    employer_id: int
    answers: list[AnswerOut] = Field(default_factory=list)
    resume: ResumeInfo
    status: str = Field(description="pending, reviewed, accepted or rejected")
    notes: Optional[str] = None
    applicant: Optional[ApplicantSummary] = None
    job: Optional[JobSnapshot] = None
