"""Job-related Pydantic schemas."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from api.schemas.common import TimestampMixin
from database.models.jobs import QuestionType


class CustomQuestionCreate(BaseModel):
    """A recruiter-defined question attached to a job."""

    question: str = Field(max_length=1000, description="Question text")
    type: QuestionType = Field(default=QuestionType.TEXT, description="Answer widget type")
    options: list[str] = Field(default_factory=list, description="Choices for select, radio and checkbox")
    required: bool = Field(default=False, description="Whether applicants must answer")


class JobCreate(BaseModel):
    """Schema for creating a job."""

    title: str = Field(max_length=255, description="Job title")
    description: str = Field(description="Job description")
    location: Optional[str] = Field(None, max_length=255, description="Location")
    salary: Optional[str] = Field(None, max_length=255, description="Free-text salary")
    requirements: list[str] = Field(default_factory=list, description="Requirement bullets")
    custom_questions: list[CustomQuestionCreate] = Field(
        default_factory=list, description="Ordered custom questions"
    )

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        """Strip whitespace from text fields."""
        if isinstance(v, str):
            return v.strip()
        return v


class JobUpdate(BaseModel):
    """
    Partial job edit. Unknown fields are rejected so owner, status and the
    applications count cannot be changed through this endpoint.
    """

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    salary: Optional[str] = Field(None, max_length=255)
    requirements: Optional[list[str]] = None
    custom_questions: Optional[list[CustomQuestionCreate]] = Field(
        None, description="Replaces the whole question list"
    )


class CustomQuestionResponse(BaseModel):
    id: int
    question: str
    type: str
    options: list[str] = Field(default_factory=list)
    required: bool = False


class JobResponse(TimestampMixin):
    """Schema for job response."""

    id: int = Field(description="Unique job identifier")
    title: str
    organization_name: str = Field(description="Organization name at the time the job was created")
    description: str
    location: Optional[str] = None
    salary: Optional[str] = None
    requirements: list[str] = Field(default_factory=list)
    custom_questions: list[CustomQuestionResponse] = Field(default_factory=list)
    status: str = Field(description="active, inactive or closed")
    applications_count: int = Field(ge=0)
    employer_id: int
    employer_name: Optional[str] = Field(None, description="Owning recruiter's display name")
