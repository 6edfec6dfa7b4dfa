"""Common Pydantic schemas shared across the API."""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field


class TimestampMixin(BaseModel):
    """Mixin for timestamp fields."""

    created_at: datetime = Field(description="Timestamp when the resource was created")
    updated_at: Optional[datetime] = Field(None, description="Timestamp when the resource was last updated")


class ResumeInfo(BaseModel):
    """Stored résumé reference."""

    id: Optional[str] = Field(None, description="Blob identifier in the file store")
    url: Optional[str] = Field(None, description="URL the file can be fetched from")
    filename: Optional[str] = Field(None, description="Original filename")
    uploaded_at: Optional[datetime] = Field(None, description="When the file was uploaded")


class ErrorDetail(BaseModel):
    """Body of the error envelope."""

    code: str = Field(description="Error code for programmatic handling, e.g. NOT_FOUND")
    message: str = Field(description="Human readable message")
    path: str = Field(description="Request path")
    method: str = Field(description="Request method")
    details: Optional[Any] = Field(None, description="Field errors for validation failures")


class ErrorResponse(BaseModel):
    """Error response model."""

    error: ErrorDetail
