"""Progress update schemas for request/response serialization."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from .base import BaseModelSchema, BaseSchema
from .media import MediaResponse


class ProgressUpdateCreate(BaseSchema):
    progress: int = Field(..., ge=0, le=100)
    remarks: str = Field(..., min_length=1)
    date: datetime


class ProgressUpdateEdit(BaseSchema):
    progress: int | None = Field(None, ge=0, le=100)
    remarks: str | None = Field(None, min_length=1)
    date: datetime | None = None


class ProgressUpdateResponse(BaseModelSchema):
    """Schema for progress update response."""

    project_id: UUID
    date: datetime
    remarks: str | None = None
    progress: int
    media: list[MediaResponse] = []
