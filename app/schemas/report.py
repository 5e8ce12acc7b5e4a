"""Report schemas for request/response serialization."""

from uuid import UUID

from pydantic import Field

from models.enums import ReportStatus

from .base import BaseModelSchema, BaseSchema
from .media import MediaResponse


class ReportCreate(BaseSchema):
    content: str = Field(..., min_length=1, max_length=5000)


class ReportStatusUpdate(BaseSchema):
    status: ReportStatus


class ReportResponse(BaseModelSchema):
    content: str
    status: ReportStatus
    reported_by: UUID
    project_id: UUID | None = None
    comment_id: UUID | None = None
    media: list[MediaResponse] = []
