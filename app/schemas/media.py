"""Media schemas for request/response serialization."""

from datetime import datetime
from uuid import UUID

from .base import BaseModelSchema


class MediaResponse(BaseModelSchema):
    """Schema for media response."""

    url: str
    mime_type: str
    size: int
    recorded_date: datetime | None = None
    project_id: UUID | None = None
    progress_update_id: UUID | None = None
    report_id: UUID | None = None
