"""Comment schemas for request/response serialization."""

from uuid import UUID

from pydantic import Field, field_validator

from .base import BaseModelSchema, BaseSchema


class CommentCreate(BaseSchema):
    """Schema for creating or editing a comment."""

    content: str = Field(..., min_length=1, max_length=5000)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Content is required")
        return v


class CommentResponse(BaseModelSchema):
    project_id: UUID
    commented_by: UUID
    content: str


class CommentWithCounts(CommentResponse):
    like_count: int = 0
    dislike_count: int = 0
    report_count: int = 0
