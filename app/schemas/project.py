"""Project schemas for request/response serialization."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field, field_validator

from models.enums import ProjectStatus

from .base import BaseModelSchema, BaseSchema
from .media import MediaResponse


class NamedRef(BaseSchema):
    """Id and name of a tag, barangay or funding source."""

    id: UUID
    name: str


class ProjectBase(BaseSchema):
    """Base project schema with common fields."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    cost: Decimal | None = Field(None, ge=0, max_digits=15, decimal_places=2)
    start_date: datetime | None = None
    due_date: datetime | None = None
    status: ProjectStatus = ProjectStatus.planned
    progress: int = Field(0, ge=0, le=100)
    funding_source: str | None = Field(None, max_length=255)
    implementing_agency: str | None = Field(None, max_length=255)
    contract_term: str | None = Field(None, max_length=255)
    contractor: str | None = Field(None, max_length=255)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate and clean the project title."""
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("Project title cannot be empty or only whitespace")
        return v


class ProjectCreate(ProjectBase):
    """Schema for creating a new project."""

    tag_ids: list[UUID] = Field(default_factory=list)
    barangay_ids: list[UUID] = Field(default_factory=list)


class ProjectUpdate(BaseSchema):
    """Schema for updating a project."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    cost: Decimal | None = Field(None, ge=0, max_digits=15, decimal_places=2)
    start_date: datetime | None = None
    due_date: datetime | None = None
    completion_date: datetime | None = None
    status: ProjectStatus | None = None
    progress: int | None = Field(None, ge=0, le=100)
    funding_source: str | None = Field(None, max_length=255)
    implementing_agency: str | None = Field(None, max_length=255)
    contract_term: str | None = Field(None, max_length=255)
    contractor: str | None = Field(None, max_length=255)
    tag_ids: list[UUID] | None = None
    barangay_ids: list[UUID] | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        """Validate and clean the project title."""
        if v is not None and isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("Project title cannot be empty or only whitespace")
        return v


class ProjectResponse(BaseModelSchema):
    """Schema for project response."""

    title: str
    description: str | None = None
    cost: Decimal | None = None
    start_date: datetime | None = None
    due_date: datetime | None = None
    completion_date: datetime | None = None
    status: ProjectStatus
    progress: int
    implementing_agency: str | None = None
    contract_term: str | None = None
    contractor: str | None = None
    created_by: UUID
    funding_source: NamedRef | None = None
    tags: list[NamedRef] = []
    barangays: list[NamedRef] = []
    media: list[MediaResponse] = []

    # Computed fields
    comment_count: int = 0
    like_count: int = 0
    dislike_count: int = 0


class ProjectFilter(BaseSchema):
    """Schema for filtering projects."""

    search: str | None = None
    status: ProjectStatus | None = None
    tag_id: UUID | None = None
    barangay_id: UUID | None = None
    sort: str | None = None

    def is_empty(self) -> bool:
        return not any(self.model_dump(exclude_none=True).values())
