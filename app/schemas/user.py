"""User schemas for request/response serialization."""

from uuid import UUID

from pydantic import EmailStr, Field

from models.enums import UserRole

from .base import BaseModelSchema, BaseSchema


class UserResponse(BaseModelSchema):
    """Schema for user response."""

    auth_subject: str
    email: str
    username: str | None = None
    role: UserRole
    barangay_id: UUID | None = None
    is_active: bool


class UserUpdateRequest(BaseSchema):
    """Schema for updating a user (admin only)."""

    username: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    role: UserRole | None = None
    barangay_id: UUID | None = None
    is_active: bool | None = None
