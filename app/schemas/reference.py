"""Schemas for barangays, tags, funding sources, announcements and contacts."""

from uuid import UUID

from pydantic import EmailStr, Field

from .base import BaseModelSchema, BaseSchema


class NameCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)


class BarangayCreate(NameCreate):
    description: str | None = None


class BarangayResponse(BaseModelSchema):
    name: str
    description: str | None = None


class TagResponse(BaseModelSchema):
    name: str


class FundingSourceResponse(BaseModelSchema):
    name: str


class AnnouncementCreate(BaseSchema):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)


class AnnouncementUpdate(BaseSchema):
    title: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = Field(None, min_length=1)


class AnnouncementResponse(BaseModelSchema):
    title: str
    content: str
    created_by: UUID | None = None


class ContactCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    position: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    email: EmailStr | None = None
    barangay_id: UUID | None = None


class ContactUpdate(BaseSchema):
    name: str | None = Field(None, min_length=1, max_length=255)
    position: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    email: EmailStr | None = None
    barangay_id: UUID | None = None


class ContactResponse(BaseModelSchema):
    name: str
    position: str | None = None
    phone: str | None = None
    email: str | None = None
    barangay_id: UUID | None = None
