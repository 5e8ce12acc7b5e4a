"""
Reference data managed by administrators.
"""

from sqlalchemy import Column, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel


class Barangay(BaseModel):
    __tablename__ = "barangays"

    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text)

    users = relationship("User", back_populates="barangay")


class Tag(BaseModel):
    __tablename__ = "tags"

    name = Column(String(255), nullable=False, unique=True)


class FundingSource(BaseModel):
    __tablename__ = "funding_sources"

    name = Column(String(255), nullable=False, unique=True)


class Announcement(BaseModel):
    __tablename__ = "announcements"

    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    created_by = Column(UUID(), ForeignKey("users.id", ondelete="SET NULL"))


class Contact(BaseModel):
    __tablename__ = "contacts"

    name = Column(String(255), nullable=False)
    position = Column(String(255))
    phone = Column(String(50))
    email = Column(String(255))
    barangay_id = Column(UUID(), ForeignKey("barangays.id", ondelete="SET NULL"))
