"""
Progress update model (also exposed as the project's progress history).
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel, utcnow


class ProgressUpdate(BaseModel):
    """
    A dated progress report for a project.

    No two updates of one project may carry the same progress value.
    """

    __tablename__ = "progress_updates"
    __table_args__ = (
        UniqueConstraint("project_id", "progress", name="uq_progress_updates_project_progress"),
        CheckConstraint(
            "progress >= 0 AND progress <= 100", name="ck_progress_updates_progress_range"
        ),
    )

    project_id = Column(
        UUID(), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date = Column(DateTime, nullable=False, default=utcnow)
    remarks = Column(Text)
    progress = Column(Integer, nullable=False, default=0)

    # Relationships
    project = relationship("Project", back_populates="progress_updates")
    media = relationship(
        "Media", back_populates="progress_update", cascade="all, delete-orphan", lazy="selectin"
    )
