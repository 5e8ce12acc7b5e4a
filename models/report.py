"""
Report model for moderation flags.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel
from .enums import ReportStatus


class Report(BaseModel):
    """
    A moderation flag raised by a user against a project or a comment.
    """

    __tablename__ = "reports"
    __table_args__ = (
        CheckConstraint(
            "(project_id IS NULL) <> (comment_id IS NULL)", name="ck_reports_single_target"
        ),
    )

    content = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=ReportStatus.pending.value)
    reported_by = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(UUID(), ForeignKey("projects.id", ondelete="CASCADE"), index=True)
    comment_id = Column(UUID(), ForeignKey("comments.id", ondelete="CASCADE"), index=True)

    # Relationships
    reporter = relationship("User")
    project = relationship("Project", back_populates="reports")
    comment = relationship("Comment", back_populates="reports")
    media = relationship(
        "Media", back_populates="report", cascade="all, delete-orphan", lazy="selectin"
    )
