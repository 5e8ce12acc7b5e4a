"""
Media model for blobs stored in the external object store.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel


class Media(BaseModel):
    """
    A media file owned by exactly one project, progress update or report.

    ``reference_token`` is the object store key of the blob behind ``url``;
    deleting the row must always be paired with deleting that blob.
    """

    __tablename__ = "media"
    __table_args__ = (
        CheckConstraint(
            "(CASE WHEN project_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN progress_update_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN report_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_media_single_owner",
        ),
    )

    url = Column(String(1024), nullable=False, unique=True)
    reference_token = Column(String(512), nullable=False, unique=True)
    mime_type = Column(String(100), nullable=False)
    size = Column(Integer, nullable=False)
    recorded_date = Column(DateTime)

    project_id = Column(UUID(), ForeignKey("projects.id", ondelete="CASCADE"), index=True)
    progress_update_id = Column(
        UUID(), ForeignKey("progress_updates.id", ondelete="CASCADE"), index=True
    )
    report_id = Column(UUID(), ForeignKey("reports.id", ondelete="CASCADE"), index=True)

    # Relationships
    project = relationship("Project", back_populates="media")
    progress_update = relationship("ProgressUpdate", back_populates="media")
    report = relationship("Report", back_populates="media")
