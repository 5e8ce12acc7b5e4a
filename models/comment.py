"""
Comment model.
"""

from sqlalchemy import Column, ForeignKey, Text
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel


class Comment(BaseModel):
    """
    A user's comment on a project.
    """

    __tablename__ = "comments"

    project_id = Column(
        UUID(), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    commented_by = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="comments")
    commenter = relationship("User")
    reactions = relationship(
        "Reaction", back_populates="comment", cascade="all, delete-orphan", passive_deletes=True
    )
    reports = relationship(
        "Report", back_populates="comment", cascade="all, delete-orphan", passive_deletes=True
    )
