"""
Reaction model.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel
from .enums import TargetKind


class Reaction(BaseModel):
    """
    A like or dislike by one user on exactly one project or comment.

    The unique constraints back the at-most-one-reaction-per-target rule that the
    reaction service checks before writing.
    """

    __tablename__ = "reactions"
    __table_args__ = (
        CheckConstraint(
            "(project_id IS NULL) <> (comment_id IS NULL)", name="ck_reactions_single_target"
        ),
        UniqueConstraint("reacted_by", "project_id", name="uq_reactions_user_project"),
        UniqueConstraint("reacted_by", "comment_id", name="uq_reactions_user_comment"),
    )

    reacted_by = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reaction_type = Column(String(20), nullable=False)
    project_id = Column(UUID(), ForeignKey("projects.id", ondelete="CASCADE"), index=True)
    comment_id = Column(UUID(), ForeignKey("comments.id", ondelete="CASCADE"), index=True)

    # Relationships
    reactor = relationship("User")
    project = relationship("Project", back_populates="reactions")
    comment = relationship("Comment", back_populates="reactions")

    @property
    def target_kind(self) -> TargetKind:
        return TargetKind.project if self.project_id is not None else TargetKind.comment

    @property
    def target_id(self):
        return self.project_id if self.project_id is not None else self.comment_id
