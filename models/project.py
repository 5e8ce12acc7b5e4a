"""
Project model and its many-to-many association tables.

A project owns media, progress updates, comments, reactions and reports; all of
them are removed with the project both by the ORM cascade and by ``ON DELETE
CASCADE`` at the database level.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    event,
)
from sqlalchemy.orm import relationship

from .base import UUID, Base, BaseModel, utcnow
from .enums import ProjectStatus

project_tags = Table(
    "project_tags",
    Base.metadata,
    Column("project_id", UUID(), ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", UUID(), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)

project_barangays = Table(
    "project_barangays",
    Base.metadata,
    Column("project_id", UUID(), ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "barangay_id", UUID(), ForeignKey("barangays.id", ondelete="CASCADE"), primary_key=True
    ),
)


class Project(BaseModel):
    """
    Represents a public infrastructure project.
    """

    __tablename__ = "projects"
    __table_args__ = (
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_projects_progress_range"),
        CheckConstraint("cost IS NULL OR cost >= 0", name="ck_projects_cost_positive"),
    )

    title = Column(String(255), nullable=False, unique=True)
    description = Column(Text)
    cost = Column(Numeric(15, 2))
    start_date = Column(DateTime)
    due_date = Column(DateTime)
    completion_date = Column(DateTime)
    status = Column(String(20), nullable=False, default=ProjectStatus.planned.value)
    progress = Column(Integer, nullable=False, default=0)
    implementing_agency = Column(String(255))
    contract_term = Column(String(255))
    contractor = Column(String(255))
    funding_source_id = Column(UUID(), ForeignKey("funding_sources.id", ondelete="SET NULL"))
    created_by = Column(UUID(), ForeignKey("users.id"), nullable=False)

    # Relationships
    creator = relationship("User", back_populates="projects")
    funding_source = relationship("FundingSource", lazy="selectin")
    tags = relationship("Tag", secondary=project_tags, lazy="selectin")
    barangays = relationship("Barangay", secondary=project_barangays, lazy="selectin")
    media = relationship(
        "Media", back_populates="project", cascade="all, delete-orphan", lazy="selectin"
    )
    progress_updates = relationship(
        "ProgressUpdate",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    comments = relationship(
        "Comment", back_populates="project", cascade="all, delete-orphan", passive_deletes=True
    )
    reactions = relationship(
        "Reaction", back_populates="project", cascade="all, delete-orphan", passive_deletes=True
    )
    reports = relationship(
        "Report", back_populates="project", cascade="all, delete-orphan", passive_deletes=True
    )

    def sync_completion_state(self) -> None:
        """Keep status and completion date consistent with progress."""
        if self.progress == 100:
            self.status = ProjectStatus.completed.value
            if self.completion_date is None:
                self.completion_date = utcnow()
        elif self.status != ProjectStatus.completed.value:
            self.completion_date = None


@event.listens_for(Project, "before_insert")
@event.listens_for(Project, "before_update")
def _sync_completion_state(_mapper, _connection, target: Project) -> None:
    target.sync_completion_state()
