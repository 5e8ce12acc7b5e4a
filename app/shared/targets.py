"""Polymorphic targets of reactions and reports."""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.shared.guards import ensure_found
from models import Comment, Project
from models.enums import TargetKind


@dataclass(frozen=True)
class Target:
    """A project or a comment, addressed by id."""

    kind: TargetKind
    id: UUID

    @classmethod
    def project(cls, project_id: UUID) -> "Target":
        return cls(TargetKind.project, project_id)

    @classmethod
    def comment(cls, comment_id: UUID) -> "Target":
        return cls(TargetKind.comment, comment_id)

    @property
    def column(self) -> str:
        """Name of the foreign key column that points at this target."""
        return f"{self.kind.value}_id"

    def matches(self, row) -> bool:
        return getattr(row, self.column) == self.id


async def resolve_target(db: AsyncSession, target: Target) -> Project | Comment:
    """Load the target entity or raise NotFoundError."""
    model = Project if target.kind is TargetKind.project else Comment
    entity = await db.get(model, target.id)
    return ensure_found(entity, f"No {target.kind.value} with id: {target.id}")
