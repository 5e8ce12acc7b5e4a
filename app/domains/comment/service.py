"""Comment service layer with business logic."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import and_, asc, delete, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheClient
from app.core.permissions import check_permissions
from app.domains.media.service import MediaService
from app.exceptions.base import ConflictError, NoContentError
from app.shared.guards import ensure, ensure_found
from app.shared.pagination import PaginationParams, paginate
from models import Comment, Media, Project, Reaction, Report
from models.enums import ReactionType
from models.user import User

logger = logging.getLogger(__name__)


def _reaction_count(reaction_type: str | None = None):
    stmt = select(func.count(Reaction.id)).where(Reaction.comment_id == Comment.id)
    if reaction_type:
        stmt = stmt.where(Reaction.reaction_type == reaction_type)
    return stmt.correlate(Comment).scalar_subquery()


def _report_count():
    return (
        select(func.count(Report.id))
        .where(Report.comment_id == Comment.id)
        .correlate(Comment)
        .scalar_subquery()
    )


class CommentService:
    """Service class for comment business logic."""

    def __init__(self, db: AsyncSession, media: MediaService, cache: CacheClient):
        self.db = db
        self.media = media
        self.cache = cache

    async def create_comment(self, project_id: UUID, content: str, user: User) -> Comment:
        await self._get_project(project_id)
        comment = Comment(project_id=project_id, commented_by=user.id, content=content)

        try:
            self.db.add(comment)
            await self.db.commit()
            await self.db.refresh(comment)
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate("comment")
        return comment

    async def get_comment(self, comment_id: UUID) -> Comment:
        comment = await self.db.get(Comment, comment_id)
        return ensure_found(comment, f"No comment with id: {comment_id}")

    async def list_project_comments(
        self,
        project_id: UUID,
        sort: str | None = None,
        pagination: PaginationParams | None = None,
    ) -> dict[str, Any]:
        """Comments of a project with like, dislike and report counts."""
        project = await self._get_project(project_id)
        likes = _reaction_count(ReactionType.like.value).label("likes")
        dislikes = _reaction_count(ReactionType.dislike.value).label("dislikes")
        reports = _report_count().label("reports")

        stmt = select(Comment, likes, dislikes, reports).where(Comment.project_id == project_id)
        stmt = stmt.order_by(self._order_by(sort, default=desc(likes)))
        page = await paginate(self.db, stmt, pagination or PaginationParams(), scalars=False)
        page["items"] = [
            {
                "comment": comment,
                "like_count": like_count,
                "dislike_count": dislike_count,
                "report_count": report_count,
            }
            for comment, like_count, dislike_count, report_count in page["items"]
        ]
        page["project_id"] = project.id
        page["project_title"] = project.title
        return page

    async def list_comments(
        self,
        search: str | None = None,
        sort: str | None = None,
        pagination: PaginationParams | None = None,
    ) -> dict[str, Any]:
        stmt = select(Comment)
        if search:
            stmt = stmt.where(Comment.content.ilike(f"%{search}%"))
        stmt = stmt.order_by(self._order_by(sort, default=desc(Comment.created_at)))
        return await paginate(self.db, stmt, pagination or PaginationParams())

    async def edit_comment(
        self, project_id: UUID, comment_id: UUID, content: str, user: User
    ) -> Comment:
        await self._get_project(project_id)
        comment = await self._get_project_comment(project_id, comment_id)
        check_permissions(user, comment.commented_by)
        ensure(content != comment.content, "Content is the same as the previous", ConflictError)

        try:
            comment.content = content
            await self.db.commit()
            await self.db.refresh(comment)
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate("comment")
        return comment

    async def delete_comment(self, project_id: UUID | None, comment_id: UUID, user: User) -> Comment:
        """Delete a comment, its reactions, its reports and the reports' media."""
        if project_id is not None:
            await self._get_project(project_id)
            comment = await self._get_project_comment(project_id, comment_id)
        else:
            comment = await self.get_comment(comment_id)
        check_permissions(user, comment.commented_by)

        try:
            await self.media.detach_for_comment(comment)
            await self.db.delete(comment)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate("comment")
        return comment

    async def delete_all_comments(self) -> int:
        total = (await self.db.execute(select(func.count(Comment.id)))).scalar() or 0
        if total == 0:
            raise NoContentError("No comments")

        report_ids = select(Report.id).where(Report.comment_id.is_not(None))
        rows = (
            (await self.db.execute(select(Media).where(Media.report_id.in_(report_ids))))
            .scalars()
            .all()
        )
        try:
            await self.media.detach(rows)
            await self.db.execute(delete(Reaction).where(Reaction.comment_id.is_not(None)))
            await self.db.execute(delete(Report).where(Report.comment_id.is_not(None)))
            await self.db.execute(delete(Comment))
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate("comment")
        return total

    # Private helper methods
    async def _get_project(self, project_id: UUID) -> Project:
        project = await self.db.get(Project, project_id)
        return ensure_found(project, f"No project with id: {project_id}")

    async def _get_project_comment(self, project_id: UUID, comment_id: UUID) -> Comment:
        stmt = select(Comment).where(and_(Comment.id == comment_id, Comment.project_id == project_id))
        comment = (await self.db.execute(stmt)).scalar_one_or_none()
        return ensure_found(comment, "Comment not found or may have been deleted")

    @staticmethod
    def _order_by(sort: str | None, default):
        if not sort:
            return default
        descending = not sort.startswith("-")
        column = sort.lstrip("-")
        ensure(column in {"createdAt", "created_at"}, "Invalid sort column")
        return desc(Comment.created_at) if descending else asc(Comment.created_at)
