"""Project service layer with business logic."""

import logging
from collections.abc import Sequence
from typing import Any
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import and_, asc, delete, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.cache import CacheClient, CacheKeys
from app.core.permissions import check_permissions
from app.domains.media.service import MediaDiff, MediaService, descriptor_of
from app.exceptions.base import ConflictError, NoContentError, NotFoundError
from app.schemas.project import ProjectCreate, ProjectFilter, ProjectResponse, ProjectUpdate
from app.shared.guards import ensure, ensure_absent, ensure_found
from app.shared.pagination import PaginationParams, paginate
from models import Barangay, Comment, FundingSource, Media, Project, Reaction, Tag
from models.base import as_naive_utc
from models.enums import ReactionType, UserRole
from models.project import project_barangays, project_tags
from models.user import User

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {
    "created_at": Project.created_at,
    "createdAt": Project.created_at,
    "title": Project.title,
    "cost": Project.cost,
    "progress": Project.progress,
    "due_date": Project.due_date,
}


def _comment_count():
    return (
        select(func.count(Comment.id))
        .where(Comment.project_id == Project.id)
        .correlate(Project)
        .scalar_subquery()
    )


def _reaction_count(reaction_type: ReactionType):
    return (
        select(func.count(Reaction.id))
        .where(and_(Reaction.project_id == Project.id, Reaction.reaction_type == reaction_type.value))
        .correlate(Project)
        .scalar_subquery()
    )


def _with_counts():
    return select(
        Project,
        _comment_count().label("comment_count"),
        _reaction_count(ReactionType.like).label("like_count"),
        _reaction_count(ReactionType.dislike).label("dislike_count"),
    ).options(
        selectinload(Project.tags),
        selectinload(Project.barangays),
        selectinload(Project.media),
        selectinload(Project.funding_source),
    )


def serialize_project(project: Project, comment_count=0, like_count=0, dislike_count=0) -> dict:
    data = ProjectResponse.model_validate(project).model_dump(mode="json")
    data.update(
        comment_count=comment_count or 0,
        like_count=like_count or 0,
        dislike_count=dislike_count or 0,
    )
    return data


class ProjectService:
    """Service class for project business logic."""

    def __init__(self, db: AsyncSession, media: MediaService, cache: CacheClient):
        self.db = db
        self.media = media
        self.cache = cache

    async def create_project(
        self, data: ProjectCreate, user: User, files: Sequence[UploadFile] | None = None
    ) -> dict:
        """Create a project with its tags, barangays, funding source and media."""
        ensure_absent(
            await self._get_by_title(data.title),
            "A project with this title already exists",
            ConflictError,
        )
        tags = await self._load_all(Tag, data.tag_ids, "Some tags do not exist")
        barangays = await self._load_all(Barangay, data.barangay_ids, "Some barangays do not exist")

        descriptors = await self.media.stage_uploads(files)
        values = data.model_dump(exclude={"tag_ids", "barangay_ids", "funding_source"})
        values["status"] = data.status.value
        values["start_date"] = as_naive_utc(data.start_date)
        values["due_date"] = as_naive_utc(data.due_date)
        project = Project(**values, created_by=user.id, tags=tags, barangays=barangays)

        async with self.media.staged(descriptors):
            if data.funding_source:
                project.funding_source = await self._funding_source(data.funding_source)
            self.db.add(project)
            await self.db.flush()
            await self.media.attach(descriptors, project)
            await self.db.commit()

        await self.cache.invalidate("project")
        logger.info("Project %s created by %s", project.id, user.id)
        return await self.get_project(project.id, use_cache=False)

    async def get_project(self, project_id: UUID, use_cache: bool = True) -> dict:
        """A project with its counts, served from the single-item cache when it matches."""
        if use_cache:
            cached = await self.cache.get_single(CacheKeys.SINGLE_PROJECT, project_id)
            if cached is not None:
                return cached
            generation = await self.cache.generation(CacheKeys.SINGLE_PROJECT)

        stmt = _with_counts().where(Project.id == project_id).execution_options(
            populate_existing=True
        )
        row = (await self.db.execute(stmt)).one_or_none()
        if row is None:
            raise NotFoundError(f"No project with id: {project_id}")
        data = serialize_project(*row)

        if use_cache:
            await self.cache.fill(CacheKeys.SINGLE_PROJECT, data, generation)
        return data

    async def list_projects(
        self,
        filters: ProjectFilter | None = None,
        pagination: PaginationParams | None = None,
    ) -> dict[str, Any]:
        """Projects with comment and reaction counts. Unfiltered first pages are cached."""
        filters = filters or ProjectFilter()
        pagination = pagination or PaginationParams()
        cacheable = filters.is_empty() and pagination == PaginationParams()

        async def load() -> dict[str, Any]:
            page = await paginate(
                self.db, self._list_query(filters), pagination, scalars=False
            )
            page["items"] = [serialize_project(*row) for row in page["items"]]
            return page

        if cacheable:
            return await self.cache.read_through(CacheKeys.PROJECTS, load)
        return await load()

    async def update_project(
        self,
        project_id: UUID,
        data: ProjectUpdate,
        user: User,
        files: Sequence[UploadFile] | None = None,
        replace_media: bool = False,
        retained_media: Sequence[str] | None = None,
    ) -> dict:
        project = await self._get(project_id)
        check_permissions(user, project.created_by)

        changes = data.model_dump(exclude_unset=True)
        if changes.get("title") and changes["title"] != project.title:
            ensure_absent(
                await self._get_by_title(changes["title"]),
                "A project with this title already exists",
                ConflictError,
            )
        tags = barangays = None
        if data.tag_ids is not None:
            tags = await self._load_all(Tag, data.tag_ids, "Some tags do not exist")
        if data.barangay_ids is not None:
            barangays = await self._load_all(
                Barangay, data.barangay_ids, "Some barangays do not exist"
            )

        descriptors = await self.media.stage_uploads(files)

        async with self.media.staged(descriptors):
            for field in ("tag_ids", "barangay_ids", "funding_source"):
                changes.pop(field, None)
            for field, value in changes.items():
                if field in ("start_date", "due_date", "completion_date"):
                    value = as_naive_utc(value)
                elif field == "status" and value is not None:
                    value = value.value
                setattr(project, field, value)
            if data.funding_source:
                project.funding_source = await self._funding_source(data.funding_source)
            if tags is not None:
                project.tags = tags
            if barangays is not None:
                project.barangays = barangays

            if replace_media:
                keep = set(retained_media or [])
                current = list(project.media)
                desired = [descriptor_of(row) for row in current if row.url in keep]
                await self.media.replace(current, desired + list(descriptors), project)
            else:
                await self.media.attach(descriptors, project)
            await self.db.commit()

        await self.cache.invalidate("project")
        return await self.get_project(project_id, use_cache=False)

    async def delete_project(self, project_id: UUID, user: User) -> Project:
        """Delete a project after removing every blob its cascade would orphan."""
        project = await self._get(project_id)
        check_permissions(user, project.created_by)

        try:
            await self.media.detach_for_project(project)
            await self.db.delete(project)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate("project")
        logger.info("Project %s deleted by %s", project_id, user.id)
        return project

    async def delete_all_projects(self, user: User) -> int:
        """Admins delete every project; barangay officials delete their own."""
        stmt = select(Project)
        if user.role != UserRole.admin.value:
            stmt = stmt.where(Project.created_by == user.id)
        projects = (await self.db.execute(stmt)).scalars().all()
        if not projects:
            raise NoContentError("No projects found")

        try:
            await self.media.detach_for_projects(projects)
            await self.db.execute(
                delete(Project).where(Project.id.in_([p.id for p in projects]))
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate("project")
        return len(projects)

    async def list_project_media(
        self, project_id: UUID, media_type: str | None, pagination: PaginationParams | None
    ) -> dict[str, Any]:
        project = await self._get(project_id)
        return await self.media.list_media(project, media_type, pagination)

    async def replace_project_media(
        self, project_id: UUID, user: User, files: Sequence[UploadFile] | None
    ) -> MediaDiff | None:
        """Swap all of a project's own media for ``files``. ``None`` when nothing was uploaded."""
        project = await self._get(project_id)
        check_permissions(user, project.created_by)
        descriptors = await self.media.stage_uploads(files)
        if not descriptors:
            return None

        async with self.media.staged(descriptors):
            diff = await self.media.replace_all(project, descriptors)
            await self.db.commit()

        await self.cache.invalidate("media")
        logger.info(
            "Project %s media replaced: %d added, %d removed",
            project_id,
            len(diff.added),
            len(diff.removed),
        )
        return diff

    async def delete_all_project_media(self, project_id: UUID, user: User) -> int:
        project = await self._get(project_id)
        check_permissions(user, project.created_by)

        try:
            removed = await self.media.detach_all(project)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate("media")
        return len(removed)

    async def delete_project_media(
        self, project_id: UUID, media_id: UUID, media_url: str | None, user: User
    ) -> Media:
        project = await self._get(project_id)
        check_permissions(user, project.created_by)
        media = await self.media.delete_one(project, media_id, media_url)
        await self.cache.invalidate("media")
        return media

    # Private helper methods
    async def _get(self, project_id: UUID) -> Project:
        stmt = (
            select(Project)
            .options(selectinload(Project.media))
            .where(Project.id == project_id)
            .execution_options(populate_existing=True)
        )
        project = (await self.db.execute(stmt)).scalar_one_or_none()
        return ensure_found(project, f"No project with id: {project_id}")

    async def _get_by_title(self, title: str) -> Project | None:
        result = await self.db.execute(select(Project).where(Project.title == title))
        return result.scalar_one_or_none()

    async def _load_all(self, model, ids: Sequence[UUID], message: str) -> list:
        unique_ids = list(dict.fromkeys(ids))
        if not unique_ids:
            return []
        rows = (await self.db.execute(select(model).where(model.id.in_(unique_ids)))).scalars().all()
        ensure(len(rows) == len(unique_ids), message, NotFoundError)
        return list(rows)

    async def _funding_source(self, name: str) -> FundingSource:
        """Find a funding source by name or create it."""
        name = name.strip()
        result = await self.db.execute(select(FundingSource).where(FundingSource.name == name))
        source = result.scalar_one_or_none()
        if source is None:
            source = FundingSource(name=name)
            self.db.add(source)
            await self.db.flush()
        return source

    def _list_query(self, filters: ProjectFilter):
        stmt = _with_counts()
        if filters.search:
            term = f"%{filters.search}%"
            stmt = stmt.where(Project.title.ilike(term) | Project.description.ilike(term))
        if filters.status:
            stmt = stmt.where(Project.status == filters.status.value)
        if filters.tag_id:
            stmt = stmt.where(
                Project.id.in_(
                    select(project_tags.c.project_id).where(project_tags.c.tag_id == filters.tag_id)
                )
            )
        if filters.barangay_id:
            stmt = stmt.where(
                Project.id.in_(
                    select(project_barangays.c.project_id).where(
                        project_barangays.c.barangay_id == filters.barangay_id
                    )
                )
            )
        if filters.sort:
            column = SORTABLE_COLUMNS.get(filters.sort.lstrip("-"))
            ensure(column is not None, "Invalid sort column")
            stmt = stmt.order_by(desc(column) if filters.sort.startswith("-") else asc(column))
        else:
            stmt = stmt.order_by(desc(Project.created_at))
        return stmt
