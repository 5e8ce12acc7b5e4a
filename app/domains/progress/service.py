"""Progress update service layer with business logic.

Every create and edit writes the parent project's derived state in the same
transaction: reaching 100 completes the project, anything lower puts it back
to ongoing.
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import and_, asc, desc, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.cache import CacheClient
from app.core.permissions import check_permissions
from app.domains.media.service import MediaDiff, MediaService, descriptor_of
from app.exceptions.base import ConflictError, NoContentError
from app.shared.guards import ensure, ensure_absent, ensure_found
from app.shared.pagination import PaginationParams, paginate
from models import ProgressUpdate, Project
from models.base import as_naive_utc, utcnow
from models.enums import ProjectStatus
from models.user import User

logger = logging.getLogger(__name__)

DUPLICATE_PROGRESS = "Progress value for project already exists"


def apply_progress(project: Project, progress: int, date: datetime) -> None:
    """Derive the project's status, progress and completion date from an update."""
    project.progress = progress
    if progress == 100:
        project.status = ProjectStatus.completed.value
        project.completion_date = date
    else:
        project.status = ProjectStatus.ongoing.value
        project.completion_date = None


class ProgressService:
    """Service class for progress update business logic."""

    def __init__(self, db: AsyncSession, media: MediaService, cache: CacheClient):
        self.db = db
        self.media = media
        self.cache = cache

    async def create_update(
        self,
        user: User,
        project_id: UUID,
        progress: int,
        remarks: str | None = None,
        date: datetime | None = None,
        files: Sequence[UploadFile] | None = None,
    ) -> ProgressUpdate:
        project = await self._get_project(project_id)
        check_permissions(user, project.created_by)
        ensure_absent(
            await self._find_by_progress(project_id, progress), DUPLICATE_PROGRESS, ConflictError
        )

        date = as_naive_utc(date) or utcnow()
        descriptors = await self.media.stage_uploads(files)
        update = ProgressUpdate(project_id=project.id, date=date, remarks=remarks, progress=progress)

        try:
            async with self.media.staged(descriptors):
                self.db.add(update)
                await self.db.flush()
                await self.media.attach(descriptors, update)
                apply_progress(project, progress, date)
                await self.db.commit()
        except IntegrityError as e:
            raise ConflictError(DUPLICATE_PROGRESS) from e

        await self.cache.invalidate("progress_update")
        logger.info("Progress %d%% recorded for project %s", progress, project_id)
        return await self.get_update(project_id, update.id)

    async def get_update(self, project_id: UUID, update_id: UUID) -> ProgressUpdate:
        stmt = (
            select(ProgressUpdate)
            .options(selectinload(ProgressUpdate.media))
            .where(and_(ProgressUpdate.id == update_id, ProgressUpdate.project_id == project_id))
            .execution_options(populate_existing=True)
        )
        update = (await self.db.execute(stmt)).scalar_one_or_none()
        return ensure_found(update, f"No progress history with id: {update_id}")

    async def list_updates(
        self,
        project_id: UUID,
        sort: str | None = None,
        pagination: PaginationParams | None = None,
    ) -> dict[str, Any]:
        await self._get_project(project_id)
        stmt = select(ProgressUpdate).where(ProgressUpdate.project_id == project_id)
        if sort:
            ensure(sort in {"latest", "oldest"}, "Invalid sort value")
        order = asc if sort == "oldest" else desc
        stmt = stmt.order_by(order(ProgressUpdate.date), order(ProgressUpdate.progress))
        return await paginate(self.db, stmt, pagination or PaginationParams())

    async def edit_update(
        self,
        user: User,
        project_id: UUID,
        update_id: UUID,
        progress: int | None = None,
        remarks: str | None = None,
        date: datetime | None = None,
        files: Sequence[UploadFile] | None = None,
        replace_media: bool = False,
        retained_media: Sequence[str] | None = None,
    ) -> ProgressUpdate:
        """Edit an update; with ``replace_media`` its media become ``retained_media`` plus ``files``."""
        project = await self._get_project(project_id)
        check_permissions(user, project.created_by)
        update = await self.get_update(project_id, update_id)

        if progress is not None and progress != update.progress:
            ensure_absent(
                await self._find_by_progress(project_id, progress, exclude_id=update.id),
                DUPLICATE_PROGRESS,
                ConflictError,
            )

        descriptors = await self.media.stage_uploads(files)

        try:
            async with self.media.staged(descriptors):
                if progress is not None:
                    update.progress = progress
                if remarks is not None:
                    update.remarks = remarks
                if date is not None:
                    update.date = as_naive_utc(date)

                if replace_media:
                    keep = set(retained_media or [])
                    current = list(update.media)
                    desired = [descriptor_of(row) for row in current if row.url in keep]
                    await self.media.replace(current, desired + list(descriptors), update)
                else:
                    await self.media.attach(descriptors, update)

                apply_progress(project, update.progress, update.date)
                await self.db.commit()
        except IntegrityError as e:
            raise ConflictError(DUPLICATE_PROGRESS) from e

        await self.cache.invalidate("progress_update")
        return await self.get_update(project_id, update_id)

    async def delete_update(self, user: User, project_id: UUID, update_id: UUID) -> ProgressUpdate:
        """Delete an update and its media. The project's derived state is left as is."""
        project = await self._get_project(project_id)
        check_permissions(user, project.created_by)
        update = await self.get_update(project_id, update_id)

        try:
            await self.media.detach(list(update.media))
            await self.db.delete(update)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate("progress_update")
        return update

    async def delete_all_updates(self, user: User, project_id: UUID) -> int:
        project = await self._get_project(project_id)
        check_permissions(user, project.created_by)

        updates = (
            (
                await self.db.execute(
                    select(ProgressUpdate)
                    .options(selectinload(ProgressUpdate.media))
                    .where(ProgressUpdate.project_id == project_id)
                )
            )
            .scalars()
            .all()
        )
        if not updates:
            raise NoContentError("No progress history")

        try:
            await self.media.detach([row for update in updates for row in update.media])
            for update in updates:
                await self.db.delete(update)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate("progress_update")
        return len(updates)

    async def list_update_media(
        self,
        project_id: UUID,
        update_id: UUID,
        media_type: str | None = None,
        pagination: PaginationParams | None = None,
    ) -> dict[str, Any]:
        await self._get_project(project_id)
        update = await self.get_update(project_id, update_id)
        return await self.media.list_media(update, media_type, pagination)

    async def replace_update_media(
        self,
        user: User,
        project_id: UUID,
        update_id: UUID,
        files: Sequence[UploadFile] | None,
    ) -> MediaDiff | None:
        """Swap all media of an update for ``files``; the project's progress is untouched."""
        project = await self._get_project(project_id)
        check_permissions(user, project.created_by)
        update = await self.get_update(project_id, update_id)
        descriptors = await self.media.stage_uploads(files)
        if not descriptors:
            return None

        async with self.media.staged(descriptors):
            diff = await self.media.replace_all(update, descriptors)
            await self.db.commit()

        await self.cache.invalidate("media")
        return diff

    async def delete_all_update_media(self, user: User, project_id: UUID, update_id: UUID) -> int:
        project = await self._get_project(project_id)
        check_permissions(user, project.created_by)
        update = await self.get_update(project_id, update_id)

        try:
            removed = await self.media.detach_all(update)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate("media")
        return len(removed)

    # Private helper methods
    async def _get_project(self, project_id: UUID) -> Project:
        project = await self.db.get(Project, project_id)
        return ensure_found(project, f"No project with id: {project_id}")

    async def _find_by_progress(
        self, project_id: UUID, progress: int, exclude_id: UUID | None = None
    ) -> ProgressUpdate | None:
        stmt = select(ProgressUpdate).where(
            and_(ProgressUpdate.project_id == project_id, ProgressUpdate.progress == progress)
        )
        if exclude_id is not None:
            stmt = stmt.where(ProgressUpdate.id != exclude_id)
        return (await self.db.execute(stmt)).scalars().first()
