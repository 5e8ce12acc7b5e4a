"""Media lifecycle: keeps Media rows and object store blobs paired.

Blobs are written before rows exist and deleted before rows go away, since
the object store is not part of the database transaction. Every path that
leaves a blob without a row (or a row without a blob) either compensates
immediately or leaves work for :meth:`MediaService.reconcile`.
"""

import asyncio
import logging
from collections.abc import Iterable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import and_, delete, desc, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app.core.config import settings
from app.core.storage import S3ObjectStore, StoredObject
from app.exceptions.base import NoContentError
from app.exceptions.infrastructure import ObjectStoreError
from app.shared.guards import ensure, ensure_found
from app.shared.pagination import PaginationParams, paginate
from models import Comment, Media, ProgressUpdate, Project, Report
from models.base import utcnow

logger = logging.getLogger(__name__)

MEDIA_TYPES = ("image", "video")


@dataclass
class MediaDiff:
    added: list[Media] = field(default_factory=list)
    removed: list[Media] = field(default_factory=list)


@dataclass
class ReconcileResult:
    deleted_blobs: list[str] = field(default_factory=list)
    deleted_rows: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "deleted_blobs": len(self.deleted_blobs),
            "deleted_rows": len(self.deleted_rows),
        }


def owner_filter(owner) -> dict[str, UUID]:
    """Foreign key column pointing at ``owner``."""
    if isinstance(owner, Project):
        return {"project_id": owner.id}
    if isinstance(owner, ProgressUpdate):
        return {"progress_update_id": owner.id}
    if isinstance(owner, Report):
        return {"report_id": owner.id}
    raise TypeError(f"Media cannot belong to {type(owner).__name__}")


def descriptor_of(row: Media) -> StoredObject:
    return StoredObject(
        reference_token=row.reference_token,
        url=row.url,
        mime_type=row.mime_type,
        byte_size=row.size,
    )


class MediaService:
    """Service class for media business logic."""

    def __init__(self, db: AsyncSession, store: S3ObjectStore):
        self.db = db
        self.store = store
        self._semaphore = asyncio.Semaphore(settings.object_store_concurrency)

    # ---- staging -----------------------------------------------------------------

    async def stage_uploads(self, files: Sequence[UploadFile] | None) -> list[StoredObject]:
        """Validate and upload request files, returning their descriptors.

        Either every file ends up in the store or none does.
        """
        files = [f for f in files or [] if f is not None and f.filename]
        if not files:
            return []
        ensure(
            len(files) <= settings.max_files_per_request,
            f"At most {settings.max_files_per_request} files can be uploaded at once",
        )

        payloads = []
        for upload in files:
            content_type = (upload.content_type or "").lower()
            ensure(
                content_type.split("/")[0] in MEDIA_TYPES,
                f"Unsupported file type: {upload.content_type}",
            )
            data = await upload.read()
            ensure(len(data) > 0, f"File {upload.filename} is empty")
            ensure(
                len(data) <= settings.max_file_size,
                f"File {upload.filename} exceeds the maximum size of {settings.max_file_size} bytes",
            )
            payloads.append((data, upload.filename, content_type))

        results = await asyncio.gather(
            *(self._bounded(self.store.upload(*payload)) for payload in payloads),
            return_exceptions=True,
        )
        stored = [r for r in results if isinstance(r, StoredObject)]
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            await self.discard(stored)
            logger.error("Upload failed for %d of %d files", len(failures), len(payloads))
            raise failures[0]
        return stored

    @asynccontextmanager
    async def staged(self, descriptors: Sequence[StoredObject]):
        """Scope in which freshly uploaded blobs are not yet backed by rows.

        Any exception rolls back the session and removes the blobs before it
        propagates unchanged. Commit must be the last statement in the block.
        """
        try:
            yield
        except Exception:
            await self.db.rollback()
            await self.discard(descriptors)
            raise

    async def discard(self, descriptors: Iterable[StoredObject]) -> None:
        """Best-effort delete of blobs that never became rows."""
        tokens = [d.reference_token for d in descriptors]
        if not tokens:
            return
        failed = await self._delete_blobs(tokens)
        if failed:
            logger.error(
                "Could not discard %d uploaded blobs, leaving them to the orphan sweep: %s",
                len(failed),
                failed,
            )

    # ---- row lifecycle -------------------------------------------------------------

    async def attach(self, descriptors: Sequence[StoredObject], owner) -> list[Media]:
        """Create Media rows for ``descriptors`` owned by ``owner`` (flush only)."""
        if not descriptors:
            return []
        if owner.id is None:
            await self.db.flush()
        link = owner_filter(owner)
        rows = [
            Media(
                url=d.url,
                reference_token=d.reference_token,
                mime_type=d.mime_type,
                size=d.byte_size,
                recorded_date=utcnow(),
                **link,
            )
            for d in descriptors
        ]
        self.db.add_all(rows)
        await self.db.flush()
        return rows

    async def replace(
        self, current_rows: Sequence[Media], desired: Sequence[StoredObject], owner
    ) -> MediaDiff:
        """Make ``owner``'s media match ``desired``, compared by reference token."""
        current_tokens = {row.reference_token for row in current_rows}
        desired_tokens = {d.reference_token for d in desired}

        new = [d for d in desired if d.reference_token not in current_tokens]
        stale = [row for row in current_rows if row.reference_token not in desired_tokens]

        added = await self.attach(new, owner)
        removed = await self.detach(stale)
        return MediaDiff(added=added, removed=removed)

    async def detach(self, rows: Sequence[Media]) -> list[Media]:
        """Delete blobs, then their rows.

        When some blob deletes fail, the session is rolled back and only the
        rows whose blob is gone are deleted and committed, so no row outlives
        its blob. :class:`ObjectStoreError` is then raised for the rest.
        """
        rows = list(rows)
        if not rows:
            return []
        failed = await self._delete_blobs([row.reference_token for row in rows])
        if failed:
            await self._drop_rows_without_blobs(rows, set(failed))
            raise ObjectStoreError(
                f"Could not delete {len(failed)} of {len(rows)} media files",
                reference_tokens=failed,
            )
        self._forget(rows)
        for row in rows:
            await self.db.delete(row)
        await self.db.flush()
        return rows

    async def replace_all(self, owner, descriptors: Sequence[StoredObject]) -> MediaDiff:
        """Swap every media row of ``owner`` for ``descriptors``."""
        return await self.replace(await self.rows_of(owner), descriptors, owner)

    async def detach_all(self, owner) -> list[Media]:
        rows = await self.rows_of(owner)
        ensure(bool(rows), "No media found", NoContentError)
        return await self.detach(rows)

    async def rows_of(self, owner) -> list[Media]:
        (column, owner_id), = owner_filter(owner).items()
        stmt = select(Media).where(getattr(Media, column) == owner_id)
        return list((await self.db.execute(stmt)).scalars().all())

    async def detach_for_project(self, project: Project) -> list[Media]:
        return await self.detach_for_projects([project])

    async def detach_for_projects(self, projects: Sequence[Project]) -> list[Media]:
        """Detach every media row deleting ``projects`` would cascade to."""
        project_ids = [project.id for project in projects]
        if not project_ids:
            return []
        comment_ids = select(Comment.id).where(Comment.project_id.in_(project_ids))
        update_ids = select(ProgressUpdate.id).where(ProgressUpdate.project_id.in_(project_ids))
        report_ids = select(Report.id).where(
            or_(Report.project_id.in_(project_ids), Report.comment_id.in_(comment_ids))
        )
        stmt = select(Media).where(
            or_(
                Media.project_id.in_(project_ids),
                Media.progress_update_id.in_(update_ids),
                Media.report_id.in_(report_ids),
            )
        )
        rows = (await self.db.execute(stmt)).scalars().all()
        return await self.detach(rows)

    async def detach_for_comment(self, comment: Comment) -> list[Media]:
        report_ids = select(Report.id).where(Report.comment_id == comment.id)
        rows = (
            (await self.db.execute(select(Media).where(Media.report_id.in_(report_ids))))
            .scalars()
            .all()
        )
        return await self.detach(rows)

    # ---- queries -------------------------------------------------------------------

    async def list_media(
        self,
        owner,
        media_type: str | None = None,
        pagination: PaginationParams | None = None,
    ) -> dict[str, Any]:
        (column, owner_id), = owner_filter(owner).items()
        stmt = select(Media).where(getattr(Media, column) == owner_id)
        if media_type:
            ensure(media_type in MEDIA_TYPES, f"Invalid type: {media_type}")
            stmt = stmt.where(Media.mime_type.like(f"{media_type}/%"))
        stmt = stmt.order_by(desc(Media.created_at))
        return await paginate(self.db, stmt, pagination or PaginationParams())

    async def get_media(self, project: Project, media_id: UUID) -> Media:
        """Media shown on a project page: the project's own or its progress updates'."""
        stmt = select(Media).where(
            and_(
                Media.id == media_id,
                or_(
                    Media.project_id == project.id,
                    Media.progress_update_id.in_(
                        select(ProgressUpdate.id).where(ProgressUpdate.project_id == project.id)
                    ),
                ),
            )
        )
        media = (await self.db.execute(stmt)).scalar_one_or_none()
        return ensure_found(media, f"No media with id: {media_id}")

    async def delete_one(self, project: Project, media_id: UUID, media_url: str | None) -> Media:
        """Delete a single media file after checking the caller knows its URL."""
        ensure(bool(media_url), "media_url header is required")
        media = await self.get_media(project, media_id)
        ensure(media.url == media_url, "media_url does not match the media record")
        try:
            await self.detach([media])
            await self.db.commit()
            return media
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    # ---- reconciliation ------------------------------------------------------------

    async def reconcile(self, grace: timedelta | None = None) -> ReconcileResult:
        """Delete blobs without rows and rows without blobs.

        Blobs and rows younger than ``grace`` are skipped so uploads of
        in-flight requests are never swept.
        """
        if grace is None:
            grace = timedelta(minutes=settings.media_sweep_grace_minutes)
        cutoff = utcnow() - grace
        blobs = await self.store.list_objects()
        blob_tokens = set(blobs)
        all_rows = (await self.db.execute(select(Media))).scalars().all()
        row_tokens = {row.reference_token for row in all_rows}
        result = ReconcileResult()

        orphan_blobs = sorted(
            token
            for token, modified in blobs.items()
            if token not in row_tokens and modified <= cutoff
        )
        if orphan_blobs:
            failed = await self._delete_blobs(orphan_blobs)
            result.deleted_blobs = [t for t in orphan_blobs if t not in set(failed)]
            if failed:
                logger.warning("Orphan sweep could not delete %d blobs", len(failed))

        dangling = [
            row
            for row in all_rows
            if row.reference_token not in blob_tokens and row.created_at <= cutoff
        ]
        if dangling:
            self._forget(dangling)
            try:
                for row in dangling:
                    await self.db.delete(row)
                await self.db.commit()
            except SQLAlchemyError:
                await self.db.rollback()
                raise
            result.deleted_rows = [row.reference_token for row in dangling]

        logger.info(
            "Orphan sweep removed %d blobs and %d rows",
            len(result.deleted_blobs),
            len(result.deleted_rows),
        )
        return result

    # ---- helpers -------------------------------------------------------------------

    async def _bounded(self, awaitable):
        async with self._semaphore:
            return await awaitable

    def _forget(self, rows: Sequence[Media]) -> None:
        """Drop rows from owner collections already loaded in the session."""
        ids = {row.id for row in rows}
        for obj in list(self.db.identity_map.values()):
            if isinstance(obj, (Project, ProgressUpdate, Report)) and "media" in obj.__dict__:
                kept = [m for m in obj.media if m.id not in ids]
                if len(kept) != len(obj.media):
                    set_committed_value(obj, "media", kept)

    async def _drop_rows_without_blobs(self, rows: Sequence[Media], failed: set[str]) -> None:
        """Commit the deletion of rows whose blob is already gone, and nothing else."""
        gone = [row.id for row in rows if row.reference_token not in failed and row.id is not None]
        if not gone:
            return
        await self.db.rollback()
        try:
            await self.db.execute(delete(Media).where(Media.id.in_(gone)))
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        logger.warning("Removed %d media rows whose blobs were deleted", len(gone))

    async def _delete_blobs(self, tokens: Sequence[str]) -> list[str]:
        """Delete blobs concurrently and return the tokens that failed."""
        results = await asyncio.gather(
            *(self._bounded(self.store.delete(token)) for token in tokens),
            return_exceptions=True,
        )
        failed = []
        for token, outcome in zip(tokens, results, strict=True):
            if isinstance(outcome, BaseException):
                logger.warning("Delete of blob %s failed: %s", token, outcome)
                failed.append(token)
        return failed
