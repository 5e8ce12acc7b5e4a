"""Report service layer with business logic."""

import logging
from collections.abc import Sequence
from typing import Any
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import and_, asc, delete, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.cache import CacheClient
from app.domains.media.service import MediaService
from app.exceptions.base import ConflictError, NoContentError
from app.shared.guards import ensure, ensure_absent, ensure_found
from app.shared.pagination import PaginationParams, paginate
from app.shared.targets import Target, resolve_target
from models import Media, Report
from models.enums import ReportStatus
from models.user import User

logger = logging.getLogger(__name__)

FINAL_STATUSES = (ReportStatus.resolved, ReportStatus.rejected)


class ReportService:
    """Service class for report business logic."""

    def __init__(self, db: AsyncSession, media: MediaService, cache: CacheClient):
        self.db = db
        self.media = media
        self.cache = cache

    async def create_report(
        self,
        user: User,
        target: Target,
        content: str,
        files: Sequence[UploadFile] | None = None,
    ) -> Report:
        """File a report against a project or comment with optional media."""
        await resolve_target(self.db, target)
        duplicate = await self.db.execute(
            select(Report).where(
                and_(
                    Report.content == content,
                    Report.reported_by == user.id,
                    getattr(Report, target.column) == target.id,
                )
            )
        )
        ensure_absent(
            duplicate.scalars().first(),
            "Report already exists. Change your report content",
            ConflictError,
        )

        descriptors = await self.media.stage_uploads(files)
        report = Report(content=content, reported_by=user.id, **{target.column: target.id})

        async with self.media.staged(descriptors):
            self.db.add(report)
            await self.db.flush()
            await self.media.attach(descriptors, report)
            await self.db.commit()

        await self.cache.invalidate("report")
        logger.info("Report %s filed against %s %s", report.id, target.kind.value, target.id)
        return await self.get_report(report.id)

    async def get_report(self, report_id: UUID) -> Report:
        stmt = (
            select(Report)
            .options(selectinload(Report.media))
            .where(Report.id == report_id)
            .execution_options(populate_existing=True)
        )
        report = (await self.db.execute(stmt)).scalar_one_or_none()
        return ensure_found(report, f"No report with id: {report_id}")

    async def list_reports(
        self,
        search: str | None = None,
        status: str | None = None,
        sort: str | None = None,
        pagination: PaginationParams | None = None,
    ) -> dict[str, Any]:
        stmt = select(Report).options(selectinload(Report.media))
        if search:
            stmt = stmt.where(Report.content.ilike(f"%{search}%"))
        if status:
            ensure(status in {s.value for s in ReportStatus}, "Invalid status")
            stmt = stmt.where(Report.status == status)
        if sort:
            column = sort.lstrip("-")
            ensure(column in {"createdAt", "created_at"}, "Invalid sort column")
            stmt = stmt.order_by(
                desc(Report.created_at) if sort.startswith("-") else asc(Report.created_at)
            )
        else:
            stmt = stmt.order_by(desc(Report.created_at))
        return await paginate(self.db, stmt, pagination or PaginationParams())

    async def list_report_media(
        self,
        report_id: UUID,
        media_type: str | None = None,
        pagination: PaginationParams | None = None,
    ) -> dict[str, Any]:
        report = await self.get_report(report_id)
        return await self.media.list_media(report, media_type, pagination)

    async def update_status(self, report_id: UUID, status: ReportStatus) -> Report:
        """Moderate a pending report. Only pending -> resolved or rejected is allowed."""
        report = await self.get_report(report_id)
        ensure(report.status != status.value, f"Report is already {status.value}", ConflictError)
        ensure(
            report.status == ReportStatus.pending.value and status in FINAL_STATUSES,
            f"Report has already been {report.status}",
            ConflictError,
        )

        try:
            report.status = status.value
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate("report")
        return await self.get_report(report_id)

    async def delete_report(self, report_id: UUID) -> Report:
        report = await self.get_report(report_id)

        try:
            await self.media.detach(list(report.media))
            await self.db.delete(report)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate("report")
        return report

    async def delete_all_reports(self) -> int:
        total = (await self.db.execute(select(func.count(Report.id)))).scalar() or 0
        if total == 0:
            raise NoContentError("No reports found")

        rows = (
            (await self.db.execute(select(Media).where(Media.report_id.is_not(None))))
            .scalars()
            .all()
        )
        try:
            await self.media.detach(rows)
            await self.db.execute(delete(Report))
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate("report")
        return total
