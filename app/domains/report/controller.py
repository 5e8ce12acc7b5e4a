"""Report API controller."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheClient
from app.core.dependencies import (
    get_cache,
    get_current_user,
    get_db,
    get_object_store,
    require_admin,
    validate_token,
)
from app.core.storage import S3ObjectStore
from app.domains.media.service import MediaService
from app.domains.report.service import ReportService
from app.schemas.base import ListResponseSchema, ResponseSchema
from app.schemas.media import MediaResponse
from app.schemas.report import ReportCreate, ReportResponse, ReportStatusUpdate
from app.shared.forms import parse_form
from app.shared.pagination import PaginationParams
from app.shared.targets import Target
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reports"], dependencies=[Depends(validate_token)])


def get_report_service(
    db: AsyncSession = Depends(get_db),
    store: S3ObjectStore = Depends(get_object_store),
    cache: CacheClient = Depends(get_cache),
) -> ReportService:
    return ReportService(db, MediaService(db, store), cache)


def _dump(report) -> dict:
    return ReportResponse.model_validate(report).model_dump()


@router.post("/projects/{project_id}/reports", response_model=ResponseSchema, status_code=201)
async def report_project(
    project_id: UUID = Path(..., description="Project ID"),
    content: str = Form(...),
    files: Optional[list[UploadFile]] = File(None),
    current_user: User = Depends(get_current_user),
    service: ReportService = Depends(get_report_service),
):
    data = parse_form(ReportCreate, content=content)
    report = await service.create_report(
        current_user, Target.project(project_id), data.content, files
    )
    return ResponseSchema(status="success", message="Report created", data=_dump(report))


@router.post("/comments/{comment_id}/reports", response_model=ResponseSchema, status_code=201)
async def report_comment(
    comment_id: UUID = Path(..., description="Comment ID"),
    content: str = Form(...),
    files: Optional[list[UploadFile]] = File(None),
    current_user: User = Depends(get_current_user),
    service: ReportService = Depends(get_report_service),
):
    data = parse_form(ReportCreate, content=content)
    report = await service.create_report(
        current_user, Target.comment(comment_id), data.content, files
    )
    return ResponseSchema(status="success", message="Report created", data=_dump(report))


# Admin moderation routes
@router.get("/reports", response_model=ListResponseSchema)
async def get_reports(
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="pending, resolved or rejected"),
    sort: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(PaginationParams().size, ge=1, le=100),
    _: User = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
):
    result = await service.list_reports(
        search, status, sort, PaginationParams(page=page, size=size)
    )
    return ListResponseSchema(
        status="success",
        data=[_dump(r) for r in result["items"]],
        total=result["total"],
        page=result["page"],
        size=result["size"],
        has_next=result["has_next"],
        has_prev=result["has_prev"],
    )


@router.get("/reports/{report_id}", response_model=ResponseSchema)
async def get_report(
    report_id: UUID = Path(..., description="Report ID"),
    _: User = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
):
    report = await service.get_report(report_id)
    return ResponseSchema(status="success", data=_dump(report))


@router.get("/reports/{report_id}/media", response_model=ListResponseSchema)
async def get_report_media(
    report_id: UUID = Path(..., description="Report ID"),
    type: Optional[str] = Query(None, description="image or video"),
    page: int = Query(1, ge=1),
    size: int = Query(PaginationParams().size, ge=1, le=100),
    _: User = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
):
    """Evidence files attached to a report."""
    result = await service.list_report_media(
        report_id, type, PaginationParams(page=page, size=size)
    )
    return ListResponseSchema(
        status="success",
        data=[MediaResponse.model_validate(m).model_dump() for m in result["items"]],
        total=result["total"],
        page=result["page"],
        size=result["size"],
        has_next=result["has_next"],
        has_prev=result["has_prev"],
    )


@router.patch("/reports/{report_id}", response_model=ResponseSchema)
async def update_report_status(
    payload: ReportStatusUpdate,
    report_id: UUID = Path(..., description="Report ID"),
    _: User = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
):
    report = await service.update_status(report_id, payload.status)
    return ResponseSchema(
        status="success", message=f"Report marked {report.status}", data=_dump(report)
    )


@router.delete("/reports/{report_id}", response_model=ResponseSchema)
async def delete_report(
    report_id: UUID = Path(..., description="Report ID"),
    _: User = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
):
    await service.delete_report(report_id)
    return ResponseSchema(status="success", message=f"Report: {report_id} deleted")


@router.delete("/reports", response_model=ResponseSchema)
async def delete_all_reports(
    _: User = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
):
    count = await service.delete_all_reports()
    return ResponseSchema(status="success", message="All reports deleted", data={"deleted": count})
