"""Progress history API controller."""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheClient
from app.core.dependencies import (
    get_cache,
    get_db,
    get_object_store,
    require_staff,
    validate_token,
)
from app.core.storage import S3ObjectStore
from app.domains.media.service import MediaService
from app.domains.progress.service import ProgressService
from app.schemas.base import ListResponseSchema, ResponseSchema
from app.schemas.media import MediaResponse
from app.schemas.progress import ProgressUpdateCreate, ProgressUpdateEdit, ProgressUpdateResponse
from app.shared.forms import parse_form
from app.shared.pagination import PaginationParams
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/projects/{project_id}/progressHistory",
    tags=["progress"],
    dependencies=[Depends(validate_token)],
)


def get_progress_service(
    db: AsyncSession = Depends(get_db),
    store: S3ObjectStore = Depends(get_object_store),
    cache: CacheClient = Depends(get_cache),
) -> ProgressService:
    return ProgressService(db, MediaService(db, store), cache)


@router.post("", response_model=ResponseSchema, status_code=201)
async def create_progress_update(
    project_id: UUID = Path(..., description="Project ID"),
    progress: int = Form(...),
    remarks: str = Form(...),
    date: datetime = Form(...),
    files: Optional[list[UploadFile]] = File(None),
    current_user: User = Depends(require_staff),
    service: ProgressService = Depends(get_progress_service),
):
    """Record a progress update; the project's status follows the new progress."""
    data = parse_form(ProgressUpdateCreate, progress=progress, remarks=remarks, date=date)
    update = await service.create_update(
        current_user, project_id, data.progress, data.remarks, data.date, files
    )
    return ResponseSchema(
        status="success",
        message="Progress history created",
        data=ProgressUpdateResponse.model_validate(update).model_dump(),
    )


@router.get("", response_model=ListResponseSchema)
async def get_progress_history(
    project_id: UUID = Path(..., description="Project ID"),
    sort: Optional[str] = Query(None, description="latest or oldest"),
    page: int = Query(1, ge=1),
    size: int = Query(PaginationParams().size, ge=1, le=100),
    service: ProgressService = Depends(get_progress_service),
):
    result = await service.list_updates(project_id, sort, PaginationParams(page=page, size=size))
    return ListResponseSchema(
        status="success",
        data=[ProgressUpdateResponse.model_validate(u).model_dump() for u in result["items"]],
        total=result["total"],
        page=result["page"],
        size=result["size"],
        has_next=result["has_next"],
        has_prev=result["has_prev"],
    )


@router.get("/{update_id}", response_model=ResponseSchema)
async def get_progress_update(
    project_id: UUID = Path(..., description="Project ID"),
    update_id: UUID = Path(..., description="Progress update ID"),
    service: ProgressService = Depends(get_progress_service),
):
    update = await service.get_update(project_id, update_id)
    return ResponseSchema(
        status="success", data=ProgressUpdateResponse.model_validate(update).model_dump()
    )


@router.patch("/{update_id}", response_model=ResponseSchema)
async def edit_progress_update(
    project_id: UUID = Path(..., description="Project ID"),
    update_id: UUID = Path(..., description="Progress update ID"),
    progress: Optional[int] = Form(None),
    remarks: Optional[str] = Form(None),
    date: Optional[datetime] = Form(None),
    replace_media: bool = Form(False),
    retained_media: Optional[list[str]] = Form(None),
    files: Optional[list[UploadFile]] = File(None),
    current_user: User = Depends(require_staff),
    service: ProgressService = Depends(get_progress_service),
):
    data = parse_form(ProgressUpdateEdit, progress=progress, remarks=remarks, date=date)
    update = await service.edit_update(
        current_user,
        project_id,
        update_id,
        progress=data.progress,
        remarks=data.remarks,
        date=data.date,
        files=files,
        replace_media=replace_media,
        retained_media=retained_media,
    )
    return ResponseSchema(
        status="success",
        message="Progress history updated",
        data=ProgressUpdateResponse.model_validate(update).model_dump(),
    )


@router.delete("/{update_id}", response_model=ResponseSchema)
async def delete_progress_update(
    project_id: UUID = Path(..., description="Project ID"),
    update_id: UUID = Path(..., description="Progress update ID"),
    current_user: User = Depends(require_staff),
    service: ProgressService = Depends(get_progress_service),
):
    await service.delete_update(current_user, project_id, update_id)
    return ResponseSchema(status="success", message=f"Progress history: {update_id} deleted")


@router.delete("", response_model=ResponseSchema)
async def delete_progress_history(
    project_id: UUID = Path(..., description="Project ID"),
    current_user: User = Depends(require_staff),
    service: ProgressService = Depends(get_progress_service),
):
    count = await service.delete_all_updates(current_user, project_id)
    return ResponseSchema(
        status="success", message="Progress history deleted", data={"deleted": count}
    )


@router.get("/{update_id}/media", response_model=ListResponseSchema)
async def get_progress_update_media(
    project_id: UUID = Path(..., description="Project ID"),
    update_id: UUID = Path(..., description="Progress update ID"),
    type: Optional[str] = Query(None, description="image or video"),
    page: int = Query(1, ge=1),
    size: int = Query(PaginationParams().size, ge=1, le=100),
    service: ProgressService = Depends(get_progress_service),
):
    result = await service.list_update_media(
        project_id, update_id, type, PaginationParams(page=page, size=size)
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


@router.patch("/{update_id}/media", response_model=ResponseSchema)
async def replace_progress_update_media(
    project_id: UUID = Path(..., description="Project ID"),
    update_id: UUID = Path(..., description="Progress update ID"),
    files: Optional[list[UploadFile]] = File(None),
    current_user: User = Depends(require_staff),
    service: ProgressService = Depends(get_progress_service),
):
    """Replace every media file of a progress update with the uploaded ones."""
    diff = await service.replace_update_media(current_user, project_id, update_id, files)
    if diff is None:
        return ResponseSchema(status="success", message="You have not uploaded any files")
    return ResponseSchema(
        status="success",
        message="Media updated",
        data=[MediaResponse.model_validate(m).model_dump() for m in diff.added],
    )


@router.delete("/{update_id}/media", response_model=ResponseSchema)
async def delete_progress_update_media(
    project_id: UUID = Path(..., description="Project ID"),
    update_id: UUID = Path(..., description="Progress update ID"),
    current_user: User = Depends(require_staff),
    service: ProgressService = Depends(get_progress_service),
):
    count = await service.delete_all_update_media(current_user, project_id, update_id)
    return ResponseSchema(
        status="success", message="All media deleted", data={"deleted": count}
    )
