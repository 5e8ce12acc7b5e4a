"""Project API controller with FastAPI endpoints."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Header, Path, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheClient
from app.core.dependencies import (
    get_cache,
    get_current_user,
    get_db,
    get_object_store,
    require_staff,
    validate_token,
)
from app.core.storage import S3ObjectStore
from app.domains.media.service import MediaService
from app.domains.project.service import ProjectService
from app.schemas.base import ListResponseSchema, ResponseSchema
from app.schemas.media import MediaResponse
from app.schemas.project import ProjectCreate, ProjectFilter, ProjectUpdate
from app.shared.forms import parse_form
from app.shared.pagination import PaginationParams
from models.enums import ProjectStatus
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/projects",
    tags=["projects"],
    dependencies=[Depends(validate_token)],  # Global token validation for all routes
)


def get_project_service(
    db: AsyncSession = Depends(get_db),
    store: S3ObjectStore = Depends(get_object_store),
    cache: CacheClient = Depends(get_cache),
) -> ProjectService:
    return ProjectService(db, MediaService(db, store), cache)


@router.post("", response_model=ResponseSchema, status_code=201)
async def create_project(
    title: str = Form(...),
    description: Optional[str] = Form(None),
    cost: Optional[Decimal] = Form(None),
    start_date: Optional[datetime] = Form(None),
    due_date: Optional[datetime] = Form(None),
    status: Optional[ProjectStatus] = Form(None),
    progress: Optional[int] = Form(None),
    funding_source: Optional[str] = Form(None),
    implementing_agency: Optional[str] = Form(None),
    contract_term: Optional[str] = Form(None),
    contractor: Optional[str] = Form(None),
    tag_ids: Optional[list[UUID]] = Form(None),
    barangay_ids: Optional[list[UUID]] = Form(None),
    files: Optional[list[UploadFile]] = File(None),
    current_user: User = Depends(require_staff),
    service: ProjectService = Depends(get_project_service),
):
    """Create a new project with optional media files."""
    data = parse_form(
        ProjectCreate,
        title=title,
        description=description,
        cost=cost,
        start_date=start_date,
        due_date=due_date,
        status=status,
        progress=progress,
        funding_source=funding_source,
        implementing_agency=implementing_agency,
        contract_term=contract_term,
        contractor=contractor,
        tag_ids=tag_ids,
        barangay_ids=barangay_ids,
    )
    project = await service.create_project(data, current_user, files)

    return ResponseSchema(
        status="success", message="Success! New project created", data=project
    )


@router.get("", response_model=ListResponseSchema)
async def get_projects(
    search: Optional[str] = Query(None),
    status: Optional[ProjectStatus] = Query(None),
    tag_id: Optional[UUID] = Query(None),
    barangay_id: Optional[UUID] = Query(None),
    sort: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(PaginationParams().size, ge=1, le=100),
    service: ProjectService = Depends(get_project_service),
):
    """Get paginated list of projects with optional filters."""
    filters = ProjectFilter(
        search=search, status=status, tag_id=tag_id, barangay_id=barangay_id, sort=sort
    )
    result = await service.list_projects(filters, PaginationParams(page=page, size=size))

    return ListResponseSchema(
        status="success",
        data=result["items"],
        total=result["total"],
        page=result["page"],
        size=result["size"],
        has_next=result["has_next"],
        has_prev=result["has_prev"],
    )


@router.get("/{project_id}", response_model=ResponseSchema)
async def get_project(
    project_id: UUID = Path(..., description="Project ID"),
    service: ProjectService = Depends(get_project_service),
):
    """Get a specific project by ID."""
    project = await service.get_project(project_id)
    return ResponseSchema(status="success", data=project)


@router.patch("/{project_id}", response_model=ResponseSchema)
async def update_project(
    project_id: UUID = Path(..., description="Project ID"),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    cost: Optional[Decimal] = Form(None),
    start_date: Optional[datetime] = Form(None),
    due_date: Optional[datetime] = Form(None),
    completion_date: Optional[datetime] = Form(None),
    status: Optional[ProjectStatus] = Form(None),
    progress: Optional[int] = Form(None),
    funding_source: Optional[str] = Form(None),
    implementing_agency: Optional[str] = Form(None),
    contract_term: Optional[str] = Form(None),
    contractor: Optional[str] = Form(None),
    tag_ids: Optional[list[UUID]] = Form(None),
    barangay_ids: Optional[list[UUID]] = Form(None),
    replace_media: bool = Form(False),
    retained_media: Optional[list[str]] = Form(None),
    files: Optional[list[UploadFile]] = File(None),
    current_user: User = Depends(require_staff),
    service: ProjectService = Depends(get_project_service),
):
    """Update a project.

    New files are appended; with ``replace_media`` the project's media become
    the ``retained_media`` URLs plus the new files.
    """
    data = parse_form(
        ProjectUpdate,
        title=title,
        description=description,
        cost=cost,
        start_date=start_date,
        due_date=due_date,
        completion_date=completion_date,
        status=status,
        progress=progress,
        funding_source=funding_source,
        implementing_agency=implementing_agency,
        contract_term=contract_term,
        contractor=contractor,
        tag_ids=tag_ids,
        barangay_ids=barangay_ids,
    )
    project = await service.update_project(
        project_id,
        data,
        current_user,
        files=files,
        replace_media=replace_media,
        retained_media=retained_media,
    )

    return ResponseSchema(status="success", message="Success! Project updated", data=project)


@router.delete("/{project_id}", response_model=ResponseSchema)
async def delete_project(
    project_id: UUID = Path(..., description="Project ID"),
    current_user: User = Depends(require_staff),
    service: ProjectService = Depends(get_project_service),
):
    """Delete a project with everything attached to it."""
    await service.delete_project(project_id, current_user)
    return ResponseSchema(status="success", message=f"Project: {project_id} deleted")


@router.delete("", response_model=ResponseSchema)
async def delete_all_projects(
    current_user: User = Depends(require_staff),
    service: ProjectService = Depends(get_project_service),
):
    """Delete all projects (admins) or all own projects (barangay officials)."""
    count = await service.delete_all_projects(current_user)
    return ResponseSchema(
        status="success", message="All projects deleted", data={"deleted": count}
    )


@router.get("/{project_id}/media", response_model=ListResponseSchema)
async def get_project_media(
    project_id: UUID = Path(..., description="Project ID"),
    type: Optional[str] = Query(None, description="image or video"),
    page: int = Query(1, ge=1),
    size: int = Query(PaginationParams().size, ge=1, le=100),
    service: ProjectService = Depends(get_project_service),
):
    """List the media files attached directly to a project."""
    result = await service.list_project_media(
        project_id, type, PaginationParams(page=page, size=size)
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


@router.patch("/{project_id}/media", response_model=ResponseSchema)
async def replace_project_media(
    project_id: UUID = Path(..., description="Project ID"),
    files: Optional[list[UploadFile]] = File(None),
    current_user: User = Depends(require_staff),
    service: ProjectService = Depends(get_project_service),
):
    """Replace every media file of a project with the uploaded ones."""
    diff = await service.replace_project_media(project_id, current_user, files)
    if diff is None:
        return ResponseSchema(status="success", message="You have not uploaded any files")
    return ResponseSchema(
        status="success",
        message="Media updated",
        data=[MediaResponse.model_validate(m).model_dump() for m in diff.added],
    )


@router.delete("/{project_id}/media", response_model=ResponseSchema)
async def delete_all_project_media(
    project_id: UUID = Path(..., description="Project ID"),
    current_user: User = Depends(require_staff),
    service: ProjectService = Depends(get_project_service),
):
    count = await service.delete_all_project_media(project_id, current_user)
    return ResponseSchema(
        status="success", message="All media deleted", data={"deleted": count}
    )


@router.delete("/{project_id}/media/{media_id}", response_model=ResponseSchema)
async def delete_project_media(
    project_id: UUID = Path(..., description="Project ID"),
    media_id: UUID = Path(..., description="Media ID"),
    media_url: Optional[str] = Header(None, alias="media_url", convert_underscores=False),
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    """Delete one media file; the ``media_url`` header must match it."""
    media = await service.delete_project_media(project_id, media_id, media_url, current_user)
    return ResponseSchema(
        status="success",
        message=f"Media id: {media_id} deleted",
        data=MediaResponse.model_validate(media).model_dump(),
    )
