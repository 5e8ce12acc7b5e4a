"""Comment API controller."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
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
from app.domains.comment.service import CommentService
from app.domains.media.service import MediaService
from app.schemas.base import ListResponseSchema, ResponseSchema
from app.schemas.comment import CommentCreate, CommentResponse, CommentWithCounts
from app.shared.pagination import PaginationParams
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["comments"], dependencies=[Depends(validate_token)])


def get_comment_service(
    db: AsyncSession = Depends(get_db),
    store: S3ObjectStore = Depends(get_object_store),
    cache: CacheClient = Depends(get_cache),
) -> CommentService:
    return CommentService(db, MediaService(db, store), cache)


def _dump(comment) -> dict:
    return CommentResponse.model_validate(comment).model_dump()


@router.post("/projects/{project_id}/comments", response_model=ResponseSchema, status_code=201)
async def create_comment(
    payload: CommentCreate,
    project_id: UUID = Path(..., description="Project ID"),
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    comment = await service.create_comment(project_id, payload.content, current_user)
    return ResponseSchema(status="success", message="Comment created", data=_dump(comment))


@router.get("/projects/{project_id}/comments", response_model=ListResponseSchema)
async def get_project_comments(
    project_id: UUID = Path(..., description="Project ID"),
    sort: Optional[str] = Query(None, description="createdAt or -createdAt"),
    page: int = Query(1, ge=1),
    size: int = Query(PaginationParams().size, ge=1, le=100),
    service: CommentService = Depends(get_comment_service),
):
    """Comments on a project, most liked first unless a sort is given."""
    result = await service.list_project_comments(
        project_id, sort, PaginationParams(page=page, size=size)
    )
    items = [
        CommentWithCounts(
            **_dump(item["comment"]),
            like_count=item["like_count"] or 0,
            dislike_count=item["dislike_count"] or 0,
            report_count=item["report_count"] or 0,
        ).model_dump()
        for item in result["items"]
    ]
    return ListResponseSchema(
        status="success",
        message=result["project_title"],
        data=items,
        total=result["total"],
        page=result["page"],
        size=result["size"],
        has_next=result["has_next"],
        has_prev=result["has_prev"],
    )


@router.patch("/projects/{project_id}/comments/{comment_id}", response_model=ResponseSchema)
async def edit_comment(
    payload: CommentCreate,
    project_id: UUID = Path(..., description="Project ID"),
    comment_id: UUID = Path(..., description="Comment ID"),
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    comment = await service.edit_comment(project_id, comment_id, payload.content, current_user)
    return ResponseSchema(status="success", message="Comment updated", data=_dump(comment))


@router.delete("/projects/{project_id}/comments/{comment_id}", response_model=ResponseSchema)
async def delete_comment(
    project_id: UUID = Path(..., description="Project ID"),
    comment_id: UUID = Path(..., description="Comment ID"),
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    await service.delete_comment(project_id, comment_id, current_user)
    return ResponseSchema(status="success", message=f"Comment: {comment_id} deleted")


# Admin moderation routes
@router.get("/comments", response_model=ListResponseSchema)
async def get_comments(
    search: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(PaginationParams().size, ge=1, le=100),
    _: User = Depends(require_admin),
    service: CommentService = Depends(get_comment_service),
):
    result = await service.list_comments(search, sort, PaginationParams(page=page, size=size))
    return ListResponseSchema(
        status="success",
        data=[_dump(c) for c in result["items"]],
        total=result["total"],
        page=result["page"],
        size=result["size"],
        has_next=result["has_next"],
        has_prev=result["has_prev"],
    )


@router.get("/comments/{comment_id}", response_model=ResponseSchema)
async def get_comment(
    comment_id: UUID = Path(..., description="Comment ID"),
    service: CommentService = Depends(get_comment_service),
):
    comment = await service.get_comment(comment_id)
    return ResponseSchema(status="success", data=_dump(comment))


@router.delete("/comments/{comment_id}", response_model=ResponseSchema)
async def remove_comment(
    comment_id: UUID = Path(..., description="Comment ID"),
    current_user: User = Depends(require_admin),
    service: CommentService = Depends(get_comment_service),
):
    await service.delete_comment(None, comment_id, current_user)
    return ResponseSchema(status="success", message=f"Comment: {comment_id} deleted")


@router.delete("/comments", response_model=ResponseSchema)
async def delete_all_comments(
    _: User = Depends(require_admin),
    service: CommentService = Depends(get_comment_service),
):
    count = await service.delete_all_comments()
    return ResponseSchema(status="success", message="All comments deleted", data={"deleted": count})
