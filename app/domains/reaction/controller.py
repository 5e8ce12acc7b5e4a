"""Reaction API controller for projects and comments."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheClient
from app.core.dependencies import (
    get_cache,
    get_current_user,
    get_db,
    require_admin,
    validate_token,
)
from app.domains.reaction.service import ReactionOutcome, ReactionService
from app.schemas.base import ListResponseSchema, ResponseSchema
from app.schemas.reaction import ReactionCounts, ReactionRequest, ReactionResponse
from app.shared.pagination import PaginationParams
from app.shared.targets import Target
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reactions"], dependencies=[Depends(validate_token)])

OUTCOME_MESSAGES = {
    ReactionOutcome.created: "Reaction created",
    ReactionOutcome.updated: "Reaction updated",
    ReactionOutcome.removed: "Reaction removed",
}


def get_reaction_service(
    db: AsyncSession = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
) -> ReactionService:
    return ReactionService(db, cache)


def _dump(reaction) -> dict:
    return ReactionResponse.model_validate(reaction).model_dump()


async def _react(
    target: Target, payload: ReactionRequest, user: User, response: Response, service: ReactionService
) -> ResponseSchema:
    result = await service.react(user, target, payload.reaction_type)
    response.status_code = 201 if result.outcome is ReactionOutcome.created else 200
    return ResponseSchema(
        status="success",
        message=OUTCOME_MESSAGES[result.outcome],
        data={"outcome": result.outcome.value, "reaction": _dump(result.reaction)},
    )


@router.post("/projects/{project_id}/reactions", response_model=ResponseSchema)
async def react_to_project(
    payload: ReactionRequest,
    response: Response,
    project_id: UUID = Path(..., description="Project ID"),
    current_user: User = Depends(get_current_user),
    service: ReactionService = Depends(get_reaction_service),
):
    """Like or dislike a project. The same reaction again removes it."""
    return await _react(Target.project(project_id), payload, current_user, response, service)


@router.post("/comments/{comment_id}/reactions", response_model=ResponseSchema)
async def react_to_comment(
    payload: ReactionRequest,
    response: Response,
    comment_id: UUID = Path(..., description="Comment ID"),
    current_user: User = Depends(get_current_user),
    service: ReactionService = Depends(get_reaction_service),
):
    """Like or dislike a comment, once."""
    return await _react(Target.comment(comment_id), payload, current_user, response, service)


@router.get("/projects/{project_id}/reactions/count", response_model=ResponseSchema)
async def count_project_reactions(
    project_id: UUID = Path(..., description="Project ID"),
    service: ReactionService = Depends(get_reaction_service),
):
    counts = await service.count_by_type(Target.project(project_id))
    return ResponseSchema(status="success", data=ReactionCounts(**counts).model_dump())


@router.get("/comments/{comment_id}/reactions/count", response_model=ResponseSchema)
async def count_comment_reactions(
    comment_id: UUID = Path(..., description="Comment ID"),
    service: ReactionService = Depends(get_reaction_service),
):
    counts = await service.count_by_type(Target.comment(comment_id))
    return ResponseSchema(status="success", data=ReactionCounts(**counts).model_dump())


@router.patch("/projects/{project_id}/reactions/{reaction_id}", response_model=ResponseSchema)
async def edit_project_reaction(
    payload: ReactionRequest,
    project_id: UUID = Path(..., description="Project ID"),
    reaction_id: UUID = Path(..., description="Reaction ID"),
    current_user: User = Depends(get_current_user),
    service: ReactionService = Depends(get_reaction_service),
):
    reaction = await service.edit_reaction(
        current_user, Target.project(project_id), reaction_id, payload.reaction_type
    )
    return ResponseSchema(status="success", message="Reaction updated", data=_dump(reaction))


@router.patch("/comments/{comment_id}/reactions/{reaction_id}", response_model=ResponseSchema)
async def edit_comment_reaction(
    payload: ReactionRequest,
    comment_id: UUID = Path(..., description="Comment ID"),
    reaction_id: UUID = Path(..., description="Reaction ID"),
    current_user: User = Depends(get_current_user),
    service: ReactionService = Depends(get_reaction_service),
):
    reaction = await service.edit_reaction(
        current_user, Target.comment(comment_id), reaction_id, payload.reaction_type
    )
    return ResponseSchema(status="success", message="Reaction updated", data=_dump(reaction))


@router.delete("/projects/{project_id}/reactions/{reaction_id}", response_model=ResponseSchema)
async def delete_project_reaction(
    project_id: UUID = Path(..., description="Project ID"),
    reaction_id: UUID = Path(..., description="Reaction ID"),
    current_user: User = Depends(get_current_user),
    service: ReactionService = Depends(get_reaction_service),
):
    await service.delete_reaction(current_user, Target.project(project_id), reaction_id)
    return ResponseSchema(status="success", message=f"Reaction: {reaction_id} deleted")


@router.delete("/comments/{comment_id}/reactions/{reaction_id}", response_model=ResponseSchema)
async def delete_comment_reaction(
    comment_id: UUID = Path(..., description="Comment ID"),
    reaction_id: UUID = Path(..., description="Reaction ID"),
    current_user: User = Depends(get_current_user),
    service: ReactionService = Depends(get_reaction_service),
):
    await service.delete_reaction(current_user, Target.comment(comment_id), reaction_id)
    return ResponseSchema(status="success", message=f"Reaction: {reaction_id} deleted")


# Admin routes
@router.get("/reactions", response_model=ListResponseSchema)
async def get_reactions(
    type: Optional[str] = Query(None, description="like or dislike"),
    target: Optional[str] = Query(None, description="project or comment"),
    sort: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(PaginationParams().size, ge=1, le=100),
    _: User = Depends(require_admin),
    service: ReactionService = Depends(get_reaction_service),
):
    result = await service.list_reactions(
        type, target, sort, PaginationParams(page=page, size=size)
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


@router.get("/reactions/{reaction_id}", response_model=ResponseSchema)
async def get_reaction(
    reaction_id: UUID = Path(..., description="Reaction ID"),
    _: User = Depends(require_admin),
    service: ReactionService = Depends(get_reaction_service),
):
    reaction = await service.get_reaction(reaction_id)
    return ResponseSchema(status="success", data=_dump(reaction))


@router.delete("/reactions", response_model=ResponseSchema)
async def delete_all_reactions(
    _: User = Depends(require_admin),
    service: ReactionService = Depends(get_reaction_service),
):
    count = await service.delete_all_reactions()
    return ResponseSchema(status="success", message="All reactions deleted", data={"deleted": count})
