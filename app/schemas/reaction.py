"""Reaction schemas for request/response serialization."""

from uuid import UUID

from models.enums import ReactionType

from .base import BaseModelSchema, BaseSchema


class ReactionRequest(BaseSchema):
    reaction_type: ReactionType


class ReactionResponse(BaseModelSchema):
    reacted_by: UUID
    reaction_type: ReactionType
    project_id: UUID | None = None
    comment_id: UUID | None = None


class ReactionCounts(BaseSchema):
    like: int = 0
    dislike: int = 0
