"""Reaction service layer with business logic.

Project reactions toggle and switch: reacting again with the same type
removes the reaction, reacting with the other type replaces it. Comment
reactions are created once; any further reaction on the same comment is a
conflict.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import and_, asc, delete, desc, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheClient
from app.exceptions.base import AppPermissionError, ConflictError, NoContentError, NotFoundError
from app.shared.guards import ensure, ensure_absent, ensure_found
from app.shared.pagination import PaginationParams, paginate
from app.shared.targets import Target, resolve_target
from models import Reaction
from models.enums import ReactionType, TargetKind
from models.user import User

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {"createdAt": Reaction.created_at, "created_at": Reaction.created_at}


class ReactionOutcome(str, Enum):
    created = "created"
    updated = "updated"
    removed = "removed"


@dataclass
class ReactionResult:
    outcome: ReactionOutcome
    reaction: Reaction


class ReactionService:
    """Service class for reaction business logic."""

    def __init__(self, db: AsyncSession, cache: CacheClient):
        self.db = db
        self.cache = cache

    async def react(
        self, user: User, target: Target, reaction_type: ReactionType
    ) -> ReactionResult:
        """Create, switch or remove ``user``'s reaction on ``target``."""
        user_id = user.id
        await resolve_target(self.db, target)

        try:
            result = await self._apply(user_id, target, reaction_type)
        except IntegrityError:
            # Another request inserted the row between our lookup and our insert.
            if target.kind is TargetKind.comment:
                raise ConflictError("You have already reacted to this comment")
            logger.info("Concurrent reaction on %s %s, re-evaluating", target.kind.value, target.id)
            result = await self._apply(user_id, target, reaction_type)

        await self.cache.invalidate("reaction")
        return result

    async def _apply(
        self, user_id: UUID, target: Target, reaction_type: ReactionType
    ) -> ReactionResult:
        existing = await self._find(user_id, target)

        if target.kind is TargetKind.comment:
            ensure_absent(existing, "You have already reacted to this comment", ConflictError)

        try:
            if existing is None:
                reaction = Reaction(
                    reacted_by=user_id,
                    reaction_type=reaction_type.value,
                    **{target.column: target.id},
                )
                self.db.add(reaction)
                await self.db.commit()
                await self.db.refresh(reaction)
                return ReactionResult(ReactionOutcome.created, reaction)

            if existing.reaction_type == reaction_type.value:
                await self.db.delete(existing)
                await self.db.commit()
                return ReactionResult(ReactionOutcome.removed, existing)

            existing.reaction_type = reaction_type.value
            await self.db.commit()
            await self.db.refresh(existing)
            return ReactionResult(ReactionOutcome.updated, existing)
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def edit_reaction(
        self, user: User, target: Target, reaction_id: UUID, reaction_type: ReactionType
    ) -> Reaction:
        reaction = await self._get_owned(user, target, reaction_id, "edit")
        ensure(
            reaction.reaction_type != reaction_type.value,
            "You have already reacted with this type",
            ConflictError,
        )

        try:
            reaction.reaction_type = reaction_type.value
            await self.db.commit()
            await self.db.refresh(reaction)
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate("reaction")
        return reaction

    async def delete_reaction(self, user: User, target: Target, reaction_id: UUID) -> Reaction:
        reaction = await self._get_owned(user, target, reaction_id, "delete")

        try:
            await self.db.delete(reaction)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate("reaction")
        return reaction

    async def get_reaction(self, reaction_id: UUID) -> Reaction:
        reaction = await self.db.get(Reaction, reaction_id)
        return ensure_found(reaction, f"No reaction with id: {reaction_id}")

    async def list_reactions(
        self,
        reaction_type: str | None = None,
        reaction_target: str | None = None,
        sort: str | None = None,
        pagination: PaginationParams | None = None,
        target: Target | None = None,
    ) -> dict[str, Any]:
        stmt = select(Reaction)

        if target is not None:
            stmt = stmt.where(getattr(Reaction, target.column) == target.id)
        if reaction_type:
            ensure(
                reaction_type in {t.value for t in ReactionType},
                "Invalid filter for reaction type",
            )
            stmt = stmt.where(Reaction.reaction_type == reaction_type)
        if reaction_target:
            ensure(
                reaction_target in {t.value for t in TargetKind},
                "Invalid filter for reaction target",
            )
            stmt = stmt.where(getattr(Reaction, f"{reaction_target}_id").is_not(None))

        stmt = stmt.order_by(self._order_by(sort))
        return await paginate(self.db, stmt, pagination or PaginationParams())

    async def count_by_type(self, target: Target) -> dict[str, int]:
        await resolve_target(self.db, target)
        stmt = (
            select(Reaction.reaction_type, func.count(Reaction.id))
            .where(getattr(Reaction, target.column) == target.id)
            .group_by(Reaction.reaction_type)
        )
        counts = {t.value: 0 for t in ReactionType}
        for reaction_type, count in (await self.db.execute(stmt)).all():
            counts[reaction_type] = count
        return counts

    async def delete_all_reactions(self) -> int:
        total = (await self.db.execute(select(func.count(Reaction.id)))).scalar() or 0
        if total == 0:
            raise NoContentError("No reactions found")

        try:
            await self.db.execute(delete(Reaction))
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate("reaction")
        return total

    # Private helper methods
    async def _find(self, user_id: UUID, target: Target) -> Reaction | None:
        stmt = select(Reaction).where(
            and_(
                Reaction.reacted_by == user_id,
                getattr(Reaction, target.column) == target.id,
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _get_owned(
        self, user: User, target: Target, reaction_id: UUID, action: str
    ) -> Reaction:
        await resolve_target(self.db, target)
        reaction = await self.get_reaction(reaction_id)
        if not target.matches(reaction):
            raise NotFoundError(
                f"No reaction with id: {reaction_id} on {target.kind.value} {target.id}"
            )
        if reaction.reacted_by != user.id:
            raise AppPermissionError(f"You are not allowed to {action} this reaction")
        return reaction

    @staticmethod
    def _order_by(sort: str | None):
        if not sort:
            return desc(Reaction.created_at)
        # A leading "-" sorts oldest first.
        descending = not sort.startswith("-")
        column = SORTABLE_COLUMNS.get(sort.lstrip("-"))
        ensure(column is not None, "Invalid sort column")
        return desc(column) if descending else asc(column)
