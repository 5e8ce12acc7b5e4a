"""Reference data (barangays, tags, funding sources, announcements, contacts)."""

import logging
from typing import Any
from uuid import UUID

from pydantic import BaseModel as PydanticModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheClient
from app.exceptions.base import ConflictError, NoContentError
from app.shared.guards import ensure_absent, ensure_found
from models import Tag
from models.enums import TAGS
from models.user import User

logger = logging.getLogger(__name__)


class ReferenceService:
    """
    CRUD for one reference table.

    ``cache_key`` enables read-through caching of the full list; ``resource``
    names the invalidation rule applied after every write.
    """

    def __init__(
        self,
        db: AsyncSession,
        cache: CacheClient,
        model,
        response_schema: type[PydanticModel],
        resource: str,
        cache_key: str | None = None,
        unique_field: str | None = "name",
    ):
        self.db = db
        self.cache = cache
        self.model = model
        self.response_schema = response_schema
        self.resource = resource
        self.cache_key = cache_key
        self.unique_field = unique_field

    @property
    def label(self) -> str:
        return self.resource.replace("_", " ")

    async def list_items(self) -> list[dict[str, Any]]:
        async def load() -> list[dict[str, Any]]:
            order = getattr(self.model, self.unique_field or "created_at")
            rows = (await self.db.execute(select(self.model).order_by(order))).scalars().all()
            return [self.response_schema.model_validate(row).model_dump(mode="json") for row in rows]

        if self.cache_key:
            return await self.cache.read_through(self.cache_key, load)
        return await load()

    async def get_item(self, item_id: UUID):
        item = await self.db.get(self.model, item_id)
        return ensure_found(item, f"No {self.label} with id: {item_id}")

    async def create_item(self, values: dict[str, Any], user: User | None = None):
        await self._check_unique(values)
        if user is not None and hasattr(self.model, "created_by"):
            values = {**values, "created_by": user.id}
        item = self.model(**values)

        try:
            self.db.add(item)
            await self.db.commit()
            await self.db.refresh(item)
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate(self.resource)
        return item

    async def update_item(self, item_id: UUID, values: dict[str, Any]):
        item = await self.get_item(item_id)
        if self.unique_field and values.get(self.unique_field) not in (
            None,
            getattr(item, self.unique_field),
        ):
            await self._check_unique(values)

        try:
            for field, value in values.items():
                setattr(item, field, value)
            await self.db.commit()
            await self.db.refresh(item)
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate(self.resource)
        return item

    async def delete_item(self, item_id: UUID):
        item = await self.get_item(item_id)

        try:
            await self.db.delete(item)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate(self.resource)
        return item

    async def delete_all_items(self) -> int:
        items = (await self.db.execute(select(self.model))).scalars().all()
        if not items:
            raise NoContentError(f"No {self.label}s to delete")

        try:
            for item in items:
                await self.db.delete(item)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.cache.invalidate(self.resource)
        logger.info("Deleted %d %s rows", len(items), self.label)
        return len(items)

    async def _check_unique(self, values: dict[str, Any]) -> None:
        if not self.unique_field or values.get(self.unique_field) is None:
            return
        column = getattr(self.model, self.unique_field)
        existing = await self.db.execute(
            select(self.model).where(func.lower(column) == values[self.unique_field].lower())
        )
        ensure_absent(
            existing.scalars().first(),
            f"A {self.label} named {values[self.unique_field]} already exists",
            ConflictError,
        )


async def seed_tags(db: AsyncSession) -> int:
    """Insert the fixed tag list, skipping tags that already exist."""
    existing = set((await db.execute(select(Tag.name))).scalars().all())
    missing = [Tag(name=name) for name in TAGS if name not in existing]
    if not missing:
        return 0
    try:
        db.add_all(missing)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
    logger.info("Seeded %d tags", len(missing))
    return len(missing)

