"""Media maintenance endpoints."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheClient
from app.core.dependencies import get_cache, get_db, get_object_store, require_admin, validate_token
from app.core.storage import S3ObjectStore
from app.domains.media.service import MediaService
from app.schemas.base import ResponseSchema
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/media", tags=["media"], dependencies=[Depends(validate_token)])


@router.post("/reconcile", response_model=ResponseSchema)
async def reconcile_media(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    store: S3ObjectStore = Depends(get_object_store),
    cache: CacheClient = Depends(get_cache),
):
    """Run the orphan sweep now instead of waiting for the nightly job."""
    result = await MediaService(db, store).reconcile()
    if result.deleted_rows:
        await cache.invalidate("media")
    return ResponseSchema(status="success", message="Media reconciled", data=result.as_dict())
