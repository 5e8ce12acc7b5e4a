"""Celery tasks for media maintenance."""

import asyncio
import logging
from typing import Any

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

# Import all models to ensure they're registered before creating session
import models  # noqa: F401

from app.celery_app import celery_app
from app.core.cache import CacheClient
from app.core.config import settings
from app.core.storage import S3ObjectStore
from app.database import enable_sqlite_foreign_keys
from app.domains.media.service import MediaService

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.media_tasks.reconcile_media_task", bind=True)
def reconcile_media_task(self) -> dict[str, Any]:
    """Nightly orphan sweep between Media rows and the object store."""
    logger.info("Starting media reconcile (task %s)", self.request.id)

    try:
        result = asyncio.run(reconcile_media())
    except Exception as e:
        logger.error("Media reconcile failed: %s", e)
        raise self.retry(exc=e, countdown=60 * 5, max_retries=3)

    logger.info("Media reconcile finished: %s", result)
    return result


async def reconcile_media(
    store: S3ObjectStore | None = None, cache: CacheClient | None = None
) -> dict[str, Any]:
    """Run one sweep on a private engine; the event loop is new for every task run."""
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    if settings.database_url.startswith("sqlite"):
        enable_sqlite_foreign_keys(engine.sync_engine)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    cache = cache or CacheClient()

    try:
        async with session_factory() as session:
            result = await MediaService(session, store or S3ObjectStore()).reconcile()
        if result.deleted_rows:
            await cache.invalidate("media")
        return result.as_dict()
    finally:
        await cache.close()
        await engine.dispose()
