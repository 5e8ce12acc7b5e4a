"""Redis-backed list cache and its invalidation rules."""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import settings
from app.exceptions.infrastructure import CacheUnavailableError

logger = logging.getLogger(__name__)

UNKNOWN_GENERATION = "unknown"


class CacheKeys:
    PROJECTS = "projects"
    SINGLE_PROJECT = "single_project"
    ANNOUNCEMENTS = "announcements"
    CONTACTS = "contacts"
    USERS = "users"
    BARANGAYS = "barangays"


CACHE_EXPIRIES: dict[str, int] = {
    CacheKeys.PROJECTS: 86400,
    CacheKeys.SINGLE_PROJECT: 86400,
    CacheKeys.ANNOUNCEMENTS: 86400,
    CacheKeys.CONTACTS: 86400,
    CacheKeys.USERS: 86400,
    CacheKeys.BARANGAYS: 86400,
}

# Mutated resource -> keys that must be purged afterwards.
INVALIDATION_RULES: dict[str, tuple[str, ...]] = {
    "project": (CacheKeys.PROJECTS, CacheKeys.SINGLE_PROJECT),
    "progress_update": (CacheKeys.PROJECTS, CacheKeys.SINGLE_PROJECT),
    "media": (CacheKeys.PROJECTS, CacheKeys.SINGLE_PROJECT),
    "reaction": (CacheKeys.PROJECTS, CacheKeys.SINGLE_PROJECT),
    "comment": (CacheKeys.PROJECTS, CacheKeys.SINGLE_PROJECT),
    "report": (CacheKeys.PROJECTS, CacheKeys.SINGLE_PROJECT),
    "user": (CacheKeys.USERS,),
    "barangay": (CacheKeys.BARANGAYS, CacheKeys.PROJECTS, CacheKeys.SINGLE_PROJECT),
    "tag": (CacheKeys.PROJECTS, CacheKeys.SINGLE_PROJECT),
    "funding_source": (CacheKeys.PROJECTS, CacheKeys.SINGLE_PROJECT),
    "announcement": (CacheKeys.ANNOUNCEMENTS,),
    "contact": (CacheKeys.CONTACTS,),
}


def generation_key(key: str) -> str:
    return f"{key}:generation"


class CacheClient:
    """
    JSON cache over ``redis.asyncio``.

    Reads degrade to a miss when Redis fails. Deletes are retried and raise
    :class:`CacheUnavailableError` when the key could not be purged, so a
    write never completes while a stale list stays cached.
    """

    def __init__(self, redis: Redis | None = None, enabled: bool | None = None):
        self.enabled = settings.cache_enabled if enabled is None else enabled
        self.redis = redis
        if self.redis is None and self.enabled:
            self.redis = Redis.from_url(settings.redis_url, decode_responses=True)

    async def get_json(self, key: str) -> Any | None:
        if not self.enabled:
            return None
        try:
            raw = await self.redis.get(key)
        except RedisError as e:
            logger.warning("Cache read for %s failed, treating as miss: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable cache entry %s", key)
            await self.delete(key)
            return None

    async def delete(self, *keys: str) -> None:
        """Purge ``keys`` and bump their generations so in-flight fills are dropped."""
        if not self.enabled or not keys:
            return
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(RedisError),
                stop=stop_after_attempt(3),
                wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    # Bump first so a fill racing this purge is dropped.
                    for key in keys:
                        await self.redis.incr(generation_key(key))
                    await self.redis.delete(*keys)
        except RedisError as e:
            logger.error("Could not purge cache keys %s: %s", keys, e)
            raise CacheUnavailableError() from e

    async def generation(self, key: str) -> str | None:
        """Current generation of ``key``; read it before loading a value to :meth:`fill`."""
        if not self.enabled:
            return None
        try:
            return await self.redis.get(generation_key(key))
        except RedisError as e:
            logger.warning("Cache generation read for %s failed: %s", key, e)
            return UNKNOWN_GENERATION

    async def fill(
        self, key: str, value: Any, generation: str | None, ttl: int | None = None
    ) -> bool:
        """Store ``value`` unless ``key`` was invalidated after ``generation`` was read."""
        if not self.enabled or generation == UNKNOWN_GENERATION:
            return False
        gen_key = generation_key(key)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                await pipe.watch(gen_key)
                if await pipe.get(gen_key) != generation:
                    logger.debug("Dropping fill of %s, invalidated during load", key)
                    return False
                pipe.multi()
                pipe.set(key, json.dumps(value, default=str), ex=ttl or CACHE_EXPIRIES.get(key, 60))
                await pipe.execute()
        except WatchError:
            logger.debug("Dropping fill of %s, invalidated while storing", key)
            return False
        except RedisError as e:
            logger.warning("Cache write for %s failed: %s", key, e)
            return False
        return True

    async def read_through(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value for ``key`` or load, store and return it."""
        cached = await self.get_json(key)
        if cached is not None:
            return cached
        generation = await self.generation(key)
        value = await loader()
        await self.fill(key, value, generation)
        return value

    async def get_single(self, key: str, expected_id: Any) -> Any | None:
        """Return the cached item only when it is the one requested."""
        cached = await self.get_json(key)
        if cached is None:
            return None
        if not isinstance(cached, dict) or str(cached.get("id")) != str(expected_id):
            await self.delete(key)
            return None
        return cached

    async def invalidate(self, resource: str) -> None:
        keys = INVALIDATION_RULES.get(resource, ())
        if keys:
            await self.delete(*keys)

    async def close(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()
