"""
Unit tests for the cache client and invalidation rules.
"""

import json

import pytest

from app.core.cache import (
    CACHE_EXPIRIES,
    INVALIDATION_RULES,
    CacheClient,
    CacheKeys,
    generation_key,
)
from app.exceptions.infrastructure import CacheUnavailableError


class TestCacheClient:
    @pytest.mark.asyncio
    async def test_fill_and_get(self, cache, fake_redis):
        assert await cache.fill(CacheKeys.PROJECTS, {"items": [1, 2]}, None)

        assert await cache.get_json(CacheKeys.PROJECTS) == {"items": [1, 2]}
        assert fake_redis.ttls[CacheKeys.PROJECTS] == CACHE_EXPIRIES[CacheKeys.PROJECTS]

    @pytest.mark.asyncio
    async def test_read_failure_is_a_miss(self, cache, fake_redis):
        fake_redis.store[CacheKeys.USERS] = json.dumps([1])
        fake_redis.fail_reads = True

        assert await cache.get_json(CacheKeys.USERS) is None

    @pytest.mark.asyncio
    async def test_undecodable_entry_discarded(self, cache, fake_redis):
        fake_redis.store[CacheKeys.USERS] = "{not json"

        assert await cache.get_json(CacheKeys.USERS) is None
        assert CacheKeys.USERS not in fake_redis.store

    @pytest.mark.asyncio
    async def test_read_through_loads_once(self, cache):
        calls = []

        async def loader():
            calls.append(1)
            return ["barangay"]

        assert await cache.read_through(CacheKeys.BARANGAYS, loader) == ["barangay"]
        assert await cache.read_through(CacheKeys.BARANGAYS, loader) == ["barangay"]
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_get_single_mismatch_purges(self, cache, fake_redis):
        await cache.fill(CacheKeys.SINGLE_PROJECT, {"id": "project-a"}, None)

        assert await cache.get_single(CacheKeys.SINGLE_PROJECT, "project-b") is None
        assert CacheKeys.SINGLE_PROJECT not in fake_redis.store

    @pytest.mark.asyncio
    async def test_get_single_match(self, cache):
        await cache.fill(CacheKeys.SINGLE_PROJECT, {"id": "project-a"}, None)

        assert await cache.get_single(CacheKeys.SINGLE_PROJECT, "project-a") == {"id": "project-a"}

    @pytest.mark.asyncio
    async def test_invalidate_uses_rules(self, cache, fake_redis):
        for key in (CacheKeys.PROJECTS, CacheKeys.SINGLE_PROJECT, CacheKeys.USERS):
            fake_redis.store[key] = "1"

        await cache.invalidate("progress_update")

        assert CacheKeys.PROJECTS not in fake_redis.store
        assert CacheKeys.SINGLE_PROJECT not in fake_redis.store
        assert fake_redis.store[CacheKeys.USERS] == "1"

    @pytest.mark.asyncio
    async def test_invalidate_failure_raises(self, cache, fake_redis):
        fake_redis.fail_deletes = True

        with pytest.raises(CacheUnavailableError):
            await cache.invalidate("project")

    @pytest.mark.asyncio
    async def test_disabled_cache_is_noop(self):
        cache = CacheClient(enabled=False)

        assert not await cache.fill(CacheKeys.PROJECTS, [1], None)
        assert await cache.get_json(CacheKeys.PROJECTS) is None
        await cache.invalidate("project")


class TestGenerations:
    @pytest.mark.asyncio
    async def test_invalidation_bumps_generation(self, cache, fake_redis):
        assert await cache.generation(CacheKeys.USERS) is None

        await cache.invalidate("user")
        await cache.invalidate("user")

        assert await cache.generation(CacheKeys.USERS) == "2"
        assert fake_redis.store[generation_key(CacheKeys.USERS)] == "2"

    @pytest.mark.asyncio
    async def test_load_racing_an_invalidation_is_not_stored(self, cache, fake_redis):
        async def loader():
            # A writer commits and purges while the old rows are being read.
            await cache.invalidate("user")
            return ["stale"]

        assert await cache.read_through(CacheKeys.USERS, loader) == ["stale"]
        assert CacheKeys.USERS not in fake_redis.store

        async def fresh():
            return ["fresh"]

        assert await cache.read_through(CacheKeys.USERS, fresh) == ["fresh"]
        assert json.loads(fake_redis.store[CacheKeys.USERS]) == ["fresh"]

    @pytest.mark.asyncio
    async def test_invalidation_between_check_and_store_drops_fill(self, cache, fake_redis):
        generation = await cache.generation(CacheKeys.CONTACTS)

        async def concurrent_purge():
            await fake_redis.incr(generation_key(CacheKeys.CONTACTS))

        fake_redis.before_execute = concurrent_purge

        assert not await cache.fill(CacheKeys.CONTACTS, ["stale"], generation)
        assert CacheKeys.CONTACTS not in fake_redis.store

    @pytest.mark.asyncio
    async def test_unreadable_generation_skips_fill(self, cache, fake_redis):
        fake_redis.fail_reads = True

        async def loader():
            return ["barangay"]

        assert await cache.read_through(CacheKeys.BARANGAYS, loader) == ["barangay"]
        assert CacheKeys.BARANGAYS not in fake_redis.store


class TestInvalidationRules:
    def test_engagement_writes_purge_project_lists(self):
        for resource in ("project", "reaction", "comment", "report", "media", "progress_update"):
            assert CacheKeys.PROJECTS in INVALIDATION_RULES[resource]
            assert CacheKeys.SINGLE_PROJECT in INVALIDATION_RULES[resource]

    def test_reference_writes_purge_their_lists(self):
        assert INVALIDATION_RULES["announcement"] == (CacheKeys.ANNOUNCEMENTS,)
        assert INVALIDATION_RULES["contact"] == (CacheKeys.CONTACTS,)
        assert CacheKeys.BARANGAYS in INVALIDATION_RULES["barangay"]
