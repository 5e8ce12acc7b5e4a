"""
Unit tests for the scheduled media sweep.
"""

from datetime import timedelta

import pytest

from app.celery_app import celery_app
from app.core.cache import CacheClient
from app.tasks.media_tasks import reconcile_media
from models import Media
from models.base import utcnow


class TestReconcileSchedule:
    def test_nightly_entry(self):
        entry = celery_app.conf.beat_schedule["reconcile-media"]

        assert entry["task"] == "app.tasks.media_tasks.reconcile_media_task"
        assert celery_app.conf.task_routes["app.tasks.media_tasks.*"] == {"queue": "maintenance"}


class TestReconcileMedia:
    @pytest.mark.asyncio
    async def test_sweeps_orphans_and_purges_project_cache(
        self, test_db, test_project, object_store, fake_redis
    ):
        object_store.put("civic/orphan.png", age=timedelta(days=2))
        test_db.add(
            Media(
                url="https://media.test/civic/gone.png",
                reference_token="civic/gone.png",
                mime_type="image/png",
                size=3,
                project_id=test_project.id,
                created_at=utcnow() - timedelta(days=2),
            )
        )
        await test_db.commit()
        fake_redis.store["projects"] = "[]"

        result = await reconcile_media(
            store=object_store, cache=CacheClient(redis=fake_redis, enabled=True)
        )

        assert result == {"deleted_blobs": 1, "deleted_rows": 1}
        assert object_store.objects == {}
        assert "projects" not in fake_redis.store

    @pytest.mark.asyncio
    async def test_nothing_to_do(self, test_engine, object_store, fake_redis):
        result = await reconcile_media(
            store=object_store, cache=CacheClient(redis=fake_redis, enabled=True)
        )

        assert result == {"deleted_blobs": 0, "deleted_rows": 0}
