"""
Unit tests for MediaService: staging, attach, replace, detach and the orphan sweep.
"""

import io
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from starlette.datastructures import Headers, UploadFile

from app.domains.media.service import descriptor_of
from app.exceptions.base import BadRequestError
from app.exceptions.infrastructure import ObjectStoreError
from models import Media, Project
from models.base import utcnow


def upload(name="photo.png", content_type="image/png", data=b"\x89PNG-data"):
    return UploadFile(
        file=io.BytesIO(data), filename=name, headers=Headers({"content-type": content_type})
    )


async def media_count(db) -> int:
    return (await db.execute(select(func.count(Media.id)))).scalar()


class TestStageUploads:
    @pytest.mark.asyncio
    async def test_stage_uploads_stores_every_file(self, media_service, object_store):
        stored = await media_service.stage_uploads([upload("a.png"), upload("b.mp4", "video/mp4")])

        assert len(stored) == 2
        assert set(object_store.objects) == {s.reference_token for s in stored}
        assert stored[1].mime_type == "video/mp4"

    @pytest.mark.asyncio
    async def test_no_files(self, media_service):
        assert await media_service.stage_uploads(None) == []
        assert await media_service.stage_uploads([]) == []

    @pytest.mark.asyncio
    async def test_unsupported_type_rejected_before_upload(self, media_service, object_store):
        with pytest.raises(BadRequestError, match="Unsupported file type"):
            await media_service.stage_uploads([upload("a.png"), upload("doc.pdf", "application/pdf")])

        assert object_store.objects == {}

    @pytest.mark.asyncio
    async def test_empty_file_rejected(self, media_service):
        with pytest.raises(BadRequestError, match="empty"):
            await media_service.stage_uploads([upload(data=b"")])

    @pytest.mark.asyncio
    async def test_too_many_files(self, media_service, monkeypatch):
        from app.core.config import settings

        monkeypatch.setattr(settings, "max_files_per_request", 1)

        with pytest.raises(BadRequestError, match="At most 1 files"):
            await media_service.stage_uploads([upload("a.png"), upload("b.png")])

    @pytest.mark.asyncio
    async def test_partial_failure_discards_stored_blobs(self, media_service, object_store):
        object_store.fail_upload_names = {"b.png"}

        with pytest.raises(ObjectStoreError):
            await media_service.stage_uploads([upload("a.png"), upload("b.png")])

        assert object_store.objects == {}


class TestStaged:
    @pytest.mark.asyncio
    async def test_failure_inside_block_discards_blobs(
        self, test_db, media_service, object_store, test_project
    ):
        stored = await media_service.stage_uploads([upload()])

        with pytest.raises(RuntimeError):
            async with media_service.staged(stored):
                await media_service.attach(stored, test_project)
                raise RuntimeError("boom")

        assert object_store.objects == {}
        assert await media_count(test_db) == 0

    @pytest.mark.asyncio
    async def test_success_keeps_blobs(self, test_db, media_service, object_store, test_project):
        stored = await media_service.stage_uploads([upload()])

        async with media_service.staged(stored):
            await media_service.attach(stored, test_project)
            await test_db.commit()

        assert len(object_store.objects) == 1
        assert await media_count(test_db) == 1


class TestAttachReplaceDetach:
    @pytest.mark.asyncio
    async def test_attach_creates_rows(self, test_db, media_service, object_store, test_project):
        rows = await media_service.attach([object_store.put("civic/a.png")], test_project)
        await test_db.commit()

        assert rows[0].project_id == test_project.id
        assert rows[0].url == "https://media.test/civic/a.png"
        assert rows[0].recorded_date is not None

    @pytest.mark.asyncio
    async def test_replace_adds_and_removes_by_token(
        self, test_db, media_service, object_store, test_project
    ):
        a, b, c = (object_store.put(f"civic/{name}.png") for name in "abc")
        current = await media_service.attach([a, b], test_project)
        await test_db.commit()

        diff = await media_service.replace(current, [descriptor_of(current[1]), c], test_project)
        await test_db.commit()

        assert [row.reference_token for row in diff.added] == ["civic/c.png"]
        assert [row.reference_token for row in diff.removed] == ["civic/a.png"]
        assert "civic/a.png" not in object_store.objects
        tokens = (await test_db.execute(select(Media.reference_token))).scalars().all()
        assert sorted(tokens) == ["civic/b.png", "civic/c.png"]

    @pytest.mark.asyncio
    async def test_detach_deletes_blob_then_row(
        self, test_db, media_service, object_store, test_project
    ):
        rows = await media_service.attach([object_store.put("civic/a.png")], test_project)
        await test_db.commit()

        await media_service.detach(rows)
        await test_db.commit()

        assert object_store.objects == {}
        assert await media_count(test_db) == 0

    @pytest.mark.asyncio
    async def test_failed_blob_delete_keeps_only_its_own_row(
        self, test_db, media_service, object_store, test_project
    ):
        rows = await media_service.attach(
            [object_store.put("civic/a.png"), object_store.put("civic/b.png")], test_project
        )
        await test_db.commit()
        object_store.fail_deletes = {"civic/b.png"}

        with pytest.raises(ObjectStoreError) as exc_info:
            await media_service.detach(rows)
        await test_db.rollback()

        assert exc_info.value.reference_tokens == ["civic/b.png"]
        tokens = (await test_db.execute(select(Media.reference_token))).scalars().all()
        assert tokens == ["civic/b.png"]
        assert set(object_store.objects) == {"civic/b.png"}

    @pytest.mark.asyncio
    async def test_failed_blob_delete_does_not_commit_pending_changes(
        self, test_db, media_service, object_store, test_project
    ):
        rows = await media_service.attach(
            [object_store.put("civic/a.png"), object_store.put("civic/b.png")], test_project
        )
        await test_db.commit()
        project_id, original_title = test_project.id, test_project.title
        test_project.title = "Renamed mid-request"
        object_store.fail_deletes = {"civic/a.png"}

        with pytest.raises(ObjectStoreError):
            await media_service.detach(rows)

        title = (
            await test_db.execute(select(Project.title).where(Project.id == project_id))
        ).scalar_one()
        assert title == original_title
        assert await media_count(test_db) == 1

    @pytest.mark.asyncio
    async def test_detach_for_project_collects_update_and_report_media(
        self, test_db, media_service, object_store, test_project, resident
    ):
        from models import ProgressUpdate, Report

        update = ProgressUpdate(project_id=test_project.id, date=utcnow(), progress=40)
        report = Report(content="Flooded site", reported_by=resident.id, project_id=test_project.id)
        test_db.add_all([update, report])
        await test_db.flush()
        await media_service.attach([object_store.put("civic/p.png")], test_project)
        await media_service.attach([object_store.put("civic/u.png")], update)
        await media_service.attach([object_store.put("civic/r.png")], report)
        await test_db.commit()

        removed = await media_service.detach_for_project(test_project)
        await test_db.commit()

        assert len(removed) == 3
        assert object_store.objects == {}


class TestListing:
    @pytest.mark.asyncio
    async def test_list_media_filters_by_type(
        self, test_db, media_service, object_store, test_project
    ):
        stored = await media_service.stage_uploads(
            [upload("a.png"), upload("b.mp4", "video/mp4")]
        )
        await media_service.attach(stored, test_project)
        await test_db.commit()

        videos = await media_service.list_media(test_project, "video")

        assert videos["total"] == 1
        assert videos["items"][0].mime_type == "video/mp4"

    @pytest.mark.asyncio
    async def test_list_media_invalid_type(self, media_service, test_project):
        with pytest.raises(BadRequestError, match="Invalid type: audio"):
            await media_service.list_media(test_project, "audio")


class TestReconcile:
    @pytest.mark.asyncio
    async def test_consistent_system_is_noop(
        self, test_db, media_service, object_store, test_project
    ):
        await media_service.attach([object_store.put("civic/a.png", age=timedelta(days=1))], test_project)
        await test_db.commit()

        result = await media_service.reconcile()

        assert result.deleted_blobs == []
        assert result.deleted_rows == []
        assert "civic/a.png" in object_store.objects

    @pytest.mark.asyncio
    async def test_old_orphan_blob_deleted(self, media_service, object_store):
        object_store.put("civic/orphan.png", age=timedelta(hours=3))

        result = await media_service.reconcile()

        assert result.deleted_blobs == ["civic/orphan.png"]
        assert object_store.objects == {}

    @pytest.mark.asyncio
    async def test_recent_orphan_blob_kept(self, media_service, object_store):
        object_store.put("civic/in-flight.png")

        result = await media_service.reconcile()

        assert result.deleted_blobs == []
        assert "civic/in-flight.png" in object_store.objects

    @pytest.mark.asyncio
    async def test_dangling_row_deleted(self, test_db, media_service, test_project):
        row = Media(
            url="https://media.test/civic/lost.png",
            reference_token="civic/lost.png",
            mime_type="image/png",
            size=10,
            project_id=test_project.id,
            created_at=utcnow() - timedelta(hours=2),
        )
        test_db.add(row)
        await test_db.commit()

        result = await media_service.reconcile()

        assert result.deleted_rows == ["civic/lost.png"]
        assert await media_count(test_db) == 0
        project = await test_db.get(Project, test_project.id)
        assert project is not None
