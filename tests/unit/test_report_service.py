"""
Unit tests for ReportService.
"""

import io
import uuid

import pytest
from starlette.datastructures import Headers, UploadFile

from app.domains.report.service import ReportService
from app.exceptions.base import BadRequestError, ConflictError, NoContentError, NotFoundError
from app.shared.targets import Target
from models.enums import ReportStatus


@pytest.fixture
def report_service(test_db, media_service, cache):
    return ReportService(test_db, media_service, cache)


def evidence(name="evidence.jpg"):
    return UploadFile(
        file=io.BytesIO(b"jpeg-bytes"), filename=name, headers=Headers({"content-type": "image/jpeg"})
    )


class TestReportService:

    @pytest.mark.asyncio
    async def test_create_project_report_with_media(
        self, report_service, resident, test_project, object_store
    ):
        report = await report_service.create_report(
            resident, Target.project(test_project.id), "Cost looks inflated", files=[evidence()]
        )

        assert report.status == "pending"
        assert report.project_id == test_project.id
        assert report.comment_id is None
        assert len(report.media) == 1
        assert report.media[0].reference_token in object_store.objects

    @pytest.mark.asyncio
    async def test_duplicate_report_conflicts(self, report_service, resident, test_project):
        target = Target.project(test_project.id)
        await report_service.create_report(resident, target, "Abandoned site")

        with pytest.raises(ConflictError, match="Report already exists"):
            await report_service.create_report(resident, target, "Abandoned site")

    @pytest.mark.asyncio
    async def test_same_content_from_another_user_is_allowed(
        self, report_service, resident, other_resident, test_project
    ):
        target = Target.project(test_project.id)
        await report_service.create_report(resident, target, "Abandoned site")

        report = await report_service.create_report(other_resident, target, "Abandoned site")

        assert report.reported_by == other_resident.id

    @pytest.mark.asyncio
    async def test_report_missing_comment(self, report_service, resident):
        with pytest.raises(NotFoundError):
            await report_service.create_report(resident, Target.comment(uuid.uuid4()), "Spam")

    @pytest.mark.asyncio
    async def test_update_status(self, report_service, resident, test_project):
        report = await report_service.create_report(
            resident, Target.project(test_project.id), "Unsafe scaffolding"
        )

        updated = await report_service.update_status(report.id, ReportStatus.resolved)

        assert updated.status == "resolved"
        with pytest.raises(ConflictError):
            await report_service.update_status(report.id, ReportStatus.resolved)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("next_status", [ReportStatus.pending, ReportStatus.rejected])
    async def test_resolved_report_is_final(
        self, report_service, resident, test_project, next_status
    ):
        report = await report_service.create_report(
            resident, Target.project(test_project.id), "Open manhole"
        )
        await report_service.update_status(report.id, ReportStatus.resolved)

        with pytest.raises(ConflictError, match="already been resolved"):
            await report_service.update_status(report.id, next_status)

        assert (await report_service.get_report(report.id)).status == "resolved"

    @pytest.mark.asyncio
    async def test_rejected_report_cannot_reopen(self, report_service, resident, test_project):
        report = await report_service.create_report(
            resident, Target.project(test_project.id), "Graffiti on the bridge"
        )
        await report_service.update_status(report.id, ReportStatus.rejected)

        with pytest.raises(ConflictError):
            await report_service.update_status(report.id, ReportStatus.pending)

    @pytest.mark.asyncio
    async def test_pending_report_cannot_move_to_pending(
        self, report_service, resident, test_project
    ):
        report = await report_service.create_report(
            resident, Target.project(test_project.id), "Broken streetlight"
        )

        with pytest.raises(ConflictError, match="already pending"):
            await report_service.update_status(report.id, ReportStatus.pending)

    @pytest.mark.asyncio
    async def test_list_reports_filters(self, report_service, resident, test_project):
        target = Target.project(test_project.id)
        first = await report_service.create_report(resident, target, "Noise at night")
        await report_service.create_report(resident, target, "Blocked road")
        await report_service.update_status(first.id, ReportStatus.rejected)

        rejected = await report_service.list_reports(status="rejected")
        searched = await report_service.list_reports(search="road")

        assert [r.id for r in rejected["items"]] == [first.id]
        assert searched["total"] == 1
        with pytest.raises(BadRequestError):
            await report_service.list_reports(status="closed")

    @pytest.mark.asyncio
    async def test_delete_report_removes_media(
        self, report_service, resident, test_project, object_store
    ):
        report = await report_service.create_report(
            resident, Target.project(test_project.id), "Evidence", files=[evidence()]
        )

        await report_service.delete_report(report.id)

        assert object_store.objects == {}
        with pytest.raises(NotFoundError):
            await report_service.get_report(report.id)

    @pytest.mark.asyncio
    async def test_delete_all_reports(self, report_service, resident, test_project, object_store):
        with pytest.raises(NoContentError):
            await report_service.delete_all_reports()

        await report_service.create_report(
            resident, Target.project(test_project.id), "One", files=[evidence()]
        )

        assert await report_service.delete_all_reports() == 1
        assert object_store.objects == {}

    @pytest.mark.asyncio
    async def test_list_report_media(self, report_service, resident, test_project):
        report = await report_service.create_report(
            resident, Target.project(test_project.id), "Evidence", files=[evidence(), evidence("b.jpg")]
        )

        result = await report_service.list_report_media(report.id)

        assert result["total"] == 2
        with pytest.raises(NotFoundError):
            await report_service.list_report_media(uuid.uuid4())
