"""
API tests for the progress history endpoints.
"""

import uuid

import pytest
from fastapi import status
from httpx import AsyncClient

from tests.conftest import auth_headers


def history_path(project_id) -> str:
    return f"/api/projects/{project_id}/progressHistory"


def form(progress: int, date: str = "2026-03-01T08:00:00", remarks: str = "Site inspection"):
    return {"progress": str(progress), "date": date, "remarks": remarks}


class TestProgressHistory:
    @pytest.mark.asyncio
    async def test_completion_and_duplicate_scenario(
        self, client: AsyncClient, official, test_project
    ):
        """100% completes the project; the same value again conflicts and changes nothing."""
        headers = auth_headers(official)

        created = await client.post(
            history_path(test_project.id), data=form(100), headers=headers
        )
        assert created.status_code == status.HTTP_201_CREATED
        assert created.json()["message"] == "Progress history created"

        project = (await client.get(f"/api/projects/{test_project.id}", headers=headers)).json()
        assert project["data"]["status"] == "completed"
        assert project["data"]["progress"] == 100
        assert project["data"]["completion_date"] is not None

        duplicate = await client.post(
            history_path(test_project.id), data=form(100, date="2026-04-01T08:00:00"),
            headers=headers,
        )
        assert duplicate.status_code == status.HTTP_409_CONFLICT

        after = (await client.get(f"/api/projects/{test_project.id}", headers=headers)).json()
        assert after["data"]["status"] == "completed"
        assert after["data"]["completion_date"] == project["data"]["completion_date"]

    @pytest.mark.asyncio
    async def test_create_with_files(self, client: AsyncClient, official, test_project):
        response = await client.post(
            history_path(test_project.id),
            data=form(30),
            files=[("files", ("site.jpg", b"jpeg-bytes", "image/jpeg"))],
            headers=auth_headers(official),
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()["data"]
        assert data["progress"] == 30
        assert len(data["media"]) == 1

    @pytest.mark.asyncio
    async def test_progress_out_of_range(self, client: AsyncClient, official, test_project):
        response = await client.post(
            history_path(test_project.id), data=form(101), headers=auth_headers(official)
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_missing_date(self, client: AsyncClient, official, test_project):
        response = await client.post(
            history_path(test_project.id),
            data={"progress": "10", "remarks": "No date"},
            headers=auth_headers(official),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_resident_cannot_record_progress(
        self, client: AsyncClient, resident, test_project
    ):
        response = await client.post(
            history_path(test_project.id), data=form(10), headers=auth_headers(resident)
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_unknown_project(self, client: AsyncClient, official):
        response = await client.post(
            history_path(uuid.uuid4()), data=form(10), headers=auth_headers(official)
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_list_and_get(self, client: AsyncClient, official, resident, test_project):
        headers = auth_headers(official)
        await client.post(history_path(test_project.id), data=form(20, "2026-01-01T00:00:00"), headers=headers)
        created = await client.post(
            history_path(test_project.id), data=form(60, "2026-02-01T00:00:00"), headers=headers
        )
        update_id = created.json()["data"]["id"]

        listing = await client.get(
            history_path(test_project.id), params={"sort": "latest"}, headers=auth_headers(resident)
        )
        single = await client.get(
            f"{history_path(test_project.id)}/{update_id}", headers=auth_headers(resident)
        )

        assert [u["progress"] for u in listing.json()["data"]] == [60, 20]
        assert single.json()["data"]["id"] == update_id

    @pytest.mark.asyncio
    async def test_edit_reopens_completed_project(
        self, client: AsyncClient, official, test_project
    ):
        headers = auth_headers(official)
        created = await client.post(history_path(test_project.id), data=form(100), headers=headers)
        update_id = created.json()["data"]["id"]

        response = await client.patch(
            f"{history_path(test_project.id)}/{update_id}",
            data={"progress": "90"},
            headers=headers,
        )

        assert response.status_code == status.HTTP_200_OK
        project = (await client.get(f"/api/projects/{test_project.id}", headers=headers)).json()
        assert project["data"]["status"] == "ongoing"
        assert project["data"]["completion_date"] is None

    @pytest.mark.asyncio
    async def test_delete_and_delete_all(
        self, client: AsyncClient, official, test_project, object_store
    ):
        headers = auth_headers(official)
        created = await client.post(
            history_path(test_project.id),
            data=form(10),
            files=[("files", ("a.png", b"png", "image/png"))],
            headers=headers,
        )
        update_id = created.json()["data"]["id"]

        deleted = await client.delete(f"{history_path(test_project.id)}/{update_id}", headers=headers)
        empty = await client.delete(history_path(test_project.id), headers=headers)

        assert deleted.status_code == status.HTTP_200_OK
        assert object_store.objects == {}
        assert empty.status_code == status.HTTP_204_NO_CONTENT

    @pytest.mark.asyncio
    async def test_update_media_lifecycle(
        self, client: AsyncClient, official, test_project, object_store
    ):
        headers = auth_headers(official)
        created = await client.post(
            history_path(test_project.id),
            data=form(50),
            files=[("files", ("a.png", b"png", "image/png"))],
            headers=headers,
        )
        media_path = f"{history_path(test_project.id)}/{created.json()['data']['id']}/media"

        replaced = await client.patch(
            media_path,
            files=[("files", ("clip.mp4", b"mp4", "video/mp4"))],
            headers=headers,
        )
        videos = await client.get(media_path, params={"type": "video"}, headers=headers)
        deleted = await client.delete(media_path, headers=headers)
        listing = await client.get(media_path, headers=headers)

        assert replaced.json()["message"] == "Media updated"
        assert videos.json()["total"] == 1
        assert deleted.json()["data"] == {"deleted": 1}
        assert listing.json()["total"] == 0
        assert object_store.objects == {}
        project = (await client.get(f"/api/projects/{test_project.id}", headers=headers)).json()
        assert project["data"]["progress"] == 50
