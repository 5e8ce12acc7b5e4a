"""
API tests for users, reference data and media maintenance.
"""

from datetime import timedelta
from types import SimpleNamespace

import pytest
from fastapi import status
from httpx import AsyncClient

from tests.conftest import auth_headers, make_token


class TestUserController:
    @pytest.mark.asyncio
    async def test_me_creates_account_on_first_request(self, client: AsyncClient, admin_user):
        token = make_token(SimpleNamespace(auth_subject="fresh-subject", email="fresh@example.com"))

        response = await client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["email"] == "fresh@example.com"
        assert response.json()["data"]["role"] == "resident"

    @pytest.mark.asyncio
    async def test_expired_token(self, client: AsyncClient, resident):
        from datetime import datetime, timezone

        token = make_token(resident, exp=datetime.now(timezone.utc) - timedelta(minutes=5))

        response = await client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_admin_assigns_barangay_official(
        self, client: AsyncClient, admin_user, resident, test_barangay
    ):
        response = await client.patch(
            f"/api/users/{resident.id}",
            json={"role": "barangay", "barangay_id": str(test_barangay.id)},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["role"] == "barangay"

    @pytest.mark.asyncio
    async def test_list_users_admin_only(self, client: AsyncClient, admin_user, resident):
        forbidden = await client.get("/api/users", headers=auth_headers(resident))
        listing = await client.get("/api/users", headers=auth_headers(admin_user))

        assert forbidden.status_code == status.HTTP_403_FORBIDDEN
        assert len(listing.json()["data"]) == 2

    @pytest.mark.asyncio
    async def test_inactive_user_rejected(self, client: AsyncClient, admin_user, resident):
        await client.patch(
            f"/api/users/{resident.id}", json={"is_active": False}, headers=auth_headers(admin_user)
        )

        response = await client.get("/api/users/me", headers=auth_headers(resident))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_delete_user_and_delete_all(
        self, client: AsyncClient, admin_user, resident, other_resident
    ):
        headers = auth_headers(admin_user)

        forbidden = await client.delete(f"/api/users/{resident.id}", headers=auth_headers(other_resident))
        deleted = await client.delete(f"/api/users/{resident.id}", headers=headers)
        missing = await client.get(f"/api/users/{resident.id}", headers=headers)
        everyone = await client.delete("/api/users", headers=headers)
        again = await client.delete("/api/users", headers=headers)

        assert forbidden.status_code == status.HTTP_403_FORBIDDEN
        assert deleted.json()["message"] == f"User: {resident.id} deleted"
        assert missing.status_code == status.HTTP_404_NOT_FOUND
        assert everyone.json()["data"] == {"deleted": 1}
        assert again.status_code == status.HTTP_204_NO_CONTENT


class TestReferenceControllers:
    @pytest.mark.asyncio
    async def test_barangay_crud(self, client: AsyncClient, admin_user, resident):
        created = await client.post(
            "/api/barangays", json={"name": "San Roque"}, headers=auth_headers(admin_user)
        )
        duplicate = await client.post(
            "/api/barangays", json={"name": "san roque"}, headers=auth_headers(admin_user)
        )
        listing = await client.get("/api/barangays", headers=auth_headers(resident))
        item_id = created.json()["data"]["id"]
        renamed = await client.patch(
            f"/api/barangays/{item_id}", json={"name": "San Roque Norte"},
            headers=auth_headers(admin_user),
        )
        deleted = await client.delete(f"/api/barangays/{item_id}", headers=auth_headers(admin_user))

        assert created.status_code == status.HTTP_201_CREATED
        assert duplicate.status_code == status.HTTP_409_CONFLICT
        assert [b["name"] for b in listing.json()["data"]] == ["San Roque"]
        assert renamed.json()["data"]["name"] == "San Roque Norte"
        assert deleted.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_residents_cannot_write_reference_data(self, client: AsyncClient, resident):
        response = await client.post(
            "/api/tags", json={"name": "Transport"}, headers=auth_headers(resident)
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_announcement(self, client: AsyncClient, admin_user):
        response = await client.post(
            "/api/announcements",
            json={"title": "Road closure", "content": "Main street closed on Friday"},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["data"]["created_by"] == str(admin_user.id)

    @pytest.mark.asyncio
    async def test_delete_all_contacts(self, client: AsyncClient, admin_user, resident):
        headers = auth_headers(admin_user)
        await client.post("/api/contacts", json={"name": "Engineering Office"}, headers=headers)
        await client.post("/api/contacts", json={"name": "Health Center"}, headers=headers)
        await client.get("/api/contacts", headers=headers)

        forbidden = await client.delete("/api/contacts", headers=auth_headers(resident))
        deleted = await client.delete("/api/contacts", headers=headers)
        listing = await client.get("/api/contacts", headers=headers)
        empty = await client.delete("/api/contacts", headers=headers)

        assert forbidden.status_code == status.HTTP_403_FORBIDDEN
        assert deleted.json()["data"] == {"deleted": 2}
        assert listing.json()["data"] == []
        assert empty.status_code == status.HTTP_204_NO_CONTENT

    @pytest.mark.asyncio
    async def test_tags_have_no_bulk_delete(self, client: AsyncClient, admin_user):
        response = await client.delete("/api/tags", headers=auth_headers(admin_user))

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED


class TestMediaController:
    @pytest.mark.asyncio
    async def test_reconcile_removes_old_orphans(
        self, client: AsyncClient, admin_user, object_store
    ):
        object_store.put("civic/orphan.png", age=timedelta(days=1))
        object_store.put("civic/fresh.png")

        response = await client.post("/api/media/reconcile", headers=auth_headers(admin_user))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"] == {"deleted_blobs": 1, "deleted_rows": 0}
        assert list(object_store.objects) == ["civic/fresh.png"]

    @pytest.mark.asyncio
    async def test_reconcile_admin_only(self, client: AsyncClient, official):
        response = await client.post("/api/media/reconcile", headers=auth_headers(official))

        assert response.status_code == status.HTTP_403_FORBIDDEN
