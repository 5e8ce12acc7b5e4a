"""CRUD endpoints for barangays, tags, funding sources, announcements and contacts."""

from uuid import UUID

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheClient, CacheKeys
from app.core.dependencies import get_cache, get_db, require_admin, validate_token
from app.domains.reference.service import ReferenceService
from app.schemas.base import ResponseSchema
from app.schemas.reference import (
    AnnouncementCreate,
    AnnouncementResponse,
    AnnouncementUpdate,
    BarangayCreate,
    BarangayResponse,
    ContactCreate,
    ContactResponse,
    ContactUpdate,
    FundingSourceResponse,
    NameCreate,
    TagResponse,
)
from models import Announcement, Barangay, Contact, FundingSource, Tag
from models.user import User


def build_router(
    path: str,
    model,
    create_schema: type[BaseModel],
    update_schema: type[BaseModel],
    response_schema: type[BaseModel],
    resource: str,
    cache_key: str | None = None,
    unique_field: str | None = "name",
    bulk_delete: bool = False,
) -> APIRouter:
    """Router with list, get, create, update and delete for one reference table.

    Reads are open to any authenticated user; writes need an admin. With
    ``bulk_delete`` the collection itself can be emptied.
    """
    label = resource.replace("_", " ")
    router = APIRouter(
        prefix=f"/api/{path}", tags=[path], dependencies=[Depends(validate_token)]
    )

    def get_service(
        db: AsyncSession = Depends(get_db), cache: CacheClient = Depends(get_cache)
    ) -> ReferenceService:
        return ReferenceService(
            db, cache, model, response_schema, resource, cache_key, unique_field
        )

    def dump(item) -> dict:
        return response_schema.model_validate(item).model_dump()

    @router.get("", response_model=ResponseSchema)
    async def list_items(service: ReferenceService = Depends(get_service)):
        return ResponseSchema(status="success", data=await service.list_items())

    @router.get("/{item_id}", response_model=ResponseSchema)
    async def get_item(
        item_id: UUID = Path(...), service: ReferenceService = Depends(get_service)
    ):
        return ResponseSchema(status="success", data=dump(await service.get_item(item_id)))

    @router.post("", response_model=ResponseSchema, status_code=201)
    async def create_item(
        payload: create_schema,
        current_user: User = Depends(require_admin),
        service: ReferenceService = Depends(get_service),
    ):
        item = await service.create_item(payload.model_dump(), current_user)
        return ResponseSchema(status="success", message=f"{label.capitalize()} created", data=dump(item))

    @router.patch("/{item_id}", response_model=ResponseSchema)
    async def update_item(
        payload: update_schema,
        item_id: UUID = Path(...),
        _: User = Depends(require_admin),
        service: ReferenceService = Depends(get_service),
    ):
        item = await service.update_item(item_id, payload.model_dump(exclude_unset=True))
        return ResponseSchema(status="success", message=f"{label.capitalize()} updated", data=dump(item))

    @router.delete("/{item_id}", response_model=ResponseSchema)
    async def delete_item(
        item_id: UUID = Path(...),
        _: User = Depends(require_admin),
        service: ReferenceService = Depends(get_service),
    ):
        await service.delete_item(item_id)
        return ResponseSchema(status="success", message=f"{label.capitalize()}: {item_id} deleted")

    if bulk_delete:

        @router.delete("", response_model=ResponseSchema)
        async def delete_all_items(
            _: User = Depends(require_admin),
            service: ReferenceService = Depends(get_service),
        ):
            count = await service.delete_all_items()
            return ResponseSchema(
                status="success", message=f"All {label}s deleted", data={"deleted": count}
            )

    return router


barangay_router = build_router(
    "barangays", Barangay, BarangayCreate, BarangayCreate, BarangayResponse,
    "barangay", CacheKeys.BARANGAYS, bulk_delete=True,
)
tag_router = build_router("tags", Tag, NameCreate, NameCreate, TagResponse, "tag")
funding_source_router = build_router(
    "fundingSources", FundingSource, NameCreate, NameCreate, FundingSourceResponse,
    "funding_source",
)
announcement_router = build_router(
    "announcements", Announcement, AnnouncementCreate, AnnouncementUpdate, AnnouncementResponse,
    "announcement", CacheKeys.ANNOUNCEMENTS, unique_field=None, bulk_delete=True,
)
contact_router = build_router(
    "contacts", Contact, ContactCreate, ContactUpdate, ContactResponse,
    "contact", CacheKeys.CONTACTS, unique_field=None, bulk_delete=True,
)

routers = [barangay_router, tag_router, funding_source_router, announcement_router, contact_router]
