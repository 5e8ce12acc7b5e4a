"""User account endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheClient
from app.core.dependencies import get_cache, get_current_user, require_admin, validate_token
from app.database import get_db
from app.domains.user.service import UserService
from app.schemas.base import ResponseSchema
from app.schemas.user import UserResponse, UserUpdateRequest
from app.shared.guards import ensure_found
from models.user import User

router = APIRouter(prefix="/api/users", tags=["users"], dependencies=[Depends(validate_token)])


def get_user_service(
    db: AsyncSession = Depends(get_db), cache: CacheClient = Depends(get_cache)
) -> UserService:
    return UserService(db, cache)


@router.get("/me", response_model=ResponseSchema)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current authenticated user information.

    The account is created on the first authenticated request.
    """
    return ResponseSchema(
        status="success", data=UserResponse.model_validate(current_user).model_dump()
    )


@router.get("", response_model=ResponseSchema)
async def get_users(
    _: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    users = await service.list_users()
    return ResponseSchema(status="success", data=users)


@router.get("/{user_id}", response_model=ResponseSchema)
async def get_user(
    user_id: UUID = Path(..., description="User ID"),
    _: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    user = ensure_found(await service.get_user_by_id(user_id), f"No user with id: {user_id}")
    return ResponseSchema(status="success", data=UserResponse.model_validate(user).model_dump())


@router.patch("/{user_id}", response_model=ResponseSchema)
async def update_user(
    update_data: UserUpdateRequest,
    user_id: UUID = Path(..., description="User ID"),
    _: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    """Change a user's role, barangay, profile or activation state."""
    user = await service.update_user(user_id, update_data.model_dump(exclude_unset=True))
    return ResponseSchema(
        status="success",
        message="User updated",
        data=UserResponse.model_validate(user).model_dump(),
    )


@router.delete("/{user_id}", response_model=ResponseSchema)
async def delete_user(
    user_id: UUID = Path(..., description="User ID"),
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    await service.delete_user(user_id, current_user)
    return ResponseSchema(status="success", message=f"User: {user_id} deleted")


@router.delete("", response_model=ResponseSchema)
async def delete_all_users(
    _: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    """Delete every non-admin account."""
    count = await service.delete_all_users()
    return ResponseSchema(status="success", message="All users deleted", data={"deleted": count})
