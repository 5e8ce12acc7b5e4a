# app/domains/user/service.py
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheClient, CacheKeys
from app.exceptions.base import ConflictError, NoContentError
from app.schemas.user import UserResponse
from app.shared.guards import ensure, ensure_found
from models import Barangay, Project, User
from models.enums import UserRole


class UserService:
    def __init__(self, db: AsyncSession, cache: CacheClient | None = None):
        self.db = db
        self.cache = cache

    async def get_user_by_auth_subject(self, auth_subject: str) -> User | None:
        """Get a user by the identity provider's subject."""
        result = await self.db.execute(select(User).where(User.auth_subject == auth_subject))
        return result.scalar_one_or_none()

    async def create_user(self, auth_subject: str, email: str, username: str | None = None) -> User:
        """Create a new user. The first account ever created becomes an admin."""
        user_count = (await self.db.execute(select(func.count(User.id)))).scalar() or 0
        user = User(
            auth_subject=auth_subject,
            email=email,
            username=username,
            role=UserRole.admin.value if user_count == 0 else UserRole.resident.value,
        )

        try:
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self._invalidate()
        return user

    async def get_or_create_user(self, auth_subject: str, payload: dict) -> User:
        """Get existing user or create new one from token claims."""
        user = await self.get_user_by_auth_subject(auth_subject)
        if user:
            return user
        try:
            return await self.create_user(
                auth_subject=auth_subject,
                email=payload.get("email") or f"{auth_subject}@users.invalid",
                username=payload.get("username") or payload.get("name"),
            )
        except IntegrityError:
            # Concurrent first request for the same subject
            return ensure_found(
                await self.get_user_by_auth_subject(auth_subject), "User not found"
            )

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        """Get a user by ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def list_users(self) -> list[dict[str, Any]]:
        async def load() -> list[dict[str, Any]]:
            result = await self.db.execute(select(User).order_by(User.created_at))
            return [
                UserResponse.model_validate(user).model_dump(mode="json")
                for user in result.scalars().all()
            ]

        if self.cache is not None:
            return await self.cache.read_through(CacheKeys.USERS, load)
        return await load()

    async def update_user(self, user_id: UUID, changes: dict[str, Any]) -> User:
        """Update role, barangay or activation state of a user."""
        user = ensure_found(await self.get_user_by_id(user_id), f"No user with id: {user_id}")

        if changes.get("barangay_id") is not None:
            ensure_found(
                await self.db.get(Barangay, changes["barangay_id"]),
                f"No barangay with id: {changes['barangay_id']}",
            )
        if changes.get("email") and changes["email"] != user.email:
            taken = await self.db.execute(select(User).where(User.email == changes["email"]))
            ensure(taken.scalar_one_or_none() is None, "Email already in use", ConflictError)

        try:
            for field, value in changes.items():
                setattr(user, field, value.value if isinstance(value, UserRole) else value)
            await self.db.commit()
            await self.db.refresh(user)
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self._invalidate()
        return user

    async def delete_user(self, user_id: UUID, current_user: User) -> User:
        """Delete an account. Comments, reactions and reports go with it."""
        user = ensure_found(await self.get_user_by_id(user_id), f"No user with id: {user_id}")
        ensure(user.id != current_user.id, "You cannot delete your own account")
        await self._ensure_no_projects([user.id])

        try:
            await self.db.execute(delete(User).where(User.id == user.id))
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self._invalidate()
        return user

    async def delete_all_users(self) -> int:
        """Delete every account except admins."""
        ids = (
            (await self.db.execute(select(User.id).where(User.role != UserRole.admin.value)))
            .scalars()
            .all()
        )
        if not ids:
            raise NoContentError("No users to delete")
        await self._ensure_no_projects(ids)

        try:
            await self.db.execute(delete(User).where(User.id.in_(ids)))
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self._invalidate()
        return len(ids)

    async def _ensure_no_projects(self, user_ids) -> None:
        owned = (
            await self.db.execute(
                select(func.count(Project.id)).where(Project.created_by.in_(user_ids))
            )
        ).scalar() or 0
        ensure(owned == 0, "Delete or reassign the projects of these users first", ConflictError)

    async def _invalidate(self) -> None:
        if self.cache is not None:
            await self.cache.invalidate("user")
