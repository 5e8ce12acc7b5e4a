# app/core/dependencies.py
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheClient
from app.core.security import TokenVerifier
from app.core.storage import S3ObjectStore
from app.database import get_db
from app.domains.user.service import UserService
from app.exceptions.base import AppPermissionError, UnauthenticatedError
from models.enums import UserRole
from models.user import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)
verifier = TokenVerifier()


async def validate_token(
    token: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict:
    """Validate and decode the bearer token.

    Returns:
        dict: Decoded token payload

    Raises:
        UnauthenticatedError: If the token is missing, invalid or expired
    """
    if not token or not token.credentials:
        raise UnauthenticatedError("Authentication token is required")
    return verifier.verify_token(token.credentials)


def get_cache(request: Request) -> CacheClient:
    return request.app.state.cache


async def get_current_user(
    request: Request,
    payload: dict = Depends(validate_token),
    db: AsyncSession = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
) -> User:
    """Get current authenticated user from JWT payload.

    Returns:
        User: Current authenticated user

    Raises:
        AppPermissionError: If the account is inactive
    """
    user = await UserService(db, cache).get_or_create_user(payload["sub"], payload)

    if not user.is_active:
        raise AppPermissionError("User account is inactive")

    # Add user info to request state for logging
    request.state.user_id = user.id
    return user


def get_object_store(request: Request) -> S3ObjectStore:
    return request.app.state.object_store


def require_roles(*roles: UserRole):
    """Dependency factory rejecting users whose role is not listed."""
    allowed = {role.value for role in roles}

    async def _guard(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise AppPermissionError("Not authorized to access this route")
        return current_user

    return _guard


require_admin = require_roles(UserRole.admin)
require_staff = require_roles(UserRole.admin, UserRole.barangay)
