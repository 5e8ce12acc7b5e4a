"""Ownership check applied before mutations."""

from app.exceptions.base import AppPermissionError
from models.enums import UserRole
from models.user import User


def check_permissions(requesting_user: User, resource_owner_id) -> None:
    """Allow admins and the resource owner, reject everyone else."""
    if requesting_user.role == UserRole.admin.value:
        return
    if resource_owner_id is not None and str(requesting_user.id) == str(resource_owner_id):
        return
    raise AppPermissionError("Not authorized to access this route")
