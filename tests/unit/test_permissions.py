"""
Unit tests for the permission gate and guard helpers.
"""

import uuid

import pytest

from app.core.permissions import check_permissions
from app.exceptions.base import AppPermissionError, ConflictError, NotFoundError
from app.shared.guards import ensure, ensure_absent, ensure_found
from models.enums import UserRole
from tests.factories import UserFactory


class TestCheckPermissions:
    def test_admin_may_access_anything(self):
        admin = UserFactory.build(role=UserRole.admin.value)

        check_permissions(admin, uuid.uuid4())

    def test_owner_may_access_own_resource(self):
        user = UserFactory.build()

        check_permissions(user, user.id)

    def test_owner_compared_as_string(self):
        user = UserFactory.build()

        check_permissions(user, str(user.id))

    def test_other_user_rejected(self):
        user = UserFactory.build(role=UserRole.barangay.value)

        with pytest.raises(AppPermissionError, match="Not authorized to access this route"):
            check_permissions(user, uuid.uuid4())


class TestGuards:
    def test_ensure_raises_bad_request(self):
        with pytest.raises(Exception) as exc_info:
            ensure(False, "Invalid sort value")

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Invalid sort value"

    def test_ensure_custom_error(self):
        with pytest.raises(ConflictError):
            ensure(False, "duplicate", ConflictError)

    def test_ensure_passes(self):
        ensure(True, "never raised")

    def test_ensure_found(self):
        assert ensure_found("value", "missing") == "value"
        with pytest.raises(NotFoundError, match="missing"):
            ensure_found(None, "missing")

    def test_ensure_absent(self):
        ensure_absent(None, "exists", ConflictError)
        with pytest.raises(ConflictError, match="exists"):
            ensure_absent(object(), "exists", ConflictError)
