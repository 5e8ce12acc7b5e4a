"""
Provides the User model for the application's database schema.

Users are created on first sight of a verified token (see
``app.domains.user.service.UserService.get_or_create_user``); the role column
drives both the route guards and the owner-or-admin permission gate.

Attributes
----------
auth_subject : sqlalchemy.Column
    Identifier of the user at the token provider (JWT ``sub`` claim).
email : sqlalchemy.Column
    The email address of the user, which must also be unique.
role : sqlalchemy.Column
    One of :class:`models.enums.UserRole`. Defaults to ``resident``.
barangay_id : sqlalchemy.Column
    Barangay the user belongs to, required for barangay officials.
"""

from sqlalchemy import Boolean, Column, ForeignKey, String
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel
from .enums import UserRole


class User(BaseModel):
    """
    Represents a user entity in the application.

    :ivar auth_subject: Unique identifier for the user provided by the token issuer.
    :type auth_subject: str
    :ivar email: Email address of the user. It must be unique.
    :type email: str
    :ivar username: Username of the user. This is optional.
    :type username: str
    :ivar role: Role of the user.
    :type role: str
    :ivar is_active: Indicates whether the user account is active.
    :type is_active: bool
    """

    __tablename__ = "users"

    auth_subject = Column(String(255), unique=True, nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    username = Column(String(100))
    role = Column(String(20), nullable=False, default=UserRole.resident.value)
    barangay_id = Column(UUID(), ForeignKey("barangays.id", ondelete="SET NULL"))
    is_active = Column(Boolean, default=True)

    # Relationships
    barangay = relationship("Barangay", back_populates="users")
    projects = relationship("Project", back_populates="creator")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin.value
