"""
Enumerations shared by the ORM models and the API schemas.
"""

from enum import Enum


class UserRole(str, Enum):
    admin = "admin"
    assistant_admin = "assistant_admin"
    resident = "resident"
    barangay = "barangay"
    guest = "guest"


class ProjectStatus(str, Enum):
    planned = "planned"
    ongoing = "ongoing"
    on_hold = "on_hold"
    completed = "completed"
    cancelled = "cancelled"


class ReactionType(str, Enum):
    like = "like"
    dislike = "dislike"


class TargetKind(str, Enum):
    """Entity a reaction or report applies to."""

    project = "project"
    comment = "comment"


class ReportStatus(str, Enum):
    pending = "pending"
    resolved = "resolved"
    rejected = "rejected"


TAGS = [
    "Administration And Governance",
    "General Public Services",
    "Health",
    "Education",
    "Livelihood",
    "Infrastructure",
    "Environmental Management",
    "Sports And Recreation",
    "Others",
]
