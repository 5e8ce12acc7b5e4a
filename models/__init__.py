"""
Models package initialization.
"""

from .base import Base, BaseModel
from .comment import Comment
from .media import Media
from .progress_update import ProgressUpdate
from .project import Project, project_barangays, project_tags
from .reaction import Reaction
from .reference import Announcement, Barangay, Contact, FundingSource, Tag
from .report import Report
from .user import User

__all__ = [
    "Base",
    "BaseModel",
    "User",
    "Project",
    "ProgressUpdate",
    "Media",
    "Comment",
    "Reaction",
    "Report",
    # Reference data
    "Barangay",
    "Tag",
    "FundingSource",
    "Announcement",
    "Contact",
    # Association tables
    "project_tags",
    "project_barangays",
]
