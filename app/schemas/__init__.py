# ruff: noqa: F403, F401
"""Schemas package initialization."""

# Import all schemas to ensure they're registered
from .base import *
from .comment import *
from .media import *
from .progress import *
from .project import *
from .reaction import *
from .reference import *
from .report import *
from .user import *
