"""Data models for adios."""

from adios.models.user import User
from adios.models.meeting import Meeting

__all__ = [
    "User",
    "Meeting",
]
