"""SQLAlchemy models."""

from clipvault.models.enums import Role
from clipvault.models.user import User

__all__ = [
    "Role",
    "User",
]
