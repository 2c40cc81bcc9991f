"""Enums for model fields."""

from enum import Enum


class Role(str, Enum):
    """Authorization roles. The set is closed; no other value is valid."""

    USER = "user"
    DEVELOPER = "developer"
    ADMIN = "admin"

    def is_staff(self) -> bool:
        """Check if this role may read other users' records."""
        return self in (Role.DEVELOPER, Role.ADMIN)
