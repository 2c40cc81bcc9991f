"""User schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from clipvault.models.enums import Role


class UserResponse(BaseModel):
    """Default user projection. Never includes the password hash or role."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    username: str | None
    email: str
    active: bool
    created_at: datetime


class UserAdminResponse(UserResponse):
    """User projection for staff, adds the role."""

    role: Role


class UserListResponse(BaseModel):
    """A page of users."""

    status: str = "success"
    results: int
    total: int
    page: int
    limit: int
    users: list[UserAdminResponse]


class UserSelfUpdate(BaseModel):
    """Fields a user may change on their own profile.

    Password changes go through the dedicated endpoint; unknown fields,
    including password ones, are rejected.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=40)
    username: str | None = Field(None, min_length=3, max_length=255)
    email: EmailStr | None = Field(None, max_length=255)


class UserAdminUpdate(BaseModel):
    """Fields an administrator may change on any user."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=40)
    role: Role | None = None
    active: bool | None = None
