"""Pydantic schemas for API requests and responses."""

from clipvault.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    MessageResponse,
    ResetPasswordRequest,
    TokenResponse,
    UpdatePasswordRequest,
    UserLogin,
    UserSignup,
)
from clipvault.schemas.user import (
    UserAdminResponse,
    UserAdminUpdate,
    UserListResponse,
    UserResponse,
    UserSelfUpdate,
)

__all__ = [
    "UserSignup",
    "UserLogin",
    "ForgotPasswordRequest",
    "ResetPasswordRequest",
    "UpdatePasswordRequest",
    "TokenResponse",
    "AuthResponse",
    "MessageResponse",
    "UserResponse",
    "UserAdminResponse",
    "UserListResponse",
    "UserSelfUpdate",
    "UserAdminUpdate",
]
