"""Authentication schemas."""

from pydantic import BaseModel, EmailStr, Field, model_validator

from clipvault.schemas.user import UserResponse


class UserSignup(BaseModel):
    """User registration request."""

    name: str = Field(..., min_length=1, max_length=40)
    username: str | None = Field(None, min_length=3, max_length=255)
    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=8, max_length=72)
    password_confirm: str = Field(..., min_length=1, max_length=72)


class UserLogin(BaseModel):
    """Login with email or username and password."""

    email: EmailStr | None = Field(None, max_length=255)
    username: str | None = Field(None, max_length=255)
    password: str = Field(..., min_length=1, max_length=72)

    @model_validator(mode="after")
    def require_identifier(self) -> "UserLogin":
        """Require an email or a username."""
        if not self.email and not self.username:
            raise ValueError("email or username is required")
        return self


class ForgotPasswordRequest(BaseModel):
    """Request a password reset token by email."""

    email: EmailStr = Field(..., max_length=255)


class ResetPasswordRequest(BaseModel):
    """New password submitted with a reset token."""

    password: str = Field(..., min_length=8, max_length=72)
    password_confirm: str = Field(..., min_length=1, max_length=72)


class UpdatePasswordRequest(BaseModel):
    """Authenticated password change."""

    current_password: str = Field(..., min_length=1, max_length=72)
    password: str = Field(..., min_length=8, max_length=72)
    password_confirm: str = Field(..., min_length=1, max_length=72)


class TokenResponse(BaseModel):
    """JWT token response."""

    status: str = "success"
    token: str
    token_type: str = "bearer"  # noqa: S105


class AuthResponse(TokenResponse):
    """Authentication response with token and user info."""

    user: UserResponse


class MessageResponse(BaseModel):
    """Generic confirmation message."""

    status: str = "success"
    message: str
