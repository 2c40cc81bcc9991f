"""Authentication API endpoints.

These handlers are plain functions so FastAPI runs them in its threadpool;
bcrypt hashing must never run on the event loop.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from clipvault.api.dependencies import (
    get_credential_store,
    get_current_user,
    get_password_reset_service,
)
from clipvault.exceptions import ValidationError
from clipvault.models.user import User
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
from clipvault.schemas.user import UserResponse
from clipvault.services.auth import TokenIssuer, get_token_issuer
from clipvault.services.credential_store import CredentialStore
from clipvault.services.password_reset import PasswordResetService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["auth"])


@router.post("/signup", response_model=AuthResponse)
def signup(
    user_data: UserSignup,
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    token_issuer: Annotated[TokenIssuer, Depends(get_token_issuer)],
):
    """Register a new user."""
    user = store.create(
        name=user_data.name,
        username=user_data.username,
        email=user_data.email,
        password=user_data.password,
        password_confirm=user_data.password_confirm,
    )

    return AuthResponse(
        token=token_issuer.issue_for(user),
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=TokenResponse)
def login(
    credentials: UserLogin,
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    token_issuer: Annotated[TokenIssuer, Depends(get_token_issuer)],
):
    """Login with email or username and password."""
    user = store.authenticate(
        credentials.password, email=credentials.email, username=credentials.username
    )

    if not user:
        logger.info(f"Failed login for {credentials.email or credentials.username}")
        # Same message whether the account is unknown or the password is wrong
        raise ValidationError("Invalid credentials")

    return TokenResponse(token=token_issuer.issue_for(user))


@router.post("/forgotPassword", response_model=MessageResponse)
def forgot_password(
    request: ForgotPasswordRequest,
    reset_service: Annotated[PasswordResetService, Depends(get_password_reset_service)],
):
    """Mail a password reset token to the account owner."""
    reset_service.request_reset(request.email)
    return MessageResponse(message="Token sent to email!")


@router.patch("/resetPassword/{reset_token}", response_model=TokenResponse)
def reset_password(
    reset_token: str,
    request: ResetPasswordRequest,
    reset_service: Annotated[PasswordResetService, Depends(get_password_reset_service)],
):
    """Set a new password with a reset token and log the user in."""
    result = reset_service.consume_reset(reset_token, request.password, request.password_confirm)
    return TokenResponse(token=result.token)


@router.patch("/updatePassword", response_model=TokenResponse)
def update_password(
    request: UpdatePasswordRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    token_issuer: Annotated[TokenIssuer, Depends(get_token_issuer)],
):
    """Change the current user's password. Older sessions stop working."""
    if not store.verify_password(request.current_password, current_user.password_hash):
        raise ValidationError("Your current password is wrong")

    user = store.update_password(current_user, request.password, request.password_confirm)
    return TokenResponse(token=token_issuer.issue_for(user))
