"""User account API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from clipvault.api.dependencies import get_credential_store, get_current_user, require_role
from clipvault.models.enums import Role
from clipvault.models.user import User
from clipvault.schemas.user import (
    UserAdminResponse,
    UserAdminUpdate,
    UserListResponse,
    UserResponse,
    UserSelfUpdate,
)
from clipvault.services.credential_store import CredentialStore
from clipvault.services.user_query import UserListParams

router = APIRouter(prefix="/api/v1/users", tags=["users"])

staff_only = require_role(Role.ADMIN, Role.DEVELOPER)
admin_only = require_role(Role.ADMIN)


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Get current user information."""
    return current_user


@router.patch("/updateMe", response_model=UserResponse)
async def update_me(
    changes: UserSelfUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
):
    """Update the current user's name, username or email."""
    return store.update_profile(
        current_user,
        name=changes.name,
        username=changes.username,
        email=changes.email,
    )


@router.delete("/deleteMe", status_code=status.HTTP_204_NO_CONTENT)
async def delete_me(
    current_user: Annotated[User, Depends(get_current_user)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
):
    """Deactivate the current user's account."""
    store.deactivate(current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("", response_model=UserListResponse)
async def list_users(
    request: Request,
    _: Annotated[User, Depends(staff_only)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
):
    """List users with search, filters, sorting and pagination."""
    params = UserListParams.from_query(request.query_params)
    page = store.list_users(params)
    return UserListResponse(
        results=len(page.users),
        total=page.total,
        page=page.page,
        limit=page.limit,
        users=[UserAdminResponse.model_validate(user) for user in page.users],
    )


@router.get("/{user_id}", response_model=UserAdminResponse)
async def get_user(
    user_id: int,
    _: Annotated[User, Depends(staff_only)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
):
    """Get a single user."""
    return store.require(user_id)


@router.patch("/{user_id}", response_model=UserAdminResponse)
async def update_user(
    user_id: int,
    changes: UserAdminUpdate,
    _: Annotated[User, Depends(admin_only)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
):
    """Change a user's name, role or active flag."""
    user = store.require(user_id, include_inactive=True)
    return store.update_admin(user, name=changes.name, role=changes.role, active=changes.active)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    _: Annotated[User, Depends(admin_only)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
):
    """Permanently delete a user."""
    store.hard_delete(store.require(user_id, include_inactive=True))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
