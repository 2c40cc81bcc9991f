"""FastAPI dependencies for authentication, authorization and services."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from clipvault.database import get_db
from clipvault.exceptions import ForbiddenError, UnauthenticatedError
from clipvault.models.enums import Role
from clipvault.models.user import User
from clipvault.services.auth import TokenIssuer, get_token_issuer
from clipvault.services.credential_store import CredentialStore
from clipvault.services.mail import MailSender, get_mail_sender
from clipvault.services.password_reset import PasswordResetService

security = HTTPBearer(auto_error=False)


def get_credential_store(db: Annotated[Session, Depends(get_db)]) -> CredentialStore:
    """Get credential store bound to the request's database session."""
    return CredentialStore(db)


def get_password_reset_service(
    db: Annotated[Session, Depends(get_db)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    mailer: Annotated[MailSender, Depends(get_mail_sender)],
    token_issuer: Annotated[TokenIssuer, Depends(get_token_issuer)],
) -> PasswordResetService:
    """Get password reset service with dependencies."""
    return PasswordResetService(db, mailer, store=store, token_issuer=token_issuer)


def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    token_issuer: Annotated[TokenIssuer, Depends(get_token_issuer)],
) -> User:
    """Resolve the user behind a bearer token.

    Every route guarded by a role check goes through here first, including
    the password-change staleness check.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError()

    # TokenInvalidError / TokenExpiredError propagate as 401
    claims = token_issuer.verify(credentials.credentials)

    user = store.get_by_id(claims.subject_id)
    if user is None:
        raise UnauthenticatedError("The account for this token no longer exists")

    if user.changed_password_after(claims.issued_at):
        raise UnauthenticatedError("Password was changed recently. Please log in again")

    request.state.user = user
    return user


def require_role(*roles: Role) -> Callable[..., User]:
    """Build a dependency that admits only users holding one of the given roles."""
    allowed = frozenset(roles)

    def role_checker(current_user: Annotated[User, Depends(get_current_user)]) -> User:
        if current_user.role not in allowed:
            raise ForbiddenError()
        return current_user

    return role_checker
