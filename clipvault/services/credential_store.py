"""Credential store: persistence and invariants of user accounts."""

import logging
from datetime import UTC, datetime

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from clipvault.exceptions import ConflictError, NotFoundError, ValidationError
from clipvault.models.enums import Role
from clipvault.models.user import User
from clipvault.services.auth import BCRYPT_MAX_BYTES, PasswordHasher, get_password_hasher
from clipvault.services.user_query import UserListParams, UserPage, UserQuery

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
MAX_NAME_LENGTH = 40
MIN_USERNAME_LENGTH = 3


def normalize_email(email: str) -> str:
    """Validate an email address and return its canonical lowercase form."""
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError("Invalid email") from e
    return email.strip().lower()


def validate_new_password(password: str | None, password_confirm: str | None) -> None:
    """Check a submitted password against its confirmation field."""
    if not password:
        raise ValidationError("password is required")
    if not password_confirm:
        raise ValidationError("password_confirm is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValidationError(f"password must be at most {BCRYPT_MAX_BYTES} bytes long")
    if password != password_confirm:
        raise ValidationError("password and password_confirm do not match")


class CredentialStore:
    """Repository for users and their credentials.

    Default reads exclude soft-deleted (inactive) users; pass
    ``include_inactive=True`` to see them.
    """

    def __init__(self, db: Session, hasher: PasswordHasher | None = None):
        self.db = db
        self.hasher = hasher or get_password_hasher()

    def _query(self, include_inactive: bool = False) -> Query:
        query = self.db.query(User)
        if not include_inactive:
            query = query.filter(User.active.is_(True))
        return query

    def get_by_id(self, user_id: int, include_inactive: bool = False) -> User | None:
        """Get a user by id."""
        return self._query(include_inactive).filter(User.id == user_id).first()

    def get_by_email(self, email: str, include_inactive: bool = False) -> User | None:
        """Get a user by email."""
        return (
            self._query(include_inactive).filter(User.email == email.strip().lower()).first()
        )

    def get_by_username(self, username: str, include_inactive: bool = False) -> User | None:
        """Get a user by username."""
        return self._query(include_inactive).filter(User.username == username).first()

    def get_by_login(self, email: str | None = None, username: str | None = None) -> User | None:
        """Get an active user by email or username, email taking precedence."""
        if email:
            return self.get_by_email(email)
        if username:
            return self.get_by_username(username)
        return None

    def require(self, user_id: int, include_inactive: bool = False) -> User:
        """Get a user by id or raise NotFoundError."""
        user = self.get_by_id(user_id, include_inactive)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def verify_password(self, plain_password: str, password_hash: str) -> bool:
        """Check a plaintext password against a stored hash."""
        return self.hasher.verify(plain_password, password_hash)

    def authenticate(
        self, password: str, email: str | None = None, username: str | None = None
    ) -> User | None:
        """Authenticate an active user by email or username and password.

        Runs bcrypt whether or not the user exists so response time does not
        reveal which identifiers are registered.
        """
        user = self.get_by_login(email=email, username=username)
        if user is None:
            self.hasher.dummy_verify(password)
            return None
        if not self.verify_password(password, user.password_hash):
            return None
        return user

    def _ensure_unique(self, email: str | None, username: str | None, exclude_id: int | None = None):
        # Uniqueness spans inactive users too; the database constraint does not know about soft delete.
        if email is not None:
            existing = self.get_by_email(email, include_inactive=True)
            if existing is not None and existing.id != exclude_id:
                raise ConflictError("email", email)
        if username is not None:
            existing = self.get_by_username(username, include_inactive=True)
            if existing is not None and existing.id != exclude_id:
                raise ConflictError("username", username)

    def _commit(self, user: User) -> User:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            # Lost a race with a concurrent write between the check and the insert
            raise ConflictError("email or username") from e
        self.db.refresh(user)
        return user

    def create(
        self,
        name: str | None,
        email: str | None,
        password: str | None,
        password_confirm: str | None,
        username: str | None = None,
    ) -> User:
        """Register a new user."""
        if not name or not name.strip():
            raise ValidationError("name is required")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"name must not exceed {MAX_NAME_LENGTH} characters")
        if not email:
            raise ValidationError("email is required")
        if username is not None and len(username) < MIN_USERNAME_LENGTH:
            raise ValidationError(
                f"username must be at least {MIN_USERNAME_LENGTH} characters long"
            )
        email = normalize_email(email)
        validate_new_password(password, password_confirm)
        self._ensure_unique(email, username)

        user = User(
            name=name.strip(),
            username=username,
            email=email,
            password_hash=self.hasher.hash(password),
            role=Role.USER,
            active=True,
        )
        self.db.add(user)
        self._commit(user)
        logger.info(f"Created user {user.id}")
        return user

    def hash_new_password(self, password: str | None, password_confirm: str | None) -> str:
        """Validate a new password and return its hash."""
        validate_new_password(password, password_confirm)
        return self.hasher.hash(password)

    def update_password(self, user: User, password: str, password_confirm: str) -> User:
        """Change a user's password and mark existing sessions stale."""
        user.password_hash = self.hash_new_password(password, password_confirm)
        user.password_changed_at = datetime.now(UTC)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Password changed for user {user.id}")
        return user

    def update_profile(
        self,
        user: User,
        name: str | None = None,
        username: str | None = None,
        email: str | None = None,
    ) -> User:
        """Apply self-service profile edits. Fields left as None are unchanged."""
        if email is not None:
            email = normalize_email(email)
        self._ensure_unique(email, username, exclude_id=user.id)
        if name is not None:
            user.name = name
        if username is not None:
            user.username = username
        if email is not None:
            user.email = email
        return self._commit(user)

    def update_admin(
        self,
        user: User,
        name: str | None = None,
        role: Role | None = None,
        active: bool | None = None,
    ) -> User:
        """Apply administrative edits. Fields left as None are unchanged."""
        if name is not None:
            user.name = name
        if role is not None:
            user.role = role
        if active is not None:
            user.active = active
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Administrative update for user {user.id}")
        return user

    def deactivate(self, user: User) -> None:
        """Soft delete a user."""
        user.soft_delete()
        self.db.commit()
        logger.info(f"Deactivated user {user.id}")

    def hard_delete(self, user: User) -> None:
        """Erase a user record. Administrative use only."""
        user_id = user.id
        self.db.delete(user)
        self.db.commit()
        logger.info(f"Deleted user {user_id}")

    def list_users(self, params: UserListParams) -> UserPage:
        """List users with filtering, sorting and pagination."""
        return UserQuery(self.db, params).run()
