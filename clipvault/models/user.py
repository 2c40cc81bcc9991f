"""User model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, Integer, String

from clipvault.database import Base
from clipvault.models.enums import Role
from clipvault.models.mixins import ActiveMixin, CreatedAtMixin, ensure_utc


class User(Base, CreatedAtMixin, ActiveMixin):
    """User model for authentication and authorization."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(40), nullable=False)
    username = Column(String(255), unique=True, nullable=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    password_changed_at = Column(DateTime(timezone=True), nullable=True)
    reset_token_hash = Column(String(64), nullable=True, index=True)
    reset_token_expires_at = Column(DateTime(timezone=True), nullable=True)
    role = Column(
        Enum(
            Role,
            name="user_role",
            native_enum=False,
            validate_strings=True,
            length=20,
            values_callable=lambda roles: [role.value for role in roles],
        ),
        nullable=False,
        default=Role.USER,
        server_default=Role.USER.value,
    )

    def changed_password_after(self, issued_at: datetime) -> bool:
        """Check whether the password changed at or after the instant a token was issued."""
        changed_at = ensure_utc(self.password_changed_at)
        if changed_at is None:
            return False
        return changed_at >= issued_at

    @property
    def has_pending_reset(self) -> bool:
        """Check if a password reset token is outstanding."""
        return self.reset_token_hash is not None

    def clear_reset_token(self) -> None:
        """Drop any outstanding reset token."""
        self.reset_token_hash = None
        self.reset_token_expires_at = None
