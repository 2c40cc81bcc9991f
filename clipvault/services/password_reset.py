"""Self-service password reset.

Per user the flow moves from no pending reset, to token issued, and ends
consumed, expired, or invalidated (by a failed delivery or a newer request).
Only the SHA-256 digest of the reset token is stored; the plaintext goes out
by mail once and is never persisted or logged.
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from fastapi import status
from sqlalchemy.orm import Session

from clipvault.config import Settings, get_settings
from clipvault.exceptions import DeliveryError, NotFoundError, TokenInvalidError
from clipvault.models.user import User
from clipvault.services.auth import TokenIssuer, get_token_issuer
from clipvault.services.credential_store import CredentialStore
from clipvault.services.mail import MailSender

logger = logging.getLogger(__name__)

RESET_TOKEN_BYTES = 32
RESET_SUBJECT = "Your password reset token"
INVALID_RESET_MESSAGE = "Token is invalid or has expired"


def generate_reset_token() -> str:
    """Generate a random reset token (32 bytes, hex encoded)."""
    return secrets.token_hex(RESET_TOKEN_BYTES)


def hash_reset_token(token: str) -> str:
    """Return the SHA-256 hex digest stored in place of a reset token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@dataclass
class ResetResult:
    """Outcome of a successful reset: the updated user and a fresh session token."""

    user: User
    token: str


class PasswordResetService:
    """Issues, delivers and consumes single-use password reset tokens."""

    def __init__(
        self,
        db: Session,
        mailer: MailSender,
        store: CredentialStore | None = None,
        token_issuer: TokenIssuer | None = None,
        settings: Settings | None = None,
    ):
        self.db = db
        self.mailer = mailer
        self.store = store or CredentialStore(db)
        self.token_issuer = token_issuer or get_token_issuer()
        self.settings = settings or get_settings()

    @property
    def window(self) -> timedelta:
        return timedelta(minutes=self.settings.password_reset_expiration_minutes)

    def reset_url(self, token: str) -> str:
        base = self.settings.public_base_url.rstrip("/")
        return f"{base}/api/v1/users/resetPassword/{token}"

    def render_body(self, token: str) -> str:
        minutes = self.settings.password_reset_expiration_minutes
        return (
            "Forgot your password? Submit a PATCH request with your new password and "
            f"password_confirm to: {self.reset_url(token)}\n"
            f"This link is valid for {minutes} minutes.\n"
            "If you didn't forget your password, please ignore this email."
        )

    def request_reset(self, email: str) -> None:
        """Issue a reset token for an active user and mail it to them.

        Raises:
            NotFoundError: no active user has this email.
            DeliveryError: the mail could not be sent; no reset stays pending.
        """
        user = self.store.get_by_email(email)
        if user is None:
            raise NotFoundError("There is no user with that email address")

        token = generate_reset_token()
        user.reset_token_hash = hash_reset_token(token)
        user.reset_token_expires_at = datetime.now(UTC) + self.window
        self.db.commit()
        logger.info(f"Password reset requested for user {user.id}")

        try:
            self.mailer.send(user.email, RESET_SUBJECT, self.render_body(token))
        except Exception as e:
            user.clear_reset_token()
            self.db.commit()
            logger.warning(f"Rolled back password reset for user {user.id} after failed delivery")
            if isinstance(e, DeliveryError):
                raise
            raise DeliveryError() from e

    def consume_reset(self, token: str, password: str, password_confirm: str) -> ResetResult:
        """Set a new password using a reset token, then start a new session.

        Unknown and expired tokens are reported identically.

        Raises:
            TokenInvalidError: no active user holds this token, or it expired.
            ValidationError: the new password is unacceptable.
        """
        token_hash = hash_reset_token(token)
        now = datetime.now(UTC)
        pending = (
            User.reset_token_hash == token_hash,
            User.reset_token_expires_at > now,
            User.active.is_(True),
        )

        user = self.db.query(User).filter(*pending).first()
        if user is None:
            raise TokenInvalidError(INVALID_RESET_MESSAGE, status_code=status.HTTP_400_BAD_REQUEST)

        password_hash = self.store.hash_new_password(password, password_confirm)

        # Match and clear in one statement so only one concurrent consumer can win.
        updated = (
            self.db.query(User)
            .filter(User.id == user.id, *pending)
            .update(
                {
                    User.password_hash: password_hash,
                    User.password_changed_at: datetime.now(UTC),
                    User.reset_token_hash: None,
                    User.reset_token_expires_at: None,
                },
                synchronize_session=False,
            )
        )
        if updated != 1:
            self.db.rollback()
            raise TokenInvalidError(INVALID_RESET_MESSAGE, status_code=status.HTTP_400_BAD_REQUEST)

        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Password reset completed for user {user.id}")
        return ResetResult(user=user, token=self.token_issuer.issue_for(user))
