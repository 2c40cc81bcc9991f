"""Authentication service for JWT and password handling."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import lru_cache

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from clipvault.config import Settings, get_settings
from clipvault.exceptions import TokenExpiredError, TokenInvalidError
from clipvault.models.mixins import ensure_utc
from clipvault.models.user import User

# bcrypt only reads the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Slow, salted one-way hashing of passwords (bcrypt).

    The work factor is deliberately expensive; callers must run hashing off
    the event loop.
    """

    def __init__(self, rounds: int):
        self.rounds = rounds
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)
        self._dummy_hash: str | None = None

    def hash(self, password: str) -> str:
        """Hash a password."""
        return self._context.hash(password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash.

        Candidates longer than bcrypt can read never match, since no stored
        password is that long.
        """
        if len(plain_password.encode("utf-8")) > BCRYPT_MAX_BYTES:
            return False
        return self._context.verify(plain_password, hashed_password)

    def dummy_verify(self, plain_password: str) -> None:
        """Burn the same bcrypt cost as a real check when no user matched."""
        if len(plain_password.encode("utf-8")) > BCRYPT_MAX_BYTES:
            return
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("clipvault-timing-equalizer")
        self._context.verify(plain_password, self._dummy_hash)


@dataclass(frozen=True)
class TokenConfig:
    """Process-wide session token configuration."""

    secret: str
    algorithm: str = "HS256"
    lifetime: timedelta = timedelta(days=7)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenConfig":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            lifetime=timedelta(minutes=settings.jwt_expiration_minutes),
        )


@dataclass(frozen=True)
class SessionClaims:
    """Decoded contents of a verified session token."""

    subject_id: int
    issued_at: datetime


class TokenIssuer:
    """Signs and verifies stateless bearer tokens.

    Tokens carry the user id (``sub``), the issue instant (``iat``, with
    sub-second precision) and an expiry (``exp``). There is no server-side
    session table: a token stops working when it expires or when the user's
    password changes after ``iat``.
    """

    def __init__(self, config: TokenConfig):
        self.config = config

    def issue(self, user_id: int, issued_at: datetime | None = None) -> str:
        """Create a signed token for the given user."""
        issued_at = issued_at or datetime.now(UTC)
        payload = {
            "sub": str(user_id),
            "iat": issued_at.timestamp(),
            "exp": issued_at + self.config.lifetime,
        }
        return jwt.encode(payload, self.config.secret, algorithm=self.config.algorithm)

    def issue_for(self, user: User) -> str:
        """Create a token for a user, never dated at or before their last password change."""
        issued_at = datetime.now(UTC)
        changed_at = ensure_utc(user.password_changed_at)
        if changed_at is not None and issued_at <= changed_at:
            issued_at = changed_at + timedelta(microseconds=1)
        return self.issue(user.id, issued_at)

    def verify(self, token: str) -> SessionClaims:
        """Decode and validate a token.

        Only the configured algorithm is accepted, so tokens re-signed with
        another algorithm (including "none") are rejected.
        """
        try:
            payload = jwt.decode(token, self.config.secret, algorithms=[self.config.algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpiredError() from e
        except JWTError as e:
            raise TokenInvalidError() from e

        try:
            subject_id = int(payload["sub"])
            issued_at = datetime.fromtimestamp(float(payload["iat"]), UTC)
        except (KeyError, TypeError, ValueError) as e:
            raise TokenInvalidError() from e

        return SessionClaims(subject_id=subject_id, issued_at=issued_at)


@lru_cache
def get_password_hasher() -> PasswordHasher:
    """Get the process-wide password hasher."""
    return PasswordHasher(rounds=get_settings().bcrypt_rounds)


@lru_cache
def get_token_issuer() -> TokenIssuer:
    """Get the process-wide token issuer."""
    return TokenIssuer(TokenConfig.from_settings(get_settings()))
