"""Pytest configuration and fixtures."""

import os
import re
from dataclasses import dataclass

# Settings are read once at import time, so configure them before importing the app.
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-enough-length-0123456789")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from clipvault.database import Base, get_db  # noqa: E402
from clipvault.exceptions import DeliveryError  # noqa: E402
from clipvault.main import app  # noqa: E402
from clipvault.models.enums import Role  # noqa: E402
from clipvault.services.auth import get_token_issuer  # noqa: E402
from clipvault.services.credential_store import CredentialStore  # noqa: E402
from clipvault.services.mail import get_mail_sender  # noqa: E402

SQLALCHEMY_DATABASE_URL = os.environ["DATABASE_URL"]

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_PASSWORD = "testpass123"
RESET_TOKEN_PATTERN = re.compile(r"/resetPassword/([0-9a-f]{64})")


class AuthHeaders(dict):
    """Dict subclass that also stores user_id and email."""

    def __init__(self, *args, user_id: int | None = None, email: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.email = email


@dataclass
class SentMail:
    """A message captured by the test mail sender."""

    to_address: str
    subject: str
    body: str


class OutboxMailSender:
    """Mail sender that records messages instead of delivering them."""

    def __init__(self):
        self.messages: list[SentMail] = []
        self.fail = False

    def send(self, to_address: str, subject: str, body: str) -> None:
        if self.fail:
            raise DeliveryError()
        self.messages.append(SentMail(to_address, subject, body))

    def last_reset_token(self) -> str:
        """Extract the plaintext reset token from the most recent message."""
        match = RESET_TOKEN_PATTERN.search(self.messages[-1].body)
        assert match, "no reset link in the last message"
        return match.group(1)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def outbox():
    """Capture outbound mail."""
    return OutboxMailSender()


@pytest.fixture(scope="function")
def client(db, outbox):
    """Create a test client with database and mail overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mail_sender] = lambda: outbox
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def store(db):
    """Credential store bound to the test session."""
    return CredentialStore(db)


@pytest.fixture
def token_issuer():
    """The application's token issuer."""
    return get_token_issuer()


@pytest.fixture
def make_user(store):
    """Factory creating users directly through the credential store."""

    def _make(email, password=DEFAULT_PASSWORD, role=Role.USER, name="Test User", username=None):
        user = store.create(
            name=name,
            username=username,
            email=email,
            password=password,
            password_confirm=password,
        )
        if role != Role.USER:
            store.update_admin(user, role=role)
        return user

    return _make


@pytest.fixture
def headers_for(token_issuer):
    """Build bearer headers for a user."""

    def _headers(user):
        token = token_issuer.issue_for(user)
        return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=user.id, email=user.email)

    return _headers


@pytest.fixture
def auth_headers(client):
    """Register a user through the API and return auth headers with user info."""
    response = client.post(
        "/api/v1/users/signup",
        json={
            "name": "Test User",
            "username": "tester",
            "email": "test@example.com",
            "password": DEFAULT_PASSWORD,
            "password_confirm": DEFAULT_PASSWORD,
        },
    )
    assert response.status_code == 200
    data = response.json()
    token = data["token"]
    user_id = data["user"]["id"]

    return AuthHeaders(
        {"Authorization": f"Bearer {token}"}, user_id=user_id, email="test@example.com"
    )


@pytest.fixture
def admin_headers(make_user, headers_for):
    """Auth headers for an administrator."""
    return headers_for(make_user("admin@example.com", role=Role.ADMIN, name="Admin"))
