"""API endpoint tests."""

from conftest import DEFAULT_PASSWORD


def signup_payload(**overrides):
    payload = {
        "name": "New User",
        "username": "newuser",
        "email": "newuser@example.com",
        "password": "password123",
        "password_confirm": "password123",
    }
    payload.update(overrides)
    return payload


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_signup_user(client):
    """Test user registration returns a token and the public projection."""
    response = client.post("/api/v1/users/signup", json=signup_payload())
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["token"]
    assert data["user"]["email"] == "newuser@example.com"
    assert data["user"]["active"] is True
    assert "password_hash" not in data["user"]
    assert "password" not in data["user"]
    assert "password_confirm" not in data["user"]
    assert "role" not in data["user"]


def test_signup_without_username(client):
    """Test username is optional."""
    response = client.post("/api/v1/users/signup", json=signup_payload(username=None))
    assert response.status_code == 200
    assert response.json()["user"]["username"] is None


def test_signup_duplicate_email(client, auth_headers):
    """Test registration with duplicate email fails."""
    response = client.post(
        "/api/v1/users/signup",
        json=signup_payload(email=auth_headers.email, username="another"),
    )
    assert response.status_code == 400
    assert "email" in response.json()["message"]


def test_signup_duplicate_username(client, auth_headers):
    """Test registration with duplicate username fails."""
    response = client.post("/api/v1/users/signup", json=signup_payload(username="tester"))
    assert response.status_code == 400
    assert "username" in response.json()["message"]


def test_signup_password_mismatch(client):
    """Test registration fails when the confirmation does not match."""
    response = client.post(
        "/api/v1/users/signup", json=signup_payload(password_confirm="password124")
    )
    assert response.status_code == 400
    assert response.json()["status"] == "fail"
    assert "do not match" in response.json()["message"]


def test_signup_short_password(client):
    """Test registration rejects passwords under eight characters."""
    response = client.post(
        "/api/v1/users/signup", json=signup_payload(password="short", password_confirm="short")
    )
    assert response.status_code == 400
    assert "password" in response.json()["message"]


def test_signup_multibyte_password_over_bcrypt_limit(client):
    """Passwords are limited by their UTF-8 size, not their character count."""
    password = "p\u00e4ssw\u00f6rd" * 8
    response = client.post(
        "/api/v1/users/signup", json=signup_payload(password=password, password_confirm=password)
    )
    assert response.status_code == 400
    assert "72 bytes" in response.json()["message"]


def test_signup_invalid_email(client):
    """Test registration rejects malformed email addresses."""
    response = client.post("/api/v1/users/signup", json=signup_payload(email="not-an-email"))
    assert response.status_code == 400


def test_signup_missing_fields(client):
    """Test registration requires name, email and passwords."""
    response = client.post("/api/v1/users/signup", json={"email": "x@example.com"})
    assert response.status_code == 400
    message = response.json()["message"]
    assert "name" in message
    assert "password" in message


def test_login(client, auth_headers):
    """Test user login by email."""
    response = client.post(
        "/api/v1/users/login", json={"email": auth_headers.email, "password": DEFAULT_PASSWORD}
    )
    assert response.status_code == 200
    assert response.json()["token"]


def test_login_with_username(client, auth_headers):
    """Test user login by username."""
    response = client.post(
        "/api/v1/users/login", json={"username": "tester", "password": DEFAULT_PASSWORD}
    )
    assert response.status_code == 200
    assert response.json()["token"]


def test_login_wrong_password(client, auth_headers):
    """Test login with wrong password."""
    response = client.post(
        "/api/v1/users/login", json={"email": auth_headers.email, "password": "wrongpass"}
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid credentials"


def test_login_unknown_user_same_message(client, auth_headers):
    """Test unknown accounts and wrong passwords are indistinguishable."""
    response = client.post(
        "/api/v1/users/login", json={"email": "nobody@example.com", "password": "wrongpass"}
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid credentials"


def test_login_requires_identifier(client):
    """Test login without email or username is a validation error."""
    response = client.post("/api/v1/users/login", json={"password": "whatever1"})
    assert response.status_code == 400


def test_get_current_user(client, auth_headers):
    """Test getting current user information."""
    response = client.get("/api/v1/users/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["email"] == auth_headers.email
    assert "role" not in response.json()


def test_update_me(client, auth_headers):
    """Test self-service profile edits."""
    response = client.patch(
        "/api/v1/users/updateMe",
        headers=auth_headers,
        json={"name": "Renamed", "email": "renamed@example.com"},
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Renamed"
    assert response.json()["email"] == "renamed@example.com"


def test_update_me_rejects_password_fields(client, auth_headers):
    """Test passwords cannot be changed through the profile endpoint."""
    response = client.patch(
        "/api/v1/users/updateMe",
        headers=auth_headers,
        json={"password": "newpassword1", "password_confirm": "newpassword1"},
    )
    assert response.status_code == 400


def test_update_me_rejects_role(client, auth_headers):
    """Test users cannot promote themselves."""
    response = client.patch(
        "/api/v1/users/updateMe", headers=auth_headers, json={"role": "admin"}
    )
    assert response.status_code == 400


def test_update_me_duplicate_email(client, auth_headers, make_user):
    """Test profile edits respect email uniqueness."""
    make_user("taken@example.com")
    response = client.patch(
        "/api/v1/users/updateMe", headers=auth_headers, json={"email": "taken@example.com"}
    )
    assert response.status_code == 400


def test_delete_me_deactivates(client, auth_headers, store):
    """Test self-service delete only flips the active flag."""
    response = client.delete("/api/v1/users/deleteMe", headers=auth_headers)
    assert response.status_code == 204

    assert store.get_by_id(auth_headers.user_id) is None
    hidden = store.get_by_id(auth_headers.user_id, include_inactive=True)
    assert hidden is not None
    assert hidden.active is False

    # The deactivated account can no longer log in or use its token
    response = client.post(
        "/api/v1/users/login", json={"email": auth_headers.email, "password": DEFAULT_PASSWORD}
    )
    assert response.status_code == 400
    assert client.get("/api/v1/users/me", headers=auth_headers).status_code == 401


def test_update_password(client, auth_headers):
    """Test changing the password returns a working token."""
    response = client.patch(
        "/api/v1/users/updatePassword",
        headers=auth_headers,
        json={
            "current_password": DEFAULT_PASSWORD,
            "password": "brandnewpass1",
            "password_confirm": "brandnewpass1",
        },
    )
    assert response.status_code == 200
    new_headers = {"Authorization": f"Bearer {response.json()['token']}"}
    assert client.get("/api/v1/users/me", headers=new_headers).status_code == 200

    response = client.post(
        "/api/v1/users/login", json={"email": auth_headers.email, "password": "brandnewpass1"}
    )
    assert response.status_code == 200


def test_update_password_wrong_current(client, auth_headers):
    """Test the current password must be supplied correctly."""
    response = client.patch(
        "/api/v1/users/updatePassword",
        headers=auth_headers,
        json={
            "current_password": "not-my-password",
            "password": "brandnewpass1",
            "password_confirm": "brandnewpass1",
        },
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Your current password is wrong"


def test_update_password_requires_auth(client):
    """Test the password change endpoint is guarded."""
    response = client.patch(
        "/api/v1/users/updatePassword",
        json={
            "current_password": DEFAULT_PASSWORD,
            "password": "brandnewpass1",
            "password_confirm": "brandnewpass1",
        },
    )
    assert response.status_code == 401


def test_unknown_route(client):
    """Test unknown routes render the error envelope."""
    response = client.get("/api/v1/nothing-here")
    assert response.status_code == 404
    assert response.json()["status"] == "fail"
    assert "/api/v1/nothing-here" in response.json()["message"]
