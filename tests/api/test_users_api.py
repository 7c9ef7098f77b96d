"""
Tests for registration and login.
"""

import pytest

from api.auth import decode_access_token, verify_password

USER = {"name": "Test User", "email": "test@example.com", "password": "testpassword"}


class TestRegister:
    """POST /api/register"""

    def test_register(self, client, user_service):
        response = client.post("/api/register", json=USER)

        assert response.status_code == 201
        assert response.json()["message"] == "Test User successfully registered"

        stored = user_service.collection.docs[0]
        assert stored["email"] == USER["email"]
        assert stored["password"] != USER["password"]
        assert verify_password(USER["password"], stored["password"])

    def test_register_missing_fields(self, client):
        response = client.post("/api/register", json={})

        assert response.status_code == 400
        assert response.json()["message"] == "All fields are required"

    @pytest.mark.parametrize("email", ["not-an-email", "test@example", "test@example.company"])
    def test_register_invalid_email(self, client, user_service, email):
        response = client.post("/api/register", json={**USER, "email": email})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid email address"
        assert user_service.collection.docs == []

    def test_register_duplicate_email(self, client):
        client.post("/api/register", json=USER)

        response = client.post("/api/register", json={**USER, "name": "Someone Else"})

        assert response.status_code == 400
        assert response.json()["message"] == "User already exists"


class TestLogin:
    """POST /api/login"""

    @pytest.fixture(autouse=True)
    def registered_user(self, client):
        client.post("/api/register", json=USER)

    def test_login(self, client):
        response = client.post(
            "/api/login", json={"email": USER["email"], "password": USER["password"]}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "User LoggedIn"
        assert isinstance(data["token"], str)
        payload = decode_access_token(data["token"])
        assert payload["email"] == USER["email"]
        assert payload["name"] == USER["name"]

    def test_login_wrong_password(self, client):
        response = client.post(
            "/api/login", json={"email": USER["email"], "password": "incorrectpassword"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Wrong Password"

    def test_login_unknown_email(self, client):
        response = client.post(
            "/api/login", json={"email": "nobody@example.com", "password": "testpassword"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "User not found"

    def test_login_missing_fields(self, client):
        response = client.post("/api/login", json={"email": USER["email"]})

        assert response.status_code == 400
        assert response.json()["message"] == "All fields are required"

    def test_login_token_opens_book_routes(self, client):
        token = client.post(
            "/api/login", json={"email": USER["email"], "password": USER["password"]}
        ).json()["token"]

        response = client.get("/api/books?page=1", headers={"Authorization": token})

        assert response.status_code == 200
        assert response.json() == []


class TestPasswordLength:
    """bcrypt input is capped at 72 bytes."""

    def test_register_long_password(self, client, user_service):
        response = client.post("/api/register", json={**USER, "password": "x" * 100})

        assert response.status_code == 400
        assert response.json()["message"] == "Password must be at most 72 bytes"
        assert user_service.collection.docs == []

    def test_register_multibyte_password_over_limit(self, client):
        # 37 two-byte characters
        response = client.post("/api/register", json={**USER, "password": "é" * 37})

        assert response.status_code == 400

    def test_register_password_at_limit(self, client):
        password = "x" * 72
        client.post("/api/register", json={**USER, "password": password})

        response = client.post("/api/login", json={"email": USER["email"], "password": password})

        assert response.status_code == 201
        assert response.json()["message"] == "User LoggedIn"

    def test_login_long_password(self, client):
        client.post("/api/register", json=USER)

        response = client.post("/api/login", json={"email": USER["email"], "password": "x" * 100})

        assert response.status_code == 400
        assert response.json()["message"] == "Password must be at most 72 bytes"
