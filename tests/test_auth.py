"""
Tests for authentication endpoints (signup and login) and token checks.

These tests verify:
  - Successful signup creates a STAFF user and returns a JWT
  - Duplicate email signup is rejected (409 Conflict)
  - Login returns a token; wrong password and unknown email get the same 401
  - Short passwords are rejected (422 Validation Error)
  - Protected endpoints reject missing and invalid tokens
"""


SIGNUP = {
    "email": "clerk@example.com",
    "password": "StrongPass99!",
    "full_name": "Farida Sultani",
}


class TestSignup:
    """Tests for POST /auth/signup."""

    async def test_signup_success(self, client):
        response = await client.post("/auth/signup", json=SIGNUP)
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "clerk@example.com"
        assert data["full_name"] == "Farida Sultani"
        assert data["user_type"] == "staff"
        assert data["token"]
        assert data["token_type"] == "bearer"

    async def test_signup_duplicate_email(self, client):
        await client.post("/auth/signup", json=SIGNUP)
        response = await client.post("/auth/signup", json=SIGNUP)
        assert response.status_code == 409
        assert response.json()["error_type"] == "duplicate_email"

    async def test_signup_short_password(self, client):
        response = await client.post("/auth/signup", json={**SIGNUP, "password": "short"})
        assert response.status_code == 422

    async def test_signup_invalid_email(self, client):
        response = await client.post("/auth/signup", json={**SIGNUP, "email": "not-an-email"})
        assert response.status_code == 422

    async def test_signup_missing_full_name(self, client):
        body = {"email": SIGNUP["email"], "password": SIGNUP["password"]}
        response = await client.post("/auth/signup", json=body)
        assert response.status_code == 422


class TestLogin:
    """Tests for POST /auth/login."""

    async def test_login_success(self, client):
        await client.post("/auth/signup", json=SIGNUP)
        response = await client.post(
            "/auth/login",
            json={"email": SIGNUP["email"], "password": SIGNUP["password"]},
        )
        assert response.status_code == 200
        assert response.json()["token"]

    async def test_login_wrong_password(self, client):
        await client.post("/auth/signup", json=SIGNUP)
        response = await client.post(
            "/auth/login",
            json={"email": SIGNUP["email"], "password": "WrongPass99!"},
        )
        assert response.status_code == 401
        assert response.json()["error_type"] == "invalid_credentials"

    async def test_login_nonexistent_email_gets_same_error(self, client):
        response = await client.post(
            "/auth/login",
            json={"email": "nobody@example.com", "password": "Whatever123!"},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"


class TestTokens:
    """Token handling on protected endpoints."""

    async def test_token_works_for_protected_endpoint(self, client):
        signup = await client.post("/auth/signup", json=SIGNUP)
        token = signup.json()["token"]
        response = await client.get(
            "/branches", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 200
        assert response.json() == []

    async def test_no_token_returns_401(self, client):
        response = await client.get("/transactions")
        assert response.status_code == 401

    async def test_invalid_token_returns_401(self, client):
        response = await client.get(
            "/transactions", headers={"Authorization": "Bearer not-a-real-token"}
        )
        assert response.status_code == 401

    async def test_health_is_public(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
