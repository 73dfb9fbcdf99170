"""Integration tests for the authentication endpoints."""

import pytest
from httpx import AsyncClient

from user_api.models.user import User

REGISTER = {"email": "new@example.com", "name": "New User", "password": "Password123"}


async def _register(client: AsyncClient, payload: dict | None = None) -> dict:
    response = await client.post("/api/v1/auth/register", json=payload or REGISTER)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestRegister:
    """Tests for POST /api/v1/auth/register."""

    @pytest.mark.asyncio
    async def test_register_returns_tokens_and_user(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/auth/register", json=REGISTER)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "success"
        assert body["message"] == "User registered successfully"
        data = body["data"]
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 900
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["user"]["email"] == "new@example.com"
        assert data["user"]["role"] == "USER"
        assert "password" not in data["user"]
        assert "password_hash" not in data["user"]

    @pytest.mark.asyncio
    async def test_duplicate_email_conflict(self, client: AsyncClient) -> None:
        await _register(client)
        response = await client.post("/api/v1/auth/register", json=REGISTER)

        assert response.status_code == 409
        assert response.json() == {"status": "error", "message": "Email already exists"}

    @pytest.mark.asyncio
    async def test_validation_errors_use_envelope(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "not-an-email", "name": "X", "password": "weak"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["status"] == "error"
        assert body["message"] == "Validation failed"
        fields = {e["field"] for e in body["errors"]}
        assert {"email", "name", "password"} <= fields


class TestLogin:
    """Tests for POST /api/v1/auth/login."""

    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient, regular_user: User) -> None:
        payload = {"email": "USER@example.com", "password": "UserPass123"}
        response = await client.post("/api/v1/auth/login", json=payload)
        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == str(regular_user.id)

    @pytest.mark.asyncio
    async def test_failure_messages_identical(self, client: AsyncClient, regular_user: User) -> None:
        wrong_password = await client.post(
            "/api/v1/auth/login", json={"email": regular_user.email, "password": "WrongPass123"}
        )
        unknown_email = await client.post(
            "/api/v1/auth/login", json={"email": "ghost@example.com", "password": "UserPass123"}
        )

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json() == {
            "status": "error",
            "message": "Invalid email or password",
        }


class TestRefreshAndLogout:
    """Tests for refresh, logout and me."""

    @pytest.mark.asyncio
    async def test_refresh_rotates_and_old_token_is_rejected(self, client: AsyncClient) -> None:
        data = await _register(client)
        old_refresh = data["refresh_token"]

        first = await client.post("/api/v1/auth/refresh", json={"refresh_token": old_refresh})
        assert first.status_code == 200
        assert first.json()["data"]["refresh_token"] != old_refresh

        reused = await client.post("/api/v1/auth/refresh", json={"refresh_token": old_refresh})
        assert reused.status_code == 401
        assert reused.json()["message"] == "Invalid refresh token"

    @pytest.mark.asyncio
    async def test_logout_invalidates_refresh_token(self, client: AsyncClient) -> None:
        data = await _register(client)
        headers = {"Authorization": f"Bearer {data['access_token']}"}

        response = await client.post("/api/v1/auth/logout", headers=headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Logout successful"

        refreshed = await client.post("/api/v1/auth/refresh", json={"refresh_token": data["refresh_token"]})
        assert refreshed.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_requires_authentication(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/auth/logout")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_me_returns_token_identity(self, client: AsyncClient) -> None:
        data = await _register(client)
        response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})

        assert response.status_code == 200
        assert response.json()["data"] == {
            "id": data["user"]["id"],
            "email": "new@example.com",
            "role": "USER",
        }

    @pytest.mark.asyncio
    async def test_me_with_refresh_token_rejected(self, client: AsyncClient) -> None:
        data = await _register(client)
        response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {data['refresh_token']}"})
        assert response.status_code == 401
