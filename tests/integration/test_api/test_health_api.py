"""Integration tests for the health endpoint and application wiring."""

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from user_api.core.container import ServiceContainer


class TestHealth:
    """Tests for GET /api/v1/health."""

    @pytest.mark.asyncio
    async def test_healthy(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["data"]["status"] == "ok"
        assert body["data"]["database"]["status"] == "ok"
        assert body["data"]["uptime"] >= 0

    @pytest.mark.asyncio
    async def test_database_down_returns_503(
        self, client: AsyncClient, container: ServiceContainer, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(container.database, "ping", AsyncMock(side_effect=ConnectionError("refused")))

        response = await client.get("/api/v1/health")

        assert response.status_code == 503
        assert response.json()["data"]["database"]["status"] == "error"

    @pytest.mark.asyncio
    async def test_security_headers_applied(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/health")
        assert response.headers["X-Frame-Options"] == "DENY"


class TestFrameworkErrors:
    """Tests for errors raised outside route handlers."""

    @pytest.mark.asyncio
    async def test_unknown_route_uses_envelope(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/nope")
        assert response.status_code == 404
        assert response.json() == {"status": "error", "message": "Not Found"}

    @pytest.mark.asyncio
    async def test_wrong_method_uses_envelope(self, client: AsyncClient) -> None:
        response = await client.delete("/api/v1/health")
        assert response.status_code == 405
        assert response.json()["status"] == "error"
