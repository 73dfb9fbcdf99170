"""Integration tests for audit trail recording and the audit log endpoints."""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from user_api.core.container import ServiceContainer
from user_api.models.audit_log import AuditLog
from user_api.models.user import User


async def _entries(container: ServiceContainer) -> list[AuditLog]:
    await container.task_runner.drain()
    async with container.database.session_factory() as session:
        result = await session.execute(select(AuditLog).order_by(AuditLog.timestamp))
        return list(result.scalars().all())


class TestAuditRecording:
    """Tests for what the audit middleware writes."""

    @pytest.mark.asyncio
    async def test_health_check_not_recorded(self, client: AsyncClient, container: ServiceContainer) -> None:
        response = await client.get("/api/v1/health")
        assert response.status_code == 200
        assert await _entries(container) == []

    @pytest.mark.asyncio
    async def test_created_request_recorded_once_with_body(
        self, client: AsyncClient, container: ServiceContainer, admin_user: User, admin_headers: dict
    ) -> None:
        payload = {"email": "audited@example.com", "name": "Audited", "password": "Password123"}
        response = await client.post("/api/v1/users", json=payload, headers=admin_headers)
        assert response.status_code == 201

        entries = await _entries(container)
        assert len(entries) == 1
        entry = entries[0]
        assert entry.method == "POST"
        assert entry.endpoint == "/api/v1/users"
        assert entry.response_status == 201
        assert entry.user_id == admin_user.id
        assert entry.request_body == {"email": "audited@example.com", "name": "Audited", "password": "[REDACTED]"}

    @pytest.mark.asyncio
    async def test_forbidden_request_recorded(
        self, client: AsyncClient, container: ServiceContainer, regular_user: User, user_headers: dict
    ) -> None:
        response = await client.get("/api/v1/audit-logs", headers=user_headers)
        assert response.status_code == 403

        entries = await _entries(container)
        assert len(entries) == 1
        assert entries[0].response_status == 403
        assert entries[0].user_id == regular_user.id
        assert entries[0].request_body is None

    @pytest.mark.asyncio
    async def test_anonymous_failed_login_recorded_without_user(
        self, client: AsyncClient, container: ServiceContainer
    ) -> None:
        await client.post("/api/v1/auth/login", json={"email": "ghost@example.com", "password": "Whatever1"})

        entries = await _entries(container)
        assert len(entries) == 1
        assert entries[0].user_id is None
        assert entries[0].response_status == 401
        assert entries[0].request_body == {"email": "ghost@example.com", "password": "[REDACTED]"}

    @pytest.mark.asyncio
    async def test_body_recorded_when_handler_never_reads_it(
        self, client: AsyncClient, container: ServiceContainer, regular_user: User, user_headers: dict
    ) -> None:
        response = await client.post("/api/v1/auth/logout", json={"reason": "done"}, headers=user_headers)
        assert response.status_code == 200

        entries = await _entries(container)
        assert len(entries) == 1
        assert entries[0].endpoint == "/api/v1/auth/logout"
        assert entries[0].user_id == regular_user.id
        assert entries[0].request_body == {"reason": "done"}

    @pytest.mark.asyncio
    async def test_body_recorded_for_unknown_route(self, client: AsyncClient, container: ServiceContainer) -> None:
        response = await client.post("/api/v1/nope", json={"a": 1})
        assert response.status_code == 404

        entries = await _entries(container)
        assert len(entries) == 1
        assert entries[0].response_status == 404
        assert entries[0].request_body == {"a": 1}

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_change_response(
        self, client: AsyncClient, container: ServiceContainer, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def broken_record(*args: object, **kwargs: object) -> None:
            msg = "audit store unavailable"
            raise RuntimeError(msg)

        monkeypatch.setattr(container.audit_recorder, "record", broken_record)

        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "still@example.com", "name": "Still Works", "password": "Password123"},
        )
        await container.task_runner.drain()
        assert response.status_code == 201


class TestAuditLogEndpoints:
    """Tests for GET /api/v1/audit-logs."""

    @pytest.mark.asyncio
    async def test_admin_lists_entries_with_user_name(
        self, client: AsyncClient, container: ServiceContainer, admin_user: User, admin_headers: dict
    ) -> None:
        await client.get("/api/v1/users", headers=admin_headers)
        await container.task_runner.drain()

        response = await client.get("/api/v1/audit-logs", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total_logs"] == 1
        assert data["total_pages"] == 1
        entry = data["audit_logs"][0]
        assert entry["endpoint"] == "/api/v1/users"
        assert entry["user_id"] == str(admin_user.id)
        assert entry["user_name"] == admin_user.name

    @pytest.mark.asyncio
    async def test_filter_by_method(
        self, client: AsyncClient, container: ServiceContainer, admin_headers: dict
    ) -> None:
        await client.get("/api/v1/users", headers=admin_headers)
        await client.post("/api/v1/auth/login", json={"email": "x@example.com", "password": "Whatever1"})
        await container.task_runner.drain()

        response = await client.get("/api/v1/audit-logs", params={"method": "POST"}, headers=admin_headers)
        data = response.json()["data"]
        assert data["total_logs"] == 1
        assert data["audit_logs"][0]["endpoint"] == "/api/v1/auth/login"

    @pytest.mark.asyncio
    async def test_get_single_entry(
        self, client: AsyncClient, container: ServiceContainer, admin_headers: dict
    ) -> None:
        await client.get("/api/v1/users", headers=admin_headers)
        entries = await _entries(container)

        response = await client.get(f"/api/v1/audit-logs/{entries[0].id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["id"] == str(entries[0].id)

    @pytest.mark.asyncio
    async def test_missing_entry_not_found(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.get(f"/api/v1/audit-logs/{uuid.uuid4()}", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Audit log not found"

    @pytest.mark.asyncio
    async def test_user_forbidden(self, client: AsyncClient, user_headers: dict) -> None:
        response = await client.get("/api/v1/audit-logs", headers=user_headers)
        assert response.status_code == 403
