"""Shared test fixtures for the database, service container, HTTP client, and auth tokens."""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import NullPool

from user_api.core.config import Settings
from user_api.core.container import ServiceContainer, build_container
from user_api.core.database import Database
from user_api.core.security import TokenKind
from user_api.main import create_app
from user_api.models.user import Role, User

ADMIN_PASSWORD = "AdminPass123"
USER_PASSWORD = "UserPass123"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Test application settings backed by a throwaway SQLite file."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        jwt_access_secret="test-access-secret-not-for-production-0001",
        jwt_refresh_secret="test-refresh-secret-not-for-production-0002",
        jwt_algorithm="HS256",
        jwt_access_token_expire_minutes=15,
        jwt_refresh_token_expire_days=7,
        bcrypt_rounds=4,
        rate_limit_per_minute=10_000,
    )


@pytest.fixture
async def database(settings: Settings) -> AsyncGenerator[Database]:
    """File-backed SQLite database with all tables created."""
    db = Database.from_url(settings.database_url, poolclass=NullPool)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def container(settings: Settings, database: Database) -> AsyncGenerator[ServiceContainer]:
    """Fully wired services bound to the test database."""
    services = build_container(settings, database)
    yield services
    await services.task_runner.drain()


@pytest.fixture
def app(container: ServiceContainer) -> FastAPI:
    """Application with the test container injected."""
    return create_app(container.settings, container)


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def admin_user(container: ServiceContainer) -> User:
    """A live ADMIN user."""
    return await container.directory.create(
        "admin@example.com", "Admin User", container.hasher.hash(ADMIN_PASSWORD), Role.ADMIN
    )


@pytest.fixture
async def regular_user(container: ServiceContainer) -> User:
    """A live USER."""
    return await container.directory.create(
        "user@example.com", "Regular User", container.hasher.hash(USER_PASSWORD), Role.USER
    )


def make_access_token(container: ServiceContainer, user: User) -> str:
    """Issue an access token for ``user`` without going through login."""
    claims = container.tokens.claims_for(str(user.id), user.email, Role(user.role), TokenKind.ACCESS)
    return container.tokens.issue_access(claims)


@pytest.fixture
def auth_headers(container: ServiceContainer) -> Callable[[User], dict[str, str]]:
    """Build Authorization headers for any user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_access_token(container, user)}"}

    return _headers


@pytest.fixture
def admin_headers(container: ServiceContainer, admin_user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_access_token(container, admin_user)}"}


@pytest.fixture
def user_headers(container: ServiceContainer, regular_user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_access_token(container, regular_user)}"}
