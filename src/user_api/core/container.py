"""Explicit wiring of the application's services.

A :class:`ServiceContainer` is built once at startup (or by a test) and
stored on ``app.state.container``; request dependencies resolve services
from it.  Nothing here is a process-wide singleton.
"""

from dataclasses import dataclass
from datetime import timedelta

from user_api.core.background import InProcessTaskRunner
from user_api.core.config import Settings
from user_api.core.database import Database
from user_api.core.security import PasswordHasher, TokenService
from user_api.services.audit_service import AuditQueryService, AuditRecorder
from user_api.services.auth_service import AuthService
from user_api.services.health_service import HealthService
from user_api.services.user_directory import UserDirectory
from user_api.services.user_service import UserService


@dataclass
class ServiceContainer:
    """Every long-lived collaborator the HTTP layer needs."""

    settings: Settings
    database: Database
    hasher: PasswordHasher
    tokens: TokenService
    task_runner: InProcessTaskRunner
    directory: UserDirectory
    auth: AuthService
    users: UserService
    audit_recorder: AuditRecorder
    audit_query: AuditQueryService
    health: HealthService

    async def close(self) -> None:
        """Wait for pending background writes, then release the database."""
        await self.task_runner.drain()
        await self.database.dispose()


def build_container(settings: Settings, database: Database | None = None) -> ServiceContainer:
    """Construct all services from settings.

    Args:
        settings: Application settings.
        database: Optional pre-built database (tests pass one bound to a
            throwaway SQLite file).

    Returns:
        The wired container.
    """
    database = database or Database.from_url(settings.database_url, echo=False)
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    tokens = TokenService(
        settings.jwt_access_secret,
        settings.jwt_refresh_secret,
        algorithm=settings.jwt_algorithm,
        access_ttl=timedelta(minutes=settings.jwt_access_token_expire_minutes),
        refresh_ttl=timedelta(days=settings.jwt_refresh_token_expire_days),
    )
    task_runner = InProcessTaskRunner()
    directory = UserDirectory(database.session_factory)

    return ServiceContainer(
        settings=settings,
        database=database,
        hasher=hasher,
        tokens=tokens,
        task_runner=task_runner,
        directory=directory,
        auth=AuthService(directory, hasher, tokens),
        users=UserService(directory, hasher),
        audit_recorder=AuditRecorder(
            database.session_factory,
            task_runner,
            excluded_prefixes=settings.audit_excluded_prefix_list,
            redacted_fields=settings.audit_redacted_field_set,
        ),
        audit_query=AuditQueryService(database.session_factory),
        health=HealthService(database),
    )
