"""Service health reporting."""

import time
from datetime import UTC, datetime

from loguru import logger

from user_api.core.database import Database
from user_api.schemas.health import DatabaseHealth, HealthResponse


class HealthService:
    """Reports uptime and database connectivity."""

    def __init__(self, database: Database) -> None:
        self._database = database
        self._started = time.monotonic()

    async def check(self) -> HealthResponse:
        try:
            await self._database.ping()
            database = DatabaseHealth(status="ok", message="Connected to database")
        except Exception:
            logger.exception("Health check database error")
            database = DatabaseHealth(status="error", message="Database connection failed")

        return HealthResponse(
            status=database.status,
            uptime=time.monotonic() - self._started,
            timestamp=datetime.now(UTC),
            database=database,
        )
