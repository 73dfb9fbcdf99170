"""Health check Pydantic v2 schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class DatabaseHealth(BaseModel):
    """Database connectivity status."""

    status: Literal["ok", "error"]
    message: str | None = None


class HealthResponse(BaseModel):
    """Service health report."""

    status: Literal["ok", "error"]
    uptime: float
    timestamp: datetime
    database: DatabaseHealth
