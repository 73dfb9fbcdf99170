"""Health check endpoint (no authentication required)."""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from user_api.core.container import ServiceContainer
from user_api.core.dependencies import get_container
from user_api.schemas.common import Envelope
from user_api.schemas.health import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=Envelope[HealthResponse])
async def health_check(
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> JSONResponse:
    """Report uptime and database connectivity; 503 when the database is down."""
    health = await container.health.check()
    healthy = health.status == "ok"
    envelope = Envelope(
        status="success" if healthy else "error",
        message="Service is healthy" if healthy else "Service is unhealthy",
        data=health,
    )
    return JSONResponse(status_code=200 if healthy else 503, content=envelope.model_dump(mode="json"))
