"""Root API router with /api/v1 prefix and middleware registration."""

from fastapi import APIRouter, FastAPI

from user_api.api.middleware import AuditMiddleware, RateLimitMiddleware, SecurityHeadersMiddleware, setup_cors
from user_api.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included.

    Args:
        settings: Application settings.

    Returns:
        Configured API router.
    """
    from user_api.api.v1.audit_logs import router as audit_logs_router
    from user_api.api.v1.auth import router as auth_router
    from user_api.api.v1.health import router as health_router
    from user_api.api.v1.users import router as users_router

    root_router = APIRouter(prefix=settings.api_v1_prefix)
    root_router.include_router(health_router)
    root_router.include_router(auth_router)
    root_router.include_router(users_router)
    root_router.include_router(audit_logs_router)

    return root_router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware on the FastAPI app.

    The audit middleware is added last so it is outermost and also records
    rate-limited and CORS-rejected requests.

    Args:
        app: The FastAPI application.
        settings: Application settings.
    """
    setup_cors(app, settings)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_minute=settings.rate_limit_per_minute,
        trusted_proxy_headers=settings.trusted_proxy_header_list,
    )
    app.add_middleware(AuditMiddleware, trusted_proxy_headers=settings.trusted_proxy_header_list)
