"""FastAPI application factory.

Creates the FastAPI app with lifespan management, exception handlers,
and OpenAPI metadata.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from user_api import __version__
from user_api.core.config import Settings, get_settings
from user_api.core.container import ServiceContainer, build_container
from user_api.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle: build services on startup, drain and dispose on shutdown."""
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, settings.log_dir)
    if getattr(app.state, "container", None) is None:
        app.state.container = build_container(settings)
    logger.info(f"User API {__version__} starting ({settings.environment})")

    yield

    container: ServiceContainer = app.state.container
    await container.close()
    logger.info("User API stopped")


def create_app(settings: Settings | None = None, container: ServiceContainer | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings; loaded from the environment when omitted.
        container: Pre-built services.  Tests pass one bound to a throwaway
            database; otherwise it is built during startup.

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = container.settings if container is not None else get_settings()

    app = FastAPI(
        title="User API",
        description="Role-based user management with JWT authentication and an audit trail",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.container = container

    # Register exception handlers, middleware and routers
    from user_api.api.errors import register_exception_handlers
    from user_api.api.router import create_router, setup_middleware

    register_exception_handlers(app)
    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app
