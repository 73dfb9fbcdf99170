"""FastAPI dependency injection for services, authentication and access control.

Provides get_container, get_current_identity, and the require_roles factory.
The verified identity is also stored on ``request.state.identity`` so the
audit middleware can attribute the request.
"""

from collections.abc import Callable
from typing import Annotated, Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from user_api.core.container import ServiceContainer
from user_api.core.errors import ForbiddenError, UnauthorizedError
from user_api.core.permissions import ADMIN_ONLY, ANY_USER, DenyReason, Identity, authorize
from user_api.models.user import Role

bearer_scheme = HTTPBearer(auto_error=False)


def get_container(request: Request) -> ServiceContainer:
    """Return the service container wired at startup."""
    return request.app.state.container


async def get_current_identity(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> Identity:
    """Verify the bearer access token and return the caller's identity.

    Raises:
        UnauthorizedError: If the header is missing, malformed, or the token
            does not verify.
    """
    if credentials is None:
        if request.headers.get("Authorization"):
            raise UnauthorizedError("Invalid authorization format")
        raise UnauthorizedError("Authorization header is missing")

    claims = container.tokens.verify_access(credentials.credentials)
    if claims is None:
        raise UnauthorizedError("Invalid or expired token")

    identity = Identity(user_id=claims.user_id, email=claims.email, role=claims.role)
    request.state.identity = identity
    return identity


def require_roles(roles: frozenset[Role]) -> Callable[..., Any]:
    """Factory that creates a dependency requiring one of ``roles``.

    Args:
        roles: Allowed roles (e.g. ``ADMIN_ONLY`` or ``ANY_USER``).

    Returns:
        A FastAPI dependency returning the authorized identity.
    """

    async def role_checker(
        request: Request,
        identity: Annotated[Identity, Depends(get_current_identity)],
    ) -> Identity:
        decision = authorize(identity, roles, endpoint=request.url.path, method=request.method)
        if decision.reason is DenyReason.UNAUTHENTICATED:
            raise UnauthorizedError("Authentication required")
        if not decision.allowed:
            raise ForbiddenError("You do not have permission to access this resource")
        return identity

    return role_checker


require_admin = require_roles(ADMIN_ONLY)
require_any_user = require_roles(ANY_USER)
