"""Authentication API endpoints.

POST /auth/register, POST /auth/login, POST /auth/refresh,
POST /auth/logout, GET /auth/me.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from user_api.core.container import ServiceContainer
from user_api.core.dependencies import get_container, require_any_user
from user_api.core.errors import unwrap
from user_api.core.permissions import Identity
from user_api.schemas.auth import (
    AuthResponse,
    CurrentUserResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserPublic,
)
from user_api.schemas.common import Envelope
from user_api.services.auth_service import AuthSession

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(session: AuthSession) -> AuthResponse:
    return AuthResponse(
        access_token=session.tokens.access_token,
        refresh_token=session.tokens.refresh_token,
        expires_in=session.tokens.expires_in,
        user=UserPublic.model_validate(session.user),
    )


@router.post("/register", response_model=Envelope[AuthResponse], status_code=201)
async def register(
    request: RegisterRequest,
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> Envelope[AuthResponse]:
    """Create an account and return a fresh token pair."""
    session = unwrap(await container.auth.register(request.email, request.name, request.password, request.role))
    return Envelope(message="User registered successfully", data=_auth_response(session))


@router.post("/login", response_model=Envelope[AuthResponse])
async def login(
    request: LoginRequest,
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> Envelope[AuthResponse]:
    """Authenticate with email and password."""
    session = unwrap(await container.auth.login(request.email, request.password))
    return Envelope(message="Login successful", data=_auth_response(session))


@router.post("/refresh", response_model=Envelope[TokenResponse])
async def refresh(
    request: RefreshRequest,
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> Envelope[TokenResponse]:
    """Exchange the current refresh token for a new pair."""
    tokens = unwrap(await container.auth.refresh(request.refresh_token))
    return Envelope(
        message="Token refreshed successfully",
        data=TokenResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_in=tokens.expires_in,
        ),
    )


@router.post("/logout", response_model=Envelope[None])
async def logout(
    identity: Annotated[Identity, Depends(require_any_user)],
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> Envelope[None]:
    """Invalidate the caller's refresh token."""
    await container.auth.logout(identity.user_id)
    return Envelope(message="Logout successful")


@router.get("/me", response_model=Envelope[CurrentUserResponse])
async def get_me(
    identity: Annotated[Identity, Depends(require_any_user)],
) -> Envelope[CurrentUserResponse]:
    """Return the identity carried by the access token."""
    return Envelope(
        message="Current user retrieved successfully",
        data=CurrentUserResponse(id=identity.user_id, email=identity.email, role=identity.role),
    )
