"""Authentication Pydantic v2 schemas.

Defines request/response schemas for registration, login, token refresh and
the current-user view.  Password strength is enforced here, at the boundary.
"""

import re
import uuid
from typing import Annotated

from pydantic import AfterValidator, BaseModel, EmailStr, Field, field_validator

from user_api.models.user import Role

PASSWORD_MIN_LENGTH = 8
_PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def validate_password_strength(password: str) -> str:
    """Require at least 8 characters with an uppercase letter, a lowercase letter and a digit."""
    if len(password) < PASSWORD_MIN_LENGTH:
        msg = f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
        raise ValueError(msg)
    if not _PASSWORD_PATTERN.match(password):
        msg = "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        raise ValueError(msg)
    return password


StrongPassword = Annotated[str, AfterValidator(validate_password_strength)]


class RegisterRequest(BaseModel):
    """Self-service registration request."""

    email: EmailStr
    name: str = Field(min_length=2, max_length=100)
    password: StrongPassword
    role: Role | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class LoginRequest(BaseModel):
    """Login request with email and password."""

    email: EmailStr
    password: str = Field(min_length=1)


class RefreshRequest(BaseModel):
    """Token refresh request."""

    refresh_token: str = Field(min_length=1)


class TokenResponse(BaseModel):
    """JWT token pair response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token expiration in seconds")


class UserPublic(BaseModel):
    """Outward-facing view of a user returned by auth endpoints."""

    id: uuid.UUID
    email: str
    name: str
    role: Role

    model_config = {"from_attributes": True}


class AuthResponse(TokenResponse):
    """Token pair plus the authenticated user's public view."""

    user: UserPublic


class CurrentUserResponse(BaseModel):
    """Identity carried by the caller's access token."""

    id: str
    email: str
    role: Role
