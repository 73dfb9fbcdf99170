"""User management Pydantic v2 schemas."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator

from user_api.models.user import Role
from user_api.schemas.auth import StrongPassword

UserSortField = Literal["name", "email", "role", "createdAt"]
SortOrder = Literal["asc", "desc"]


class UserCreateRequest(BaseModel):
    """Request to create a new user (admin only)."""

    email: EmailStr
    name: str = Field(min_length=2, max_length=100)
    password: StrongPassword
    role: Role = Role.USER

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class UserUpdateRequest(BaseModel):
    """Request to partially update a user (all fields optional)."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    role: Role | None = None


class ChangePasswordRequest(BaseModel):
    """Request to change a user's password."""

    current_password: str = Field(min_length=1)
    new_password: StrongPassword


class UserResponse(BaseModel):
    """User information response.  The password hash and refresh token are never exposed."""

    id: uuid.UUID
    email: str
    name: str
    role: Role
    deleted: bool
    deleted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    """A page of users."""

    users: list[UserResponse]
    total_users: int
    page: int
    limit: int
    total_pages: int
