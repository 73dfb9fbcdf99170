"""User management API endpoints.

Admin-only creation, listing and deletion; owner-or-admin profile and
password updates; any authenticated user may fetch a profile by ID.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from user_api.core.container import ServiceContainer
from user_api.core.dependencies import get_container, require_admin, require_any_user
from user_api.core.errors import unwrap
from user_api.core.permissions import Identity
from user_api.models.user import Role
from user_api.schemas.common import Envelope
from user_api.schemas.user import (
    ChangePasswordRequest,
    SortOrder,
    UserCreateRequest,
    UserListResponse,
    UserResponse,
    UserSortField,
    UserUpdateRequest,
)
from user_api.services.user_directory import MAX_PAGE_SIZE, UserFilter

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=Envelope[UserResponse], status_code=201)
async def create_user(
    request: UserCreateRequest,
    _admin: Annotated[Identity, Depends(require_admin)],
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> Envelope[UserResponse]:
    """Create a user (admin only)."""
    user = unwrap(await container.users.create_user(request.email, request.name, request.password, request.role))
    return Envelope(message="User created successfully", data=UserResponse.model_validate(user))


@router.get("", response_model=Envelope[UserListResponse])
async def list_users(
    _admin: Annotated[Identity, Depends(require_admin)],
    container: Annotated[ServiceContainer, Depends(get_container)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 10,
    role: Role | None = None,
    email: Annotated[str | None, Query(max_length=255)] = None,
    sort_by: Annotated[UserSortField, Query(alias="sortBy")] = "createdAt",
    sort_order: Annotated[SortOrder, Query(alias="sortOrder")] = "desc",
    include_deleted: Annotated[bool, Query(alias="includeDeleted")] = False,
) -> Envelope[UserListResponse]:
    """List users with filtering, sorting and pagination (admin only)."""
    result = await container.users.list_users(
        UserFilter(
            page=page,
            limit=limit,
            role=role,
            email_contains=email,
            sort_by=sort_by,
            sort_order=sort_order,
            include_deleted=include_deleted,
        )
    )
    return Envelope(
        message="Users retrieved successfully",
        data=UserListResponse(
            users=[UserResponse.model_validate(u) for u in result.users],
            total_users=result.total_users,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
        ),
    )


@router.get("/{user_id}", response_model=Envelope[UserResponse])
async def get_user(
    user_id: uuid.UUID,
    _identity: Annotated[Identity, Depends(require_any_user)],
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> Envelope[UserResponse]:
    """Get a user by ID."""
    user = unwrap(await container.users.get_user(user_id))
    return Envelope(message="User retrieved successfully", data=UserResponse.model_validate(user))


@router.put("/{user_id}", response_model=Envelope[UserResponse])
async def update_user(
    user_id: uuid.UUID,
    request: UserUpdateRequest,
    identity: Annotated[Identity, Depends(require_any_user)],
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> Envelope[UserResponse]:
    """Update a user's profile (owner or admin)."""
    user = unwrap(await container.users.update_user(identity, user_id, name=request.name, role=request.role))
    return Envelope(message="User updated successfully", data=UserResponse.model_validate(user))


@router.patch("/{user_id}/change-password", response_model=Envelope[None])
async def change_password(
    user_id: uuid.UUID,
    request: ChangePasswordRequest,
    identity: Annotated[Identity, Depends(require_any_user)],
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> Envelope[None]:
    """Change a user's password (owner or admin)."""
    unwrap(await container.users.change_password(identity, user_id, request.current_password, request.new_password))
    return Envelope(message="Password changed successfully")


@router.delete("/{user_id}", response_model=Envelope[None])
async def soft_delete_user(
    user_id: uuid.UUID,
    _admin: Annotated[Identity, Depends(require_admin)],
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> Envelope[None]:
    """Soft-delete a user (admin only)."""
    unwrap(await container.users.soft_delete_user(user_id))
    return Envelope(message="User deleted successfully")


@router.delete("/{user_id}/permanent", response_model=Envelope[None])
async def hard_delete_user(
    user_id: uuid.UUID,
    _admin: Annotated[Identity, Depends(require_admin)],
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> Envelope[None]:
    """Permanently delete a user (admin only)."""
    unwrap(await container.users.hard_delete_user(user_id))
    return Envelope(message="User permanently deleted")
