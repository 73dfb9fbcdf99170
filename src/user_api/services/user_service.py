"""User management service.

Admin and self-service operations on top of the user directory: creation,
lookup, profile updates with ownership checks, password changes, soft and
hard deletion, and paginated listing.
"""

import asyncio
import math
import uuid
from dataclasses import dataclass

from loguru import logger

from user_api.core.errors import DomainError, ErrorKind, Failure
from user_api.core.permissions import Identity
from user_api.core.security import PasswordHasher
from user_api.models.user import Role, User
from user_api.services.user_directory import UserDirectory, UserFilter


@dataclass(frozen=True)
class UserPage:
    """One page of a user listing."""

    users: list[User]
    total_users: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_users / self.limit) if self.limit else 0


def _may_manage(actor: Identity, user_id: uuid.UUID) -> bool:
    return actor.is_admin or actor.user_id == str(user_id)


class UserService:
    """User CRUD returning success values or typed failures."""

    def __init__(self, directory: UserDirectory, hasher: PasswordHasher) -> None:
        self._directory = directory
        self._hasher = hasher

    async def create_user(self, email: str, name: str, password: str, role: Role = Role.USER) -> User | Failure:
        """Create a user with a hashed password."""
        try:
            password_hash = await asyncio.to_thread(self._hasher.hash, password)
            return await self._directory.create(email, name, password_hash, role)
        except DomainError as e:
            return Failure.from_error(e)

    async def get_user(self, user_id: uuid.UUID) -> User | Failure:
        """Get a live user by ID."""
        user = await self._directory.find_by_id(user_id)
        if user is None:
            return Failure(ErrorKind.NOT_FOUND, "User not found")
        return user

    async def update_user(
        self,
        actor: Identity,
        user_id: uuid.UUID,
        *,
        name: str | None = None,
        role: Role | None = None,
    ) -> User | Failure:
        """Update a user's profile.

        Users may update only themselves; admins may update anyone.  A role
        change requested by a non-admin is ignored.
        """
        if not _may_manage(actor, user_id):
            return Failure(ErrorKind.FORBIDDEN, "You are not authorized to update this user")
        if not actor.is_admin:
            role = None
        try:
            user = await self._directory.update_profile(user_id, name=name, role=role)
        except DomainError as e:
            return Failure.from_error(e)
        logger.info(f"User {user_id} updated by {actor.user_id}")
        return user

    async def change_password(
        self,
        actor: Identity,
        user_id: uuid.UUID,
        current_password: str,
        new_password: str,
    ) -> None | Failure:
        """Change a password after checking the current one."""
        if not _may_manage(actor, user_id):
            return Failure(ErrorKind.FORBIDDEN, "You are not authorized to change this user's password")

        user = await self._directory.find_by_id(user_id)
        if user is None:
            return Failure(ErrorKind.NOT_FOUND, "User not found")
        if not await asyncio.to_thread(self._hasher.verify, current_password, user.password_hash):
            return Failure(ErrorKind.VALIDATION_FAILED, "Current password is incorrect")

        try:
            new_hash = await asyncio.to_thread(self._hasher.hash, new_password)
            await self._directory.update_password(user_id, new_hash)
        except DomainError as e:
            return Failure.from_error(e)
        logger.info(f"Password changed for user {user_id} by {actor.user_id}")
        return None

    async def soft_delete_user(self, user_id: uuid.UUID) -> User | Failure:
        """Soft-delete a live user."""
        try:
            return await self._directory.soft_delete(user_id)
        except DomainError as e:
            return Failure.from_error(e)

    async def hard_delete_user(self, user_id: uuid.UUID) -> None | Failure:
        """Permanently delete a user, including soft-deleted ones."""
        try:
            await self._directory.hard_delete(user_id)
        except DomainError as e:
            return Failure.from_error(e)
        return None

    async def list_users(self, user_filter: UserFilter) -> UserPage:
        """List users with filtering and pagination."""
        users, total = await self._directory.list(user_filter)
        return UserPage(
            users=users,
            total_users=total,
            page=user_filter.effective_page,
            limit=user_filter.effective_limit,
        )
