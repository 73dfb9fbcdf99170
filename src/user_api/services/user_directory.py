"""User directory: the authoritative store of user records.

Every lookup takes an explicit ``include_deleted`` flag; soft-deleted users
are hidden unless a caller asks for them.  Each operation runs in its own
short-lived session and commits before returning.  Email uniqueness among
live users and refresh-token rotation are enforced by the database (partial
unique index, conditional UPDATE) so concurrent requests resolve
deterministically.
"""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from user_api.core.errors import ConflictError, NotFoundError
from user_api.models.user import Role, User

MAX_PAGE_SIZE = 100

_SORT_COLUMNS = {
    "name": User.name,
    "email": User.email,
    "role": User.role,
    "createdAt": User.created_at,
}


def normalize_email(email: str) -> str:
    """Lower-case and strip an email address for storage and lookup."""
    return email.strip().lower()


@dataclass(frozen=True)
class UserFilter:
    """Filtering, sorting and pagination options for :meth:`UserDirectory.list`."""

    page: int = 1
    limit: int = 10
    role: Role | None = None
    email_contains: str | None = None
    sort_by: str = "createdAt"
    sort_order: str = "desc"
    include_deleted: bool = False

    @property
    def effective_page(self) -> int:
        return max(1, self.page)

    @property
    def effective_limit(self) -> int:
        return min(max(1, self.limit), MAX_PAGE_SIZE)

    @property
    def skip(self) -> int:
        return (self.effective_page - 1) * self.effective_limit


class UserDirectory:
    """CRUD over :class:`User` rows with soft-delete semantics."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create(
        self,
        email: str,
        name: str,
        password_hash: str,
        role: Role | None = None,
    ) -> User:
        """Create a user.

        Args:
            email: Email address; stored normalized.
            name: Display name.
            password_hash: Hash produced by the password hasher.
            role: Role, defaulting to ``USER``.

        Returns:
            The created User.

        Raises:
            ConflictError: If a live user already has this email.
        """
        email = normalize_email(email)
        async with self._session_factory() as session:
            existing = await session.execute(select(User.id).where(User.email == email, User.deleted.is_(False)))
            if existing.first() is not None:
                raise ConflictError("Email already exists")

            user = User(
                email=email,
                name=name,
                password_hash=password_hash,
                role=(role or Role.USER).value,
            )
            session.add(user)
            try:
                await session.commit()
            except IntegrityError as e:
                # Lost a race with a concurrent insert of the same email.
                await session.rollback()
                raise ConflictError("Email already exists") from e
            await session.refresh(user)

        logger.info(f"Created user {user.id} with role {user.role}")
        return user

    async def find_by_email(self, email: str, include_deleted: bool = False) -> User | None:
        """Find a user by email.

        With ``include_deleted`` several rows may share the address; the
        most recently created one is returned.
        """
        query = select(User).where(User.email == normalize_email(email))
        if not include_deleted:
            query = query.where(User.deleted.is_(False))
        query = query.order_by(User.created_at.desc()).limit(1)
        async with self._session_factory() as session:
            result = await session.execute(query)
            return result.scalar_one_or_none()

    async def find_by_id(self, user_id: uuid.UUID, include_deleted: bool = False) -> User | None:
        """Find a user by ID."""
        async with self._session_factory() as session:
            return await self._get(session, user_id, include_deleted)

    async def update_profile(
        self,
        user_id: uuid.UUID,
        *,
        name: str | None = None,
        role: Role | None = None,
        include_deleted: bool = False,
    ) -> User:
        """Update a user's name and/or role.

        Raises:
            NotFoundError: If the user does not resolve.
        """
        async with self._session_factory() as session:
            user = await self._require(session, user_id, include_deleted)
            if name is not None:
                user.name = name
            if role is not None:
                user.role = role.value
            await session.commit()
            await session.refresh(user)
            return user

    async def update_password(self, user_id: uuid.UUID, password_hash: str, include_deleted: bool = False) -> User:
        """Replace a user's password hash.

        Raises:
            NotFoundError: If the user does not resolve.
        """
        async with self._session_factory() as session:
            user = await self._require(session, user_id, include_deleted)
            user.password_hash = password_hash
            await session.commit()
            await session.refresh(user)
            return user

    async def set_refresh_token(self, user_id: uuid.UUID, token: str, include_deleted: bool = False) -> User:
        """Overwrite the user's single refresh-token slot.  An empty string clears it.

        Raises:
            NotFoundError: If the user does not resolve.
        """
        async with self._session_factory() as session:
            user = await self._require(session, user_id, include_deleted)
            user.refresh_token = token
            await session.commit()
            await session.refresh(user)
            return user

    async def rotate_refresh_token(self, user_id: uuid.UUID, expected: str, new: str) -> bool:
        """Atomically replace the refresh token only if it still equals ``expected``.

        Returns:
            True if the slot held ``expected`` and now holds ``new``.
        """
        if not expected:
            return False
        statement = (
            update(User)
            .where(
                User.id == user_id,
                User.refresh_token == expected,
                User.deleted.is_(False),
            )
            .values(refresh_token=new, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(statement)
            await session.commit()
            return result.rowcount == 1

    async def soft_delete(self, user_id: uuid.UUID) -> User:
        """Mark a live user deleted without erasing any data.

        Raises:
            NotFoundError: If no live user has this ID.
        """
        async with self._session_factory() as session:
            user = await self._require(session, user_id, include_deleted=False)
            user.deleted = True
            user.deleted_at = datetime.now(UTC)
            await session.commit()
            await session.refresh(user)

        logger.info(f"Soft-deleted user {user_id}")
        return user

    async def hard_delete(self, user_id: uuid.UUID) -> None:
        """Irreversibly remove a user row, live or soft-deleted.

        Raises:
            NotFoundError: If no row has this ID.
        """
        async with self._session_factory() as session:
            result = await session.execute(delete(User).where(User.id == user_id))
            if result.rowcount == 0:
                await session.rollback()
                raise NotFoundError("User not found")
            await session.commit()

        logger.info(f"Hard-deleted user {user_id}")

    async def list(self, user_filter: UserFilter) -> tuple[list[User], int]:
        """List users with filtering, sorting and pagination.

        Args:
            user_filter: Filter, sort and page options.  ``limit`` is clamped
                to [1, 100] and ``page`` to at least 1.

        Returns:
            Tuple of (users on the requested page, total matching count).
        """
        conditions = []
        if not user_filter.include_deleted:
            conditions.append(User.deleted.is_(False))
        if user_filter.role is not None:
            conditions.append(User.role == user_filter.role.value)
        if user_filter.email_contains:
            conditions.append(func.lower(User.email).contains(user_filter.email_contains.lower(), autoescape=True))

        sort_column = _SORT_COLUMNS.get(user_filter.sort_by, User.created_at)
        ordering = sort_column.asc() if user_filter.sort_order == "asc" else sort_column.desc()
        tiebreak = User.id.asc() if user_filter.sort_order == "asc" else User.id.desc()

        count_query = select(func.count(User.id)).where(*conditions)
        query = (
            select(User)
            .where(*conditions)
            .order_by(ordering, tiebreak)
            .offset(user_filter.skip)
            .limit(user_filter.effective_limit)
        )

        async with self._session_factory() as session:
            total = (await session.execute(count_query)).scalar_one()
            result = await session.execute(query)
            users = list(result.scalars().all())

        logger.info(f"Listed {len(users)} users (total={total}, page={user_filter.effective_page})")
        return users, total

    @staticmethod
    async def _get(session: AsyncSession, user_id: uuid.UUID, include_deleted: bool) -> User | None:
        query = select(User).where(User.id == user_id)
        if not include_deleted:
            query = query.where(User.deleted.is_(False))
        result = await session.execute(query)
        return result.scalar_one_or_none()

    async def _require(self, session: AsyncSession, user_id: uuid.UUID, include_deleted: bool) -> User:
        user = await self._get(session, user_id, include_deleted)
        if user is None:
            raise NotFoundError("User not found")
        return user
