"""Authentication workflow: register, login, token refresh and logout.

Each call returns either its success value or a :class:`Failure`; expected
outcomes such as bad credentials never escape as exceptions.  Login and
refresh failures use one generic message regardless of which check failed.
"""

import asyncio
import uuid
from dataclasses import dataclass

from loguru import logger

from user_api.core.errors import DomainError, ErrorKind, Failure
from user_api.core.security import PasswordHasher, TokenKind, TokenService
from user_api.models.user import Role, User
from user_api.services.user_directory import UserDirectory

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_REFRESH_TOKEN = "Invalid refresh token"


@dataclass(frozen=True)
class TokenPair:
    """Freshly issued access and refresh tokens."""

    access_token: str
    refresh_token: str
    expires_in: int


@dataclass(frozen=True)
class AuthSession:
    """Result of a successful register or login."""

    tokens: TokenPair
    user: User


def _parse_user_id(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


class AuthService:
    """Orchestrates the credential codec, token service and user directory."""

    def __init__(self, directory: UserDirectory, hasher: PasswordHasher, tokens: TokenService) -> None:
        self._directory = directory
        self._hasher = hasher
        self._tokens = tokens

    async def register(
        self,
        email: str,
        name: str,
        password: str,
        role: Role | None = None,
    ) -> AuthSession | Failure:
        """Create a user and start a session for it.

        Returns:
            The new session, or a conflict failure if the email is taken.
        """
        try:
            password_hash = await asyncio.to_thread(self._hasher.hash, password)
            user = await self._directory.create(email, name, password_hash, role)
        except DomainError as e:
            logger.warning(f"Registration rejected for {email}: {e.message}")
            return Failure.from_error(e)

        tokens = await self._start_session(user)
        return AuthSession(tokens=tokens, user=user)

    async def login(self, email: str, password: str) -> AuthSession | Failure:
        """Authenticate by email and password.

        Unknown emails, soft-deleted users and wrong passwords all produce the
        same unauthorized failure.  A successful login replaces any refresh
        token issued before, ending the previous session.
        """
        user = await self._directory.find_by_email(email)
        if user is None:
            await asyncio.to_thread(self._hasher.dummy_verify)
            logger.info(f"Failed login attempt for {email}")
            return Failure(ErrorKind.UNAUTHORIZED, INVALID_CREDENTIALS)
        if not await asyncio.to_thread(self._hasher.verify, password, user.password_hash):
            logger.info(f"Failed login attempt for {email}")
            return Failure(ErrorKind.UNAUTHORIZED, INVALID_CREDENTIALS)

        tokens = await self._start_session(user)
        logger.info(f"User {user.id} logged in")
        return AuthSession(tokens=tokens, user=user)

    async def refresh(self, refresh_token: str) -> TokenPair | Failure:
        """Exchange a valid, current refresh token for a new token pair.

        The presented token must verify and must still occupy the user's
        refresh slot; a superseded token is rejected.  Rotation is a
        compare-and-swap in the store, so two concurrent refreshes with the
        same token cannot both succeed.
        """
        failure = Failure(ErrorKind.UNAUTHORIZED, INVALID_REFRESH_TOKEN)

        claims = self._tokens.verify_refresh(refresh_token)
        if claims is None:
            return failure
        user_id = _parse_user_id(claims.user_id)
        if user_id is None:
            return failure

        user = await self._directory.find_by_id(user_id)
        if user is None or user.refresh_token != refresh_token:
            logger.warning(f"Rejected stale or unknown refresh token for user {claims.user_id}")
            return failure

        tokens = self._issue(user)
        if not await self._directory.rotate_refresh_token(user.id, refresh_token, tokens.refresh_token):
            logger.warning(f"Refresh token for user {user.id} was superseded during rotation")
            return failure
        return tokens

    async def logout(self, user_id: str) -> None:
        """Clear the user's refresh token.  Idempotent; unknown users are ignored."""
        parsed = _parse_user_id(user_id)
        if parsed is None:
            return
        try:
            await self._directory.set_refresh_token(parsed, "")
        except DomainError:
            logger.debug(f"Logout for unknown user {user_id}")
            return
        logger.info(f"User {user_id} logged out")

    async def _start_session(self, user: User) -> TokenPair:
        tokens = self._issue(user)
        await self._directory.set_refresh_token(user.id, tokens.refresh_token)
        return tokens

    def _issue(self, user: User) -> TokenPair:
        role = Role(user.role)
        access_claims = self._tokens.claims_for(str(user.id), user.email, role, TokenKind.ACCESS)
        refresh_claims = self._tokens.claims_for(str(user.id), user.email, role, TokenKind.REFRESH)
        return TokenPair(
            access_token=self._tokens.issue_access(access_claims),
            refresh_token=self._tokens.issue_refresh(refresh_claims),
            expires_in=int(self._tokens.access_ttl.total_seconds()),
        )
