"""Password hashing and JWT access/refresh token issuing and verification.

Uses passlib with bcrypt for password hashing and PyJWT for tokens.  Access
and refresh tokens are signed with different secrets and carry a ``type``
claim, so a token of one kind never verifies as the other.
"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from passlib.context import CryptContext

from user_api.models.user import Role

DEFAULT_BCRYPT_ROUNDS = 10


class PasswordHasher:
    """One-way salted password hashing with constant-time verification."""

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        """Hash a plaintext password using bcrypt.

        Args:
            password: The plaintext password to hash.

        Returns:
            The bcrypt-hashed password string.  A fresh salt is used on every
            call, so compare hashes with :meth:`verify`, never with ``==``.
        """
        return self._context.hash(password)

    def verify(self, password: str, hashed_password: str) -> bool:
        """Verify a plaintext password against a bcrypt hash.

        Args:
            password: The plaintext password to verify.
            hashed_password: The bcrypt hash to verify against.

        Returns:
            True if the password matches.  False on mismatch and on any
            malformed or unrecognised hash.
        """
        try:
            return self._context.verify(password, hashed_password)
        except (ValueError, TypeError):
            return False

    def dummy_verify(self) -> bool:
        """Spend the cost of one verification against a throwaway hash.

        Used when no stored hash exists, so a missing account takes as long
        to reject as a wrong password.

        Returns:
            Always False.
        """
        return self._context.dummy_verify()


class TokenKind(enum.StrEnum):
    """Kind of signed token."""

    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    """Identity facts embedded in a signed token."""

    user_id: str
    email: str
    role: Role
    issued_at: datetime
    expires_at: datetime
    token_id: str = field(default="", compare=False)


class TokenService:
    """Issues and verifies access and refresh JWTs.

    Verification never raises: any invalid, expired, malformed or
    wrong-kind token yields ``None`` and the caller decides the HTTP outcome.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        *,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
    ) -> None:
        self._secrets = {TokenKind.ACCESS: access_secret, TokenKind.REFRESH: refresh_secret}
        self._ttls = {TokenKind.ACCESS: access_ttl, TokenKind.REFRESH: refresh_ttl}
        self._algorithm = algorithm

    @property
    def access_ttl(self) -> timedelta:
        return self._ttls[TokenKind.ACCESS]

    def claims_for(self, user_id: str, email: str, role: Role, kind: TokenKind) -> TokenClaims:
        """Build claims for a new token of ``kind`` starting now."""
        # JWT timestamps have one-second resolution.
        now = datetime.now(UTC).replace(microsecond=0)
        return TokenClaims(
            user_id=user_id,
            email=email,
            role=role,
            issued_at=now,
            expires_at=now + self._ttls[kind],
            token_id=uuid.uuid4().hex,
        )

    def issue_access(self, claims: TokenClaims) -> str:
        return self._encode(claims, TokenKind.ACCESS)

    def issue_refresh(self, claims: TokenClaims) -> str:
        return self._encode(claims, TokenKind.REFRESH)

    def verify_access(self, token: str) -> TokenClaims | None:
        return self._decode(token, TokenKind.ACCESS)

    def verify_refresh(self, token: str) -> TokenClaims | None:
        return self._decode(token, TokenKind.REFRESH)

    def _encode(self, claims: TokenClaims, kind: TokenKind) -> str:
        payload: dict[str, Any] = {
            "sub": claims.user_id,
            "email": claims.email,
            "role": claims.role.value,
            "iat": claims.issued_at,
            "exp": claims.expires_at,
            "jti": claims.token_id or uuid.uuid4().hex,
            "type": kind.value,
        }
        return jwt.encode(payload, self._secrets[kind], algorithm=self._algorithm)

    def _decode(self, token: str, kind: TokenKind) -> TokenClaims | None:
        try:
            payload = jwt.decode(
                token,
                self._secrets[kind],
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp", "iat", "type"]},
            )
            if payload.get("type") != kind.value:
                return None
            return TokenClaims(
                user_id=str(payload["sub"]),
                email=str(payload.get("email", "")),
                role=Role(payload.get("role")),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=UTC),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
                token_id=str(payload.get("jti", "")),
            )
        except (jwt.PyJWTError, ValueError, TypeError, KeyError):
            return None
