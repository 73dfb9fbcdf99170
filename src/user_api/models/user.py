"""User model for authentication and role-based access control."""

import enum
from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text, false, func, text
from sqlalchemy.orm import Mapped, mapped_column

from user_api.models.base import Base, UUIDMixin


class Role(enum.StrEnum):
    """User role."""

    ADMIN = "ADMIN"
    USER = "USER"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class User(Base, UUIDMixin):
    """Registered user.  Soft-deleted rows stay in the table with ``deleted=True``."""

    __tablename__ = "users"
    __table_args__ = (
        # Email is unique among live users only; soft-deleted rows may share it.
        Index(
            "uq_users_email_active",
            "email",
            unique=True,
            postgresql_where=text("deleted = false"),
            sqlite_where=text("deleted = 0"),
        ),
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(10), nullable=False, default=Role.USER.value, server_default=Role.USER.value
    )
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
        nullable=False,
    )
