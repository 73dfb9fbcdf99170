"""AuditLog model for the immutable API request trail."""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from user_api.models.base import Base, UUIDMixin


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AuditLog(Base, UUIDMixin):
    """One record per audited HTTP request. Write-only (no updates or deletes).

    ``user_id`` is a plain column rather than a foreign key: entries outlive
    the users they reference.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_logs_user_id_timestamp", "user_id", "timestamp"),)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    endpoint: Mapped[str] = mapped_column(String(2048), nullable=False)
    method: Mapped[str] = mapped_column(String(10), nullable=False)
    request_body: Mapped[Any | None] = mapped_column(JSON().with_variant(JSONB, "postgresql"), nullable=True)
    response_status: Mapped[int] = mapped_column(Integer, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
