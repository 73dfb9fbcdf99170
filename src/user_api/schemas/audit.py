"""Audit log Pydantic v2 schemas."""

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel

AuditSortField = Literal["timestamp", "endpoint", "method", "responseStatus"]


class AuditLogResponse(BaseModel):
    """A single audit trail entry."""

    id: uuid.UUID
    user_id: uuid.UUID | None = None
    user_name: str | None = None
    endpoint: str
    method: str
    request_body: Any | None = None
    response_status: int
    ip_address: str | None = None
    user_agent: str | None = None
    timestamp: datetime


class AuditLogListResponse(BaseModel):
    """A page of audit trail entries."""

    audit_logs: list[AuditLogResponse]
    total_logs: int
    page: int
    limit: int
    total_pages: int
