"""Audit trail recording and querying.

:class:`AuditRecorder` persists one immutable :class:`AuditLog` row per
request.  Writes are submitted to a background task runner and never awaited
by the request path; any failure is logged on the operational channel and
swallowed.  :class:`AuditQueryService` serves the admin-only read side.
"""

import json
import math
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from urllib.parse import parse_qsl

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from user_api.core.background import BackgroundTaskRunner
from user_api.core.errors import ErrorKind, Failure
from user_api.core.logging import operational_logger
from user_api.models.audit_log import AuditLog
from user_api.models.user import User

REDACTED = "[REDACTED]"
MAX_PAGE_SIZE = 100

_SORT_COLUMNS = {
    "timestamp": AuditLog.timestamp,
    "endpoint": AuditLog.endpoint,
    "method": AuditLog.method,
    "responseStatus": AuditLog.response_status,
}


@dataclass(frozen=True)
class RequestMeta:
    """Request facts captured before the handler runs."""

    endpoint: str
    method: str
    user_id: str | None = None
    request_body: Any = None
    ip_address: str | None = None
    user_agent: str | None = None


def redact(value: Any, fields: frozenset[str]) -> Any:
    """Return a deep copy of ``value`` with sensitive keys masked."""
    if isinstance(value, dict):
        return {k: REDACTED if k in fields else redact(v, fields) for k, v in value.items()}
    if isinstance(value, list):
        return [redact(item, fields) for item in value]
    return value


def snapshot_body(raw: bytes, content_type: str | None, redacted_fields: frozenset[str] = frozenset()) -> Any:
    """Decode a raw request body into a JSON-serializable snapshot.

    JSON bodies are parsed, form bodies become a dict, anything else is kept
    as text.  The snapshot shares no objects with what handlers receive.

    Args:
        raw: Body bytes exactly as received.
        content_type: The request's Content-Type header.
        redacted_fields: Keys whose values are replaced with ``[REDACTED]``.

    Returns:
        The snapshot, or None for an empty body.
    """
    if not raw:
        return None
    media_type = (content_type or "").split(";")[0].strip().lower()
    text = raw.decode("utf-8", errors="replace")

    if media_type == "application/x-www-form-urlencoded":
        return redact(dict(parse_qsl(text, keep_blank_values=True)), redacted_fields)
    try:
        return redact(json.loads(text), redacted_fields)
    except ValueError:
        return text


def is_excluded(path: str, excluded_prefixes: Iterable[str]) -> bool:
    """True if ``path`` falls under one of the excluded prefixes."""
    return any(path == prefix or path.startswith(prefix.rstrip("/") + "/") for prefix in excluded_prefixes)


def _parse_user_id(value: str | None) -> uuid.UUID | None:
    if not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


class AuditRecorder:
    """Writes audit entries in the background without affecting responses."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        task_runner: BackgroundTaskRunner,
        *,
        excluded_prefixes: Iterable[str] = (),
        redacted_fields: Iterable[str] = (),
    ) -> None:
        self._session_factory = session_factory
        self._task_runner = task_runner
        self.excluded_prefixes = tuple(excluded_prefixes)
        self.redacted_fields = frozenset(redacted_fields)

    def should_record(self, path: str) -> bool:
        return not is_excluded(path, self.excluded_prefixes)

    def capture(self, meta: RequestMeta, response_status: int) -> None:
        """Schedule an audit write and return immediately.  Never raises."""
        if not self.should_record(meta.endpoint.split("?", 1)[0]):
            return
        try:
            self._task_runner.submit_task(self.record(meta, response_status))
        except Exception:
            operational_logger.exception(f"Could not schedule audit log for {meta.method} {meta.endpoint}")

    async def record(self, meta: RequestMeta, response_status: int) -> AuditLog | None:
        """Persist one audit entry.  Failures are logged, never raised.

        Returns:
            The created AuditLog, or None if the write failed.
        """
        entry = AuditLog(
            user_id=_parse_user_id(meta.user_id),
            endpoint=meta.endpoint,
            method=meta.method,
            request_body=meta.request_body if meta.method.upper() != "GET" else None,
            response_status=response_status,
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
        )
        try:
            async with self._session_factory() as session:
                session.add(entry)
                await session.commit()
        except Exception:
            operational_logger.exception(f"Error creating audit log for {meta.method} {meta.endpoint}")
            return None
        return entry


@dataclass(frozen=True)
class AuditLogFilter:
    """Filtering, sorting and pagination options for audit log queries."""

    page: int = 1
    limit: int = 10
    user_id: uuid.UUID | None = None
    endpoint: str | None = None
    method: str | None = None
    response_status: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    sort_by: str = "timestamp"
    sort_order: str = "desc"

    @property
    def effective_page(self) -> int:
        return max(1, self.page)

    @property
    def effective_limit(self) -> int:
        return min(max(1, self.limit), MAX_PAGE_SIZE)


@dataclass(frozen=True)
class AuditEntryView:
    """An audit entry together with the acting user's current name."""

    entry: AuditLog
    user_name: str | None


@dataclass(frozen=True)
class AuditLogPage:
    """One page of audit entries."""

    entries: list[AuditEntryView]
    total_logs: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_logs / self.limit) if self.limit else 0


class AuditQueryService:
    """Read-only access to the audit trail."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_audit_logs(self, log_filter: AuditLogFilter) -> AuditLogPage:
        """Query audit logs with optional filters.

        Args:
            log_filter: Filter, sort and page options.

        Returns:
            The requested page and the total matching count.
        """
        conditions = []
        if log_filter.user_id is not None:
            conditions.append(AuditLog.user_id == log_filter.user_id)
        if log_filter.endpoint:
            conditions.append(func.lower(AuditLog.endpoint).contains(log_filter.endpoint.lower(), autoescape=True))
        if log_filter.method:
            conditions.append(AuditLog.method == log_filter.method.upper())
        if log_filter.response_status is not None:
            conditions.append(AuditLog.response_status == log_filter.response_status)
        if log_filter.start_date is not None:
            conditions.append(AuditLog.timestamp >= log_filter.start_date)
        if log_filter.end_date is not None:
            conditions.append(AuditLog.timestamp <= log_filter.end_date)

        sort_column = _SORT_COLUMNS.get(log_filter.sort_by, AuditLog.timestamp)
        ordering = sort_column.asc() if log_filter.sort_order == "asc" else sort_column.desc()

        count_query = select(func.count(AuditLog.id)).where(*conditions)
        offset = (log_filter.effective_page - 1) * log_filter.effective_limit
        query = (
            select(AuditLog, User.name)
            .outerjoin(User, User.id == AuditLog.user_id)
            .where(*conditions)
            .order_by(ordering, AuditLog.id)
            .offset(offset)
            .limit(log_filter.effective_limit)
        )

        async with self._session_factory() as session:
            total = (await session.execute(count_query)).scalar_one()
            rows = (await session.execute(query)).all()

        return AuditLogPage(
            entries=[AuditEntryView(entry=entry, user_name=name) for entry, name in rows],
            total_logs=total,
            page=log_filter.effective_page,
            limit=log_filter.effective_limit,
        )

    async def get_audit_log(self, log_id: uuid.UUID) -> AuditEntryView | Failure:
        """Get a single audit entry by ID."""
        query = select(AuditLog, User.name).outerjoin(User, User.id == AuditLog.user_id).where(AuditLog.id == log_id)
        async with self._session_factory() as session:
            row = (await session.execute(query)).first()
        if row is None:
            return Failure(ErrorKind.NOT_FOUND, "Audit log not found")
        entry, name = row
        return AuditEntryView(entry=entry, user_name=name)
