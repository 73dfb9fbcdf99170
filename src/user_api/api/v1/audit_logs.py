"""Audit log API endpoints (admin only)."""

import uuid
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from user_api.core.container import ServiceContainer
from user_api.core.dependencies import get_container, require_admin
from user_api.core.errors import unwrap
from user_api.core.permissions import Identity
from user_api.schemas.audit import AuditLogListResponse, AuditLogResponse, AuditSortField
from user_api.schemas.common import Envelope
from user_api.schemas.user import SortOrder
from user_api.services.audit_service import MAX_PAGE_SIZE, AuditEntryView, AuditLogFilter

router = APIRouter(prefix="/audit-logs", tags=["audit"])


def _to_response(view: AuditEntryView) -> AuditLogResponse:
    entry = view.entry
    return AuditLogResponse(
        id=entry.id,
        user_id=entry.user_id,
        user_name=view.user_name,
        endpoint=entry.endpoint,
        method=entry.method,
        request_body=entry.request_body,
        response_status=entry.response_status,
        ip_address=entry.ip_address,
        user_agent=entry.user_agent,
        timestamp=entry.timestamp,
    )


@router.get("", response_model=Envelope[AuditLogListResponse])
async def list_audit_logs(
    _admin: Annotated[Identity, Depends(require_admin)],
    container: Annotated[ServiceContainer, Depends(get_container)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 10,
    user_id: Annotated[uuid.UUID | None, Query(alias="userId")] = None,
    endpoint: Annotated[str | None, Query(max_length=2048)] = None,
    method: Annotated[str | None, Query(max_length=10)] = None,
    response_status: Annotated[int | None, Query(alias="responseStatus", ge=100, le=599)] = None,
    start_date: Annotated[datetime | None, Query(alias="startDate")] = None,
    end_date: Annotated[datetime | None, Query(alias="endDate")] = None,
    sort_by: Annotated[AuditSortField, Query(alias="sortBy")] = "timestamp",
    sort_order: Annotated[SortOrder, Query(alias="sortOrder")] = "desc",
) -> Envelope[AuditLogListResponse]:
    """List audit logs with filters, sorting and pagination."""
    result = await container.audit_query.list_audit_logs(
        AuditLogFilter(
            page=page,
            limit=limit,
            user_id=user_id,
            endpoint=endpoint,
            method=method,
            response_status=response_status,
            start_date=start_date,
            end_date=end_date,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    )
    return Envelope(
        message="Audit logs retrieved successfully",
        data=AuditLogListResponse(
            audit_logs=[_to_response(v) for v in result.entries],
            total_logs=result.total_logs,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
        ),
    )


@router.get("/{log_id}", response_model=Envelope[AuditLogResponse])
async def get_audit_log(
    log_id: uuid.UUID,
    _admin: Annotated[Identity, Depends(require_admin)],
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> Envelope[AuditLogResponse]:
    """Get a single audit log entry."""
    view = unwrap(await container.audit_query.get_audit_log(log_id))
    return Envelope(message="Audit log retrieved successfully", data=_to_response(view))
