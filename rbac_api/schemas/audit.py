"""Audit trail schemas."""
import uuid
from datetime import datetime
from typing import Any

from pydantic import Field

from rbac_api.models.enums import AuditAction

from .common import ApiModel


class AuditLogRead(ApiModel):
    id: uuid.UUID
    entity_type: str
    entity_id: str
    action: AuditAction
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    user_id: str
    user_name: str | None = None
    justification: str | None = None
    correlation_id: str
    ip_address: str | None = None
    user_agent: str | None = None
    request_path: str | None = None
    request_method: str | None = None
    response_status_code: int | None = None
    execution_time_ms: int | None = None
    created_at: datetime
    created_by: str


class AuditSearchRequest(ApiModel):
    entity_type: str | None = None
    entity_id: str | None = None
    action: AuditAction | None = None
    user_id: str | None = None
    correlation_id: str | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    page_number: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1, le=1000)


class ComplianceReport(ApiModel):
    report_period_start: datetime
    report_period_end: datetime
    total_activities: int
    activities_by_action: dict[str, int]
    activities_by_entity_type: dict[str, int]
    unique_users: int
    most_active_users: dict[str, int]
