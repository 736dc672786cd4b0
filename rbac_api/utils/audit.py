"""Audit logging helper utilities."""
from __future__ import annotations

import uuid
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from sqlalchemy.orm import Session

from rbac_api.context import get_request_context
from rbac_api.models.audit import AuditLog
from rbac_api.models.base import Base, row_to_dict
from rbac_api.models.enums import AuditAction
from rbac_api.utils.errors import ValidationError
from rbac_api.utils.time import utcnow

SENSITIVE_KEYS = {
    "connection_string",
    "password",
    "secret",
    "api_key",
    "token",
    "contact_email",
}

# Bookkeeping columns that change on every write and add noise to snapshots.
SNAPSHOT_EXCLUDED = {"row_stamp"}


def _mask_value(key: str, value: Any) -> Any:
    if value is None:
        return None

    if key == "contact_email":
        text = str(value)
        if "@" in text:
            _, domain = text.split("@", 1)
            return f"***@{domain}"
        return "***"

    if key == "connection_string":
        text = str(value)
        if not text:
            return text
        if "://" in text:
            scheme = text.split("://", 1)[0]
            return f"{scheme}://***"
        return "***"

    return "***"


def sanitize_payload_for_audit(data: Any) -> Any:
    """Return a copy of ``data`` with secrets and contact details masked."""

    if isinstance(data, Mapping):
        sanitized: dict[str, Any] = {}
        for key, value in data.items():
            masked_value = _mask_value(key, value) if key in SENSITIVE_KEYS else value
            sanitized[key] = sanitize_payload_for_audit(masked_value)
        return sanitized

    if isinstance(data, list):
        return [sanitize_payload_for_audit(item) for item in data]

    return data


def _json_safe(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (uuid.UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


def snapshot(row: Base, **extra: Any) -> dict[str, Any]:
    """Serialise ``row`` (plus ``extra`` keys) into a JSON-compatible audit snapshot."""

    data = {key: value for key, value in row_to_dict(row).items() if key not in SNAPSHOT_EXCLUDED}
    data.update(extra)
    return _json_safe(data)


def record_audit(
    db: Session,
    *,
    entity_type: str,
    entity_id: str,
    action: AuditAction,
    user_id: str,
    correlation_id: str,
    old_values: dict[str, Any] | None = None,
    new_values: dict[str, Any] | None = None,
    justification: str | None = None,
    user_name: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    request_path: str | None = None,
    request_method: str | None = None,
    response_status_code: int | None = None,
    execution_time_ms: int | None = None,
) -> AuditLog:
    """Append one immutable audit entry to the caller's transaction.

    Nothing here catches database errors: a failed audit write must abort the
    operation it describes.
    """

    for field_name, field_value in (
        ("entity_type", entity_type),
        ("entity_id", entity_id),
        ("user_id", user_id),
        ("correlation_id", correlation_id),
    ):
        if field_value is None or not str(field_value).strip():
            raise ValidationError(f"Audit {field_name} cannot be empty.", code="AUDIT_FIELD_REQUIRED")

    entry = AuditLog(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        old_values=sanitize_payload_for_audit(old_values) if old_values is not None else None,
        new_values=sanitize_payload_for_audit(new_values) if new_values is not None else None,
        user_id=user_id,
        user_name=user_name,
        justification=justification,
        correlation_id=correlation_id,
        ip_address=ip_address,
        user_agent=user_agent,
        request_path=request_path,
        request_method=request_method,
        response_status_code=response_status_code,
        execution_time_ms=execution_time_ms,
        created_at=utcnow(),
        created_by=user_id,
    )
    db.add(entry)
    return entry


def log_audit(
    db: Session,
    *,
    action: AuditAction,
    entity: str,
    entity_id: uuid.UUID | str,
    old: dict[str, Any] | None = None,
    new: dict[str, Any] | None = None,
    justification: str | None = None,
) -> AuditLog:
    """Record an audit entry using the identity and HTTP details of the current request."""

    context = get_request_context()
    return record_audit(
        db,
        entity_type=entity,
        entity_id=str(entity_id),
        action=action,
        user_id=context.user_id,
        correlation_id=context.correlation_id,
        old_values=old,
        new_values=new,
        justification=justification,
        user_name=context.user_name,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
        request_path=context.request_path,
        request_method=context.request_method,
        response_status_code=context.success_status(),
        execution_time_ms=context.elapsed_ms(),
    )


__all__ = ["log_audit", "record_audit", "sanitize_payload_for_audit", "snapshot"]
