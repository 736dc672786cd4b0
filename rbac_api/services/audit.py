"""Audit trail queries. Entries are written by ``rbac_api.utils.audit``."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rbac_api.models import AuditLog
from rbac_api.schemas.audit import AuditLogRead, AuditSearchRequest, ComplianceReport
from rbac_api.services.queries import Page, paginate
from rbac_api.utils.errors import ValidationError
from rbac_api.utils.time import ensure_utc, utcnow

logger = logging.getLogger(__name__)

MOST_ACTIVE_USERS = 10


def _date_window(stmt, from_date: datetime | None, to_date: datetime | None):
    if from_date is not None and to_date is not None and ensure_utc(from_date) > ensure_utc(to_date):
        raise ValidationError("fromDate must not be later than toDate.", code="INVALID_DATE_RANGE")
    if from_date is not None:
        stmt = stmt.where(AuditLog.created_at >= ensure_utc(from_date))
    if to_date is not None:
        stmt = stmt.where(AuditLog.created_at <= ensure_utc(to_date))
    return stmt


def _page(db: Session, stmt, *, page_number: int, page_size: int) -> Page[AuditLogRead]:
    stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id)
    page = paginate(db, stmt, page_number=page_number, page_size=page_size)
    page.items = [AuditLogRead.model_validate(entry) for entry in page.items]
    return page


def entity_history(
    db: Session, entity_type: str, entity_id: str, *, page_number: int, page_size: int
) -> Page[AuditLogRead]:
    stmt = select(AuditLog).where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
    return _page(db, stmt, page_number=page_number, page_size=page_size)


def user_activity(
    db: Session,
    user_id: str,
    *,
    page_number: int,
    page_size: int,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
) -> Page[AuditLogRead]:
    stmt = _date_window(select(AuditLog).where(AuditLog.user_id == user_id), from_date, to_date)
    return _page(db, stmt, page_number=page_number, page_size=page_size)


def search(db: Session, request: AuditSearchRequest) -> Page[AuditLogRead]:
    stmt = select(AuditLog)
    if request.entity_type:
        stmt = stmt.where(AuditLog.entity_type == request.entity_type)
    if request.entity_id:
        stmt = stmt.where(AuditLog.entity_id == request.entity_id)
    if request.action is not None:
        stmt = stmt.where(AuditLog.action == request.action)
    if request.user_id:
        stmt = stmt.where(AuditLog.user_id == request.user_id)
    if request.correlation_id:
        stmt = stmt.where(AuditLog.correlation_id == request.correlation_id)
    stmt = _date_window(stmt, request.from_date, request.to_date)
    return _page(db, stmt, page_number=request.page_number, page_size=request.page_size)


def _counts(db: Session, column, window) -> dict[str, int]:
    stmt = _date_window(select(column, func.count()).group_by(column), *window)
    return {getattr(key, "value", key): count for key, count in db.execute(stmt)}


def compliance_report(
    db: Session, *, from_date: datetime | None = None, to_date: datetime | None = None
) -> ComplianceReport:
    """Activity totals over a window; defaults to the last 30 days."""

    end = ensure_utc(to_date) or utcnow()
    start = ensure_utc(from_date) or end - timedelta(days=30)
    window = (start, end)

    total = db.scalar(_date_window(select(func.count()).select_from(AuditLog), *window)) or 0
    unique_users = db.scalar(_date_window(select(func.count(func.distinct(AuditLog.user_id))), *window)) or 0
    top_users_stmt = (
        _date_window(select(AuditLog.user_id, func.count().label("activity")), *window)
        .group_by(AuditLog.user_id)
        .order_by(func.count().desc(), AuditLog.user_id)
        .limit(MOST_ACTIVE_USERS)
    )

    report = ComplianceReport(
        report_period_start=start,
        report_period_end=end,
        total_activities=total,
        activities_by_action=_counts(db, AuditLog.action, window),
        activities_by_entity_type=_counts(db, AuditLog.entity_type, window),
        unique_users=unique_users,
        most_active_users={user_id: count for user_id, count in db.execute(top_users_stmt)},
    )
    logger.info("Compliance report generated", extra={"total_activities": total})
    return report


__all__ = ["compliance_report", "entity_history", "search", "user_activity"]
