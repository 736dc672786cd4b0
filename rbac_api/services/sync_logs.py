"""Synchronisation run log services."""
from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import datetime, timedelta

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from rbac_api.models import AuditAction, SyncLog, SyncStatus, not_deleted, row_to_dict
from rbac_api.schemas.sync_log import SyncLogComplete, SyncLogCreate, SyncLogRead, SyncLogSummary, SyncLogUpdate
from rbac_api.services.integration_systems import get_system, system_names
from rbac_api.services.queries import Page, contains, get_live, paginate
from rbac_api.services.unit_of_work import apply_changes, ensure_version, soft_delete, transactional
from rbac_api.utils.audit import log_audit, snapshot
from rbac_api.utils.errors import ValidationError
from rbac_api.utils.time import ensure_utc, utcnow

logger = logging.getLogger(__name__)

ENTITY = "SyncLog"


def get_sync_log(db: Session, sync_log_id: uuid.UUID) -> SyncLog:
    return get_live(db, SyncLog, sync_log_id, label="Sync log")


def _rate(part: int, total: int) -> float:
    return round(part / total * 100, 2) if total > 0 else 0.0


def _to_reads(db: Session, logs: Sequence[SyncLog]) -> list[SyncLogRead]:
    names = system_names(db, {log.integration_system_id for log in logs})
    reads = []
    for log in logs:
        duration = None
        if log.completed_at is not None:
            duration = (ensure_utc(log.completed_at) - ensure_utc(log.started_at)).total_seconds()
        reads.append(
            SyncLogRead.model_validate(
                row_to_dict(log)
                | {
                    "integration_system_name": names.get(log.integration_system_id, ""),
                    "duration_seconds": duration,
                    "success_rate": _rate(log.successful_records, log.total_records),
                }
            )
        )
    return reads


def to_read(db: Session, log: SyncLog) -> SyncLogRead:
    return _to_reads(db, [log])[0]


def _check_completion_time(log: SyncLog, completed_at: datetime | None) -> None:
    if completed_at is not None and ensure_utc(completed_at) < ensure_utc(log.started_at):
        raise ValidationError("completedAt cannot be earlier than startedAt.", code="INVALID_SYNC_WINDOW")


def list_sync_logs(
    db: Session,
    *,
    page_number: int,
    page_size: int,
    search: str | None = None,
    integration_system_id: uuid.UUID | None = None,
    operation: str | None = None,
    status: SyncStatus | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> Page[SyncLogRead]:
    """Live sync logs matching every supplied filter, newest run first."""

    stmt = select(SyncLog).where(not_deleted(SyncLog))
    if integration_system_id is not None:
        stmt = stmt.where(SyncLog.integration_system_id == integration_system_id)
    if operation:
        stmt = stmt.where(SyncLog.operation.ilike(contains(operation), escape="\\"))
    if status is not None:
        stmt = stmt.where(SyncLog.status == status)
    if start_date is not None:
        stmt = stmt.where(SyncLog.started_at >= ensure_utc(start_date))
    if end_date is not None:
        stmt = stmt.where(SyncLog.started_at <= ensure_utc(end_date))
    if search:
        pattern = contains(search)
        stmt = stmt.where(
            or_(SyncLog.operation.ilike(pattern, escape="\\"), SyncLog.error_message.ilike(pattern, escape="\\"))
        )
    stmt = stmt.order_by(SyncLog.started_at.desc(), SyncLog.id)

    page = paginate(db, stmt, page_number=page_number, page_size=page_size)
    page.items = _to_reads(db, page.items)
    return page


def read_sync_log(db: Session, sync_log_id: uuid.UUID) -> SyncLogRead:
    return to_read(db, get_sync_log(db, sync_log_id))


def recent_failures(db: Session, *, hours: int, limit: int) -> list[SyncLogRead]:
    cutoff = utcnow() - timedelta(hours=hours)
    stmt = (
        select(SyncLog)
        .where(not_deleted(SyncLog), SyncLog.status == SyncStatus.FAILED, SyncLog.started_at >= cutoff)
        .order_by(SyncLog.started_at.desc())
        .limit(limit)
    )
    return _to_reads(db, list(db.scalars(stmt)))


def summarize(db: Session, *, days: int, integration_system_id: uuid.UUID | None = None) -> list[SyncLogSummary]:
    """Per-system run totals over the last ``days`` days, most recently synced first."""

    cutoff = utcnow() - timedelta(days=days)
    stmt = select(SyncLog).where(not_deleted(SyncLog), SyncLog.started_at >= cutoff)
    if integration_system_id is not None:
        stmt = stmt.where(SyncLog.integration_system_id == integration_system_id)
    stmt = stmt.order_by(SyncLog.started_at.desc())

    grouped: dict[uuid.UUID, list[SyncLog]] = {}
    for log in db.scalars(stmt):
        grouped.setdefault(log.integration_system_id, []).append(log)
    names = system_names(db, set(grouped))

    summaries = []
    for system_id, logs in grouped.items():
        successes = sum(1 for log in logs if log.status == SyncStatus.SUCCESS)
        summaries.append(
            SyncLogSummary(
                integration_system_id=system_id,
                integration_system_name=names.get(system_id, ""),
                total_syncs=len(logs),
                successful_syncs=successes,
                failed_syncs=sum(1 for log in logs if log.status == SyncStatus.FAILED),
                last_sync_date=logs[0].started_at,
                last_sync_status=logs[0].status,
                success_rate=_rate(successes, len(logs)),
            )
        )
    summaries.sort(key=lambda summary: ensure_utc(summary.last_sync_date), reverse=True)
    return summaries


@transactional
def create_sync_log(db: Session, payload: SyncLogCreate) -> SyncLogRead:
    get_system(db, payload.integration_system_id)

    log = SyncLog(**payload.model_dump())
    log.started_at = ensure_utc(log.started_at)
    db.add(log)
    db.flush()
    log_audit(db, action=AuditAction.INSERT, entity=ENTITY, entity_id=log.id, new=snapshot(log))
    logger.info(
        "Sync run started",
        extra={"sync_log_id": str(log.id), "integration_system_id": str(log.integration_system_id)},
    )
    return to_read(db, log)


@transactional
def update_sync_log(db: Session, sync_log_id: uuid.UUID, payload: SyncLogUpdate) -> SyncLogRead:
    log = get_sync_log(db, sync_log_id)
    ensure_version(log, payload.version, entity_label="Sync log")
    _check_completion_time(log, payload.completed_at)

    before = snapshot(log)
    values = payload.model_dump(exclude={"version"})
    values["completed_at"] = ensure_utc(values["completed_at"])
    apply_changes(log, values)
    db.flush()
    log_audit(
        db,
        action=AuditAction.UPDATE,
        entity=ENTITY,
        entity_id=log.id,
        old=before,
        new=snapshot(log),
        justification=payload.last_modified_reason,
    )
    return to_read(db, log)


@transactional
def complete_sync_log(db: Session, sync_log_id: uuid.UUID, payload: SyncLogComplete) -> SyncLogRead:
    """Record the outcome of a run and mirror it onto the owning integration system."""

    log = get_sync_log(db, sync_log_id)
    if payload.version is not None:
        ensure_version(log, payload.version, entity_label="Sync log")
    if log.completed_at is not None:
        raise ValidationError("Sync log is already completed.", code="SYNC_LOG_ALREADY_COMPLETED")
    system = get_system(db, log.integration_system_id)

    before = snapshot(log)
    system_before = snapshot(system)
    now = utcnow()
    apply_changes(log, payload.model_dump(exclude={"version", "details"}))
    if payload.details is not None:
        log.details = payload.details
    log.completed_at = now
    system.last_sync = now
    system.last_sync_status = payload.status
    db.flush()

    log_audit(db, action=AuditAction.UPDATE, entity=ENTITY, entity_id=log.id, old=before, new=snapshot(log))
    log_audit(
        db,
        action=AuditAction.UPDATE,
        entity="IntegrationSystem",
        entity_id=system.id,
        old=system_before,
        new=snapshot(system),
        justification=f"Sync run {log.id} completed",
    )
    logger.info(
        "Sync run completed",
        extra={"sync_log_id": str(log.id), "status": log.status.value, "failed_records": log.failed_records},
    )
    return to_read(db, log)


@transactional
def delete_sync_log(db: Session, sync_log_id: uuid.UUID) -> None:
    log = get_sync_log(db, sync_log_id)
    before = snapshot(log)
    soft_delete(log)
    db.flush()
    log_audit(db, action=AuditAction.DELETE, entity=ENTITY, entity_id=log.id, old=before)


__all__ = [
    "complete_sync_log",
    "create_sync_log",
    "delete_sync_log",
    "get_sync_log",
    "list_sync_logs",
    "read_sync_log",
    "recent_failures",
    "summarize",
    "to_read",
    "update_sync_log",
]
