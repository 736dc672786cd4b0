"""Integration system catalog services."""
from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from rbac_api.models import AccessAssignment, AuditAction, EntityDefinition, IntegrationSystem, not_deleted, row_to_dict
from rbac_api.schemas.integration_system import (
    IntegrationSystemCreate,
    IntegrationSystemRead,
    IntegrationSystemUpdate,
)
from rbac_api.services.queries import Page, contains, exists_live, get_live, paginate
from rbac_api.services.unit_of_work import apply_changes, ensure_version, soft_delete, transactional
from rbac_api.utils.audit import log_audit, snapshot
from rbac_api.utils.errors import ConflictError, DependencyConflictError

logger = logging.getLogger(__name__)

ENTITY = "IntegrationSystem"


def get_system(db: Session, system_id: uuid.UUID) -> IntegrationSystem:
    return get_live(db, IntegrationSystem, system_id, label="Integration system")


def system_names(db: Session, ids: set[uuid.UUID]) -> dict[uuid.UUID, str]:
    """Map integration system ids to names, deleted rows included."""

    if not ids:
        return {}
    rows = db.execute(select(IntegrationSystem.id, IntegrationSystem.name).where(IntegrationSystem.id.in_(ids)))
    return {row.id: row.name for row in rows}


def to_read(db: Session, system: IntegrationSystem) -> IntegrationSystemRead:
    count = db.scalar(
        select(func.count())
        .select_from(EntityDefinition)
        .where(EntityDefinition.integration_system_id == system.id, not_deleted(EntityDefinition))
    )
    return IntegrationSystemRead.model_validate(row_to_dict(system) | {"entity_definition_count": count or 0})


def _ensure_unique_name(db: Session, name: str, *, exclude_id: uuid.UUID | None = None) -> None:
    criteria = [IntegrationSystem.name == name]
    if exclude_id is not None:
        criteria.append(IntegrationSystem.id != exclude_id)
    if exists_live(db, IntegrationSystem, *criteria):
        raise ConflictError(
            f"Integration system with name '{name}' already exists.",
            code="INTEGRATION_SYSTEM_NAME_CONFLICT",
        )


def list_systems(
    db: Session,
    *,
    page_number: int,
    page_size: int,
    search: str | None = None,
    is_active: bool | None = None,
) -> Page[IntegrationSystemRead]:
    stmt = select(IntegrationSystem).where(not_deleted(IntegrationSystem))
    if search:
        pattern = contains(search)
        stmt = stmt.where(
            or_(
                IntegrationSystem.name.ilike(pattern, escape="\\"),
                IntegrationSystem.display_name.ilike(pattern, escape="\\"),
                IntegrationSystem.description.ilike(pattern, escape="\\"),
            )
        )
    if is_active is not None:
        stmt = stmt.where(IntegrationSystem.is_active.is_(is_active))
    stmt = stmt.order_by(IntegrationSystem.name, IntegrationSystem.id)

    page = paginate(db, stmt, page_number=page_number, page_size=page_size)
    page.items = [to_read(db, system) for system in page.items]
    return page


def read_system(db: Session, system_id: uuid.UUID) -> IntegrationSystemRead:
    return to_read(db, get_system(db, system_id))


@transactional
def create_system(db: Session, payload: IntegrationSystemCreate) -> IntegrationSystemRead:
    _ensure_unique_name(db, payload.name)

    system = IntegrationSystem(**payload.model_dump())
    db.add(system)
    db.flush()
    log_audit(db, action=AuditAction.INSERT, entity=ENTITY, entity_id=system.id, new=snapshot(system))
    logger.info("Integration system created", extra={"integration_system_id": str(system.id), "name": system.name})
    return to_read(db, system)


@transactional
def update_system(db: Session, system_id: uuid.UUID, payload: IntegrationSystemUpdate) -> IntegrationSystemRead:
    system = get_system(db, system_id)
    ensure_version(system, payload.version, entity_label="Integration system")
    if payload.name != system.name:
        _ensure_unique_name(db, payload.name, exclude_id=system.id)

    before = snapshot(system)
    apply_changes(system, payload.model_dump(exclude={"version"}))
    db.flush()
    log_audit(
        db,
        action=AuditAction.UPDATE,
        entity=ENTITY,
        entity_id=system.id,
        old=before,
        new=snapshot(system),
        justification=payload.last_modified_reason,
    )
    logger.info("Integration system updated", extra={"integration_system_id": str(system.id), "version": system.version})
    return to_read(db, system)


@transactional
def delete_system(db: Session, system_id: uuid.UUID) -> None:
    """Soft delete a system that no longer owns definitions or assignment targets."""

    system = get_system(db, system_id)
    if exists_live(db, EntityDefinition, EntityDefinition.integration_system_id == system.id):
        raise DependencyConflictError(
            "Cannot delete integration system with existing entity definitions.",
            details={"integrationSystemId": str(system.id), "blockedBy": "EntityDefinition"},
        )
    if exists_live(db, AccessAssignment, AccessAssignment.target_system_id == system.id):
        raise DependencyConflictError(
            "Cannot delete integration system targeted by access assignments.",
            details={"integrationSystemId": str(system.id), "blockedBy": "AccessAssignment"},
        )

    before = snapshot(system)
    soft_delete(system)
    db.flush()
    log_audit(db, action=AuditAction.DELETE, entity=ENTITY, entity_id=system.id, old=before)
    logger.info("Integration system deleted", extra={"integration_system_id": str(system.id)})


__all__ = [
    "create_system",
    "delete_system",
    "get_system",
    "list_systems",
    "read_system",
    "system_names",
    "to_read",
    "update_system",
]
