"""Access assignment services: grants of a role to a user on a target system."""
from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from collections.abc import Sequence

from sqlalchemy import delete, insert, or_, select
from sqlalchemy.orm import Session

from rbac_api.models import (
    AccessAssignment,
    AccessRule,
    AssignmentType,
    AuditAction,
    EntityInstance,
    IntegrationSystem,
    access_assignment_rules,
    not_deleted,
    row_to_dict,
)
from rbac_api.schemas.access import (
    AccessAssignmentCreate,
    AccessAssignmentRead,
    AccessAssignmentStatusUpdate,
    AccessAssignmentUpdate,
)
from rbac_api.services.entity_instances import instance_names
from rbac_api.services.integration_systems import system_names
from rbac_api.services.queries import Page, contains, exists_live, get_live, paginate
from rbac_api.services.unit_of_work import apply_changes, ensure_version, soft_delete, transactional
from rbac_api.utils.audit import log_audit, snapshot
from rbac_api.utils.errors import ConflictError
from rbac_api.utils.time import ensure_utc

logger = logging.getLogger(__name__)

ENTITY = "AccessAssignment"
FIELD_RENAMES = {"metadata": "metadata_json"}


def get_assignment(db: Session, assignment_id: uuid.UUID) -> AccessAssignment:
    return get_live(db, AccessAssignment, assignment_id, label="Access assignment")


def _rule_ids_by_assignment(db: Session, assignment_ids: Sequence[uuid.UUID]) -> dict[uuid.UUID, list[uuid.UUID]]:
    if not assignment_ids:
        return {}
    rows = db.execute(
        select(access_assignment_rules.c.access_assignment_id, access_assignment_rules.c.access_rule_id).where(
            access_assignment_rules.c.access_assignment_id.in_(assignment_ids)
        )
    )
    mapping: dict[uuid.UUID, list[uuid.UUID]] = defaultdict(list)
    for assignment_id, rule_id in rows:
        mapping[assignment_id].append(rule_id)
    return mapping


def _to_reads(db: Session, assignments: Sequence[AccessAssignment]) -> list[AccessAssignmentRead]:
    people = instance_names(db, {a.user_id for a in assignments} | {a.role_id for a in assignments})
    systems = system_names(db, {a.target_system_id for a in assignments})
    rules = _rule_ids_by_assignment(db, [a.id for a in assignments])
    reads = []
    for assignment in assignments:
        data = row_to_dict(assignment)
        data["metadata"] = data.pop("metadata_json")
        data.update(
            access_rule_ids=rules.get(assignment.id, []),
            user_display_name=people.get(assignment.user_id, ""),
            role_display_name=people.get(assignment.role_id, ""),
            target_system_name=systems.get(assignment.target_system_id, ""),
        )
        reads.append(AccessAssignmentRead.model_validate(data))
    return reads


def to_read(db: Session, assignment: AccessAssignment) -> AccessAssignmentRead:
    return _to_reads(db, [assignment])[0]


def _assignment_snapshot(db: Session, assignment: AccessAssignment) -> dict:
    rule_ids = _rule_ids_by_assignment(db, [assignment.id]).get(assignment.id, [])
    return snapshot(assignment, access_rule_ids=rule_ids)


def _check_references(db: Session, payload: AccessAssignmentCreate) -> None:
    get_live(db, EntityInstance, payload.user_id, label="User", code="USER_NOT_FOUND")
    get_live(db, EntityInstance, payload.role_id, label="Role", code="ROLE_NOT_FOUND")
    get_live(db, IntegrationSystem, payload.target_system_id, label="Target system", code="TARGET_SYSTEM_NOT_FOUND")
    for rule_id in payload.access_rule_ids:
        get_live(db, AccessRule, rule_id, label="Access rule")


def _ensure_single_active(
    db: Session,
    user_id: uuid.UUID,
    role_id: uuid.UUID,
    target_system_id: uuid.UUID,
    *,
    exclude_id: uuid.UUID | None = None,
) -> None:
    criteria = [
        AccessAssignment.user_id == user_id,
        AccessAssignment.role_id == role_id,
        AccessAssignment.target_system_id == target_system_id,
        AccessAssignment.is_active.is_(True),
    ]
    if exclude_id is not None:
        criteria.append(AccessAssignment.id != exclude_id)
    if exists_live(db, AccessAssignment, *criteria):
        raise ConflictError(
            "An active access assignment already exists for this user-role-system combination.",
            code="ACCESS_ASSIGNMENT_CONFLICT",
        )


def _replace_rule_links(db: Session, assignment_id: uuid.UUID, rule_ids: Sequence[uuid.UUID]) -> None:
    db.execute(
        delete(access_assignment_rules).where(access_assignment_rules.c.access_assignment_id == assignment_id)
    )
    unique_ids = list(dict.fromkeys(rule_ids))
    if unique_ids:
        db.execute(
            insert(access_assignment_rules),
            [{"access_assignment_id": assignment_id, "access_rule_id": rule_id} for rule_id in unique_ids],
        )


def _columns(payload: AccessAssignmentCreate, *, exclude: set[str]) -> dict:
    data = payload.model_dump(exclude=exclude | {"access_rule_ids"})
    for key in ("effective_from", "effective_to", "approved_at"):
        data[key] = ensure_utc(data[key])
    return data


def list_assignments(
    db: Session,
    *,
    page_number: int,
    page_size: int,
    search: str | None = None,
    user_id: uuid.UUID | None = None,
    role_id: uuid.UUID | None = None,
    target_system_id: uuid.UUID | None = None,
    assignment_type: AssignmentType | None = None,
    is_active: bool | None = None,
) -> Page[AccessAssignmentRead]:
    stmt = select(AccessAssignment).where(not_deleted(AccessAssignment))
    if user_id is not None:
        stmt = stmt.where(AccessAssignment.user_id == user_id)
    if role_id is not None:
        stmt = stmt.where(AccessAssignment.role_id == role_id)
    if target_system_id is not None:
        stmt = stmt.where(AccessAssignment.target_system_id == target_system_id)
    if assignment_type is not None:
        stmt = stmt.where(AccessAssignment.assignment_type == assignment_type)
    if is_active is not None:
        stmt = stmt.where(AccessAssignment.is_active.is_(is_active))
    if search:
        pattern = contains(search)
        people = select(EntityInstance.id).where(EntityInstance.display_name.ilike(pattern, escape="\\"))
        systems = select(IntegrationSystem.id).where(IntegrationSystem.name.ilike(pattern, escape="\\"))
        stmt = stmt.where(
            or_(
                AccessAssignment.assignment_reason.ilike(pattern, escape="\\"),
                AccessAssignment.metadata_json.ilike(pattern, escape="\\"),
                AccessAssignment.user_id.in_(people),
                AccessAssignment.role_id.in_(people),
                AccessAssignment.target_system_id.in_(systems),
            )
        )
    stmt = stmt.order_by(AccessAssignment.created_at.desc(), AccessAssignment.id)

    page = paginate(db, stmt, page_number=page_number, page_size=page_size)
    page.items = _to_reads(db, page.items)
    return page


def assignments_for(
    db: Session,
    *,
    user_id: uuid.UUID | None = None,
    target_system_id: uuid.UUID | None = None,
    include_inactive: bool = False,
) -> list[AccessAssignmentRead]:
    """Assignments of one user or targeting one system, newest first."""

    stmt = select(AccessAssignment).where(not_deleted(AccessAssignment))
    if user_id is not None:
        get_live(db, EntityInstance, user_id, label="User", code="USER_NOT_FOUND")
        stmt = stmt.where(AccessAssignment.user_id == user_id)
    if target_system_id is not None:
        get_live(db, IntegrationSystem, target_system_id, label="Target system", code="TARGET_SYSTEM_NOT_FOUND")
        stmt = stmt.where(AccessAssignment.target_system_id == target_system_id)
    if not include_inactive:
        stmt = stmt.where(AccessAssignment.is_active.is_(True))
    stmt = stmt.order_by(AccessAssignment.created_at.desc(), AccessAssignment.id)
    return _to_reads(db, list(db.scalars(stmt)))


def read_assignment(db: Session, assignment_id: uuid.UUID) -> AccessAssignmentRead:
    return to_read(db, get_assignment(db, assignment_id))


@transactional
def create_assignment(db: Session, payload: AccessAssignmentCreate) -> AccessAssignmentRead:
    _check_references(db, payload)
    if payload.is_active:
        _ensure_single_active(db, payload.user_id, payload.role_id, payload.target_system_id)

    assignment = AccessAssignment()
    apply_changes(assignment, _columns(payload, exclude=set()), renames=FIELD_RENAMES)
    db.add(assignment)
    db.flush()
    _replace_rule_links(db, assignment.id, payload.access_rule_ids)

    log_audit(
        db,
        action=AuditAction.INSERT,
        entity=ENTITY,
        entity_id=assignment.id,
        new=_assignment_snapshot(db, assignment),
        justification=payload.assignment_reason,
    )
    logger.info(
        "Access assignment created",
        extra={
            "access_assignment_id": str(assignment.id),
            "user_id": str(assignment.user_id),
            "role_id": str(assignment.role_id),
        },
    )
    return to_read(db, assignment)


@transactional
def update_assignment(
    db: Session, assignment_id: uuid.UUID, payload: AccessAssignmentUpdate
) -> AccessAssignmentRead:
    assignment = get_assignment(db, assignment_id)
    ensure_version(assignment, payload.version, entity_label="Access assignment")
    _check_references(db, payload)
    if payload.is_active:
        _ensure_single_active(
            db, payload.user_id, payload.role_id, payload.target_system_id, exclude_id=assignment.id
        )

    before = _assignment_snapshot(db, assignment)
    apply_changes(assignment, _columns(payload, exclude={"version"}), renames=FIELD_RENAMES)
    db.flush()
    _replace_rule_links(db, assignment.id, payload.access_rule_ids)
    log_audit(
        db,
        action=AuditAction.UPDATE,
        entity=ENTITY,
        entity_id=assignment.id,
        old=before,
        new=_assignment_snapshot(db, assignment),
        justification=payload.last_modified_reason,
    )
    return to_read(db, assignment)


@transactional
def set_assignment_status(
    db: Session, assignment_id: uuid.UUID, payload: AccessAssignmentStatusUpdate
) -> AccessAssignmentRead:
    assignment = get_assignment(db, assignment_id)
    ensure_version(assignment, payload.version, entity_label="Access assignment")
    if payload.is_active and not assignment.is_active:
        _ensure_single_active(
            db, assignment.user_id, assignment.role_id, assignment.target_system_id, exclude_id=assignment.id
        )

    before = _assignment_snapshot(db, assignment)
    assignment.is_active = payload.is_active
    assignment.last_modified_reason = payload.last_modified_reason
    db.flush()
    log_audit(
        db,
        action=AuditAction.UPDATE,
        entity=ENTITY,
        entity_id=assignment.id,
        old=before,
        new=_assignment_snapshot(db, assignment),
        justification=payload.last_modified_reason,
    )
    logger.info(
        "Access assignment status changed",
        extra={"access_assignment_id": str(assignment.id), "is_active": assignment.is_active},
    )
    return to_read(db, assignment)


@transactional
def delete_assignment(db: Session, assignment_id: uuid.UUID) -> None:
    assignment = get_assignment(db, assignment_id)
    before = _assignment_snapshot(db, assignment)
    soft_delete(assignment)
    db.flush()
    log_audit(db, action=AuditAction.DELETE, entity=ENTITY, entity_id=assignment.id, old=before)


__all__ = [
    "assignments_for",
    "create_assignment",
    "delete_assignment",
    "get_assignment",
    "list_assignments",
    "read_assignment",
    "set_assignment_status",
    "to_read",
    "update_assignment",
]
