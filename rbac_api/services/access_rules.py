"""Access rule services.

Rules are descriptive metadata: trigger and action fields are stored and
returned but never evaluated.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from rbac_api.models import (
    AccessAssignment,
    AccessRule,
    ActionType,
    AuditAction,
    TriggerType,
    access_assignment_rules,
    not_deleted,
    row_to_dict,
)
from rbac_api.schemas.access import AccessRuleCreate, AccessRuleRead, AccessRuleUpdate
from rbac_api.services.integration_systems import get_system, system_names
from rbac_api.services.queries import Page, contains, exists_live, get_live, paginate
from rbac_api.services.unit_of_work import apply_changes, ensure_version, soft_delete, transactional
from rbac_api.utils.audit import log_audit, snapshot
from rbac_api.utils.errors import ConflictError, DependencyConflictError

logger = logging.getLogger(__name__)

ENTITY = "AccessRule"


def get_rule(db: Session, rule_id: uuid.UUID) -> AccessRule:
    return get_live(db, AccessRule, rule_id, label="Access rule")


def to_read(db: Session, rule: AccessRule, *, system_name: str | None = None) -> AccessRuleRead:
    if system_name is None and rule.integration_system_id is not None:
        system_name = system_names(db, {rule.integration_system_id}).get(rule.integration_system_id)
    return AccessRuleRead.model_validate(row_to_dict(rule) | {"integration_system_name": system_name})


def _ensure_unique_name(db: Session, name: str, *, exclude_id: uuid.UUID | None = None) -> None:
    criteria = [AccessRule.name == name]
    if exclude_id is not None:
        criteria.append(AccessRule.id != exclude_id)
    if exists_live(db, AccessRule, *criteria):
        raise ConflictError(f"Access rule with name '{name}' already exists.", code="ACCESS_RULE_NAME_CONFLICT")


def list_rules(
    db: Session,
    *,
    page_number: int,
    page_size: int,
    search: str | None = None,
    integration_system_id: uuid.UUID | None = None,
    trigger_type: TriggerType | None = None,
    action_type: ActionType | None = None,
    is_active: bool | None = None,
) -> Page[AccessRuleRead]:
    stmt = select(AccessRule).where(not_deleted(AccessRule))
    if search:
        pattern = contains(search)
        stmt = stmt.where(
            or_(AccessRule.name.ilike(pattern, escape="\\"), AccessRule.description.ilike(pattern, escape="\\"))
        )
    if integration_system_id is not None:
        stmt = stmt.where(AccessRule.integration_system_id == integration_system_id)
    if trigger_type is not None:
        stmt = stmt.where(AccessRule.trigger_type == trigger_type)
    if action_type is not None:
        stmt = stmt.where(AccessRule.action_type == action_type)
    if is_active is not None:
        stmt = stmt.where(AccessRule.is_active.is_(is_active))
    stmt = stmt.order_by(AccessRule.priority, AccessRule.name, AccessRule.id)

    page = paginate(db, stmt, page_number=page_number, page_size=page_size)
    names = system_names(db, {rule.integration_system_id for rule in page.items if rule.integration_system_id})
    page.items = [
        to_read(db, rule, system_name=names.get(rule.integration_system_id) if rule.integration_system_id else None)
        for rule in page.items
    ]
    return page


def read_rule(db: Session, rule_id: uuid.UUID) -> AccessRuleRead:
    return to_read(db, get_rule(db, rule_id))


@transactional
def create_rule(db: Session, payload: AccessRuleCreate) -> AccessRuleRead:
    _ensure_unique_name(db, payload.name)
    if payload.integration_system_id is not None:
        get_system(db, payload.integration_system_id)

    rule = AccessRule(**payload.model_dump())
    db.add(rule)
    db.flush()
    log_audit(db, action=AuditAction.INSERT, entity=ENTITY, entity_id=rule.id, new=snapshot(rule))
    logger.info("Access rule created", extra={"access_rule_id": str(rule.id), "name": rule.name})
    return to_read(db, rule)


@transactional
def update_rule(db: Session, rule_id: uuid.UUID, payload: AccessRuleUpdate) -> AccessRuleRead:
    rule = get_rule(db, rule_id)
    ensure_version(rule, payload.version, entity_label="Access rule")
    if payload.name != rule.name:
        _ensure_unique_name(db, payload.name, exclude_id=rule.id)
    if payload.integration_system_id is not None:
        get_system(db, payload.integration_system_id)

    before = snapshot(rule)
    apply_changes(rule, payload.model_dump(exclude={"version"}))
    db.flush()
    log_audit(
        db,
        action=AuditAction.UPDATE,
        entity=ENTITY,
        entity_id=rule.id,
        old=before,
        new=snapshot(rule),
        justification=payload.last_modified_reason,
    )
    return to_read(db, rule)


@transactional
def delete_rule(db: Session, rule_id: uuid.UUID) -> None:
    rule = get_rule(db, rule_id)
    linked = db.scalars(
        select(AccessAssignment.id)
        .join(access_assignment_rules, access_assignment_rules.c.access_assignment_id == AccessAssignment.id)
        .where(access_assignment_rules.c.access_rule_id == rule.id, not_deleted(AccessAssignment))
        .limit(1)
    ).first()
    if linked is not None:
        raise DependencyConflictError(
            "Cannot delete access rule that is linked to access assignments.",
            details={"accessRuleId": str(rule.id), "blockedBy": "AccessAssignment"},
        )

    before = snapshot(rule)
    soft_delete(rule)
    db.flush()
    log_audit(db, action=AuditAction.DELETE, entity=ENTITY, entity_id=rule.id, old=before)


__all__ = ["create_rule", "delete_rule", "get_rule", "list_rules", "read_rule", "to_read", "update_rule"]
