"""Standalone property value services."""
from __future__ import annotations

import logging
import uuid

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from rbac_api.models import AuditAction, EntityInstance, PropertyValue, not_deleted
from rbac_api.schemas.entity_instance import PropertyValueCreate, PropertyValueRead, PropertyValueUpdate
from rbac_api.services.entity_definitions import get_definition
from rbac_api.services.entity_instances import (
    check_value_entry,
    get_instance,
    property_definitions_of,
    value_columns,
    value_reads,
)
from rbac_api.services.queries import Page, contains, exists_live, get_live, paginate
from rbac_api.services.unit_of_work import apply_changes, ensure_version, soft_delete, transactional
from rbac_api.utils.audit import log_audit, snapshot
from rbac_api.utils.errors import ConflictError, ValidationError
from rbac_api.utils.time import ensure_utc, utcnow

logger = logging.getLogger(__name__)

ENTITY = "PropertyValue"


def get_value(db: Session, value_id: uuid.UUID) -> PropertyValue:
    return get_live(db, PropertyValue, value_id, label="Property value")


def to_read(db: Session, value: PropertyValue) -> PropertyValueRead:
    return value_reads(db, [value])[0]


def _ensure_single_value(
    db: Session, instance_id: uuid.UUID, property_definition_id: uuid.UUID, *, exclude_id: uuid.UUID | None = None
) -> None:
    criteria = [
        PropertyValue.entity_instance_id == instance_id,
        PropertyValue.property_definition_id == property_definition_id,
    ]
    if exclude_id is not None:
        criteria.append(PropertyValue.id != exclude_id)
    if exists_live(db, PropertyValue, *criteria):
        raise ConflictError(
            "The entity instance already has a value for this property definition.",
            code="PROPERTY_VALUE_CONFLICT",
        )


def _check_entry(db: Session, instance: EntityInstance, entry, *, value_id: uuid.UUID | None = None) -> None:
    definition = get_definition(db, instance.entity_definition_id)
    properties = property_definitions_of(db, definition.id)
    check_value_entry(db, definition, properties, entry, instance_id=instance.id)
    _ensure_single_value(db, instance.id, entry.property_definition_id, exclude_id=value_id)


def list_values(
    db: Session,
    *,
    page_number: int,
    page_size: int,
    search: str | None = None,
    entity_instance_id: uuid.UUID | None = None,
    property_definition_id: uuid.UUID | None = None,
    is_default: bool | None = None,
) -> Page[PropertyValueRead]:
    stmt = select(PropertyValue).where(not_deleted(PropertyValue))
    if search:
        pattern = contains(search)
        stmt = stmt.where(
            or_(
                PropertyValue.value.ilike(pattern, escape="\\"),
                PropertyValue.display_value.ilike(pattern, escape="\\"),
            )
        )
    if entity_instance_id is not None:
        stmt = stmt.where(PropertyValue.entity_instance_id == entity_instance_id)
    if property_definition_id is not None:
        stmt = stmt.where(PropertyValue.property_definition_id == property_definition_id)
    if is_default is not None:
        stmt = stmt.where(PropertyValue.is_default.is_(is_default))
    stmt = stmt.order_by(PropertyValue.created_at.desc(), PropertyValue.id)

    page = paginate(db, stmt, page_number=page_number, page_size=page_size)
    page.items = value_reads(db, page.items)
    return page


def values_of_instance(db: Session, instance_id: uuid.UUID) -> list[PropertyValueRead]:
    instance = get_instance(db, instance_id)
    rows = db.scalars(
        select(PropertyValue)
        .where(PropertyValue.entity_instance_id == instance.id, not_deleted(PropertyValue))
        .order_by(PropertyValue.created_at, PropertyValue.id)
    )
    return value_reads(db, list(rows))


def read_value(db: Session, value_id: uuid.UUID) -> PropertyValueRead:
    return to_read(db, get_value(db, value_id))


@transactional
def create_value(db: Session, payload: PropertyValueCreate) -> PropertyValueRead:
    instance = get_instance(db, payload.entity_instance_id)
    _check_entry(db, instance, payload)

    value = PropertyValue(entity_instance_id=instance.id, **value_columns(payload))
    db.add(value)
    db.flush()
    log_audit(db, action=AuditAction.INSERT, entity=ENTITY, entity_id=value.id, new=snapshot(value))
    return to_read(db, value)


@transactional
def update_value(db: Session, value_id: uuid.UUID, payload: PropertyValueUpdate) -> PropertyValueRead:
    value = get_value(db, value_id)
    ensure_version(value, payload.version, entity_label="Property value")
    instance = get_instance(db, value.entity_instance_id)
    _check_entry(db, instance, payload, value_id=value.id)

    before = snapshot(value)
    apply_changes(value, value_columns(payload) | {"last_modified_reason": payload.last_modified_reason})
    db.flush()
    log_audit(
        db,
        action=AuditAction.UPDATE,
        entity=ENTITY,
        entity_id=value.id,
        old=before,
        new=snapshot(value),
        justification=payload.last_modified_reason,
    )
    return to_read(db, value)


@transactional
def expire_value(db: Session, value_id: uuid.UUID) -> PropertyValueRead:
    """Close the validity window of a value at the current time."""

    value = get_value(db, value_id)
    now = utcnow()
    if value.effective_from is not None and ensure_utc(value.effective_from) > now:
        raise ValidationError(
            "Cannot expire a property value that is not yet effective.",
            code="PROPERTY_VALUE_NOT_EFFECTIVE",
        )

    before = snapshot(value)
    value.effective_to = now
    db.flush()
    log_audit(db, action=AuditAction.UPDATE, entity=ENTITY, entity_id=value.id, old=before, new=snapshot(value))
    logger.info("Property value expired", extra={"property_value_id": str(value.id)})
    return to_read(db, value)


@transactional
def delete_value(db: Session, value_id: uuid.UUID) -> None:
    value = get_value(db, value_id)
    before = snapshot(value)
    soft_delete(value)
    db.flush()
    log_audit(db, action=AuditAction.DELETE, entity=ENTITY, entity_id=value.id, old=before)


__all__ = [
    "create_value",
    "delete_value",
    "expire_value",
    "get_value",
    "list_values",
    "read_value",
    "to_read",
    "update_value",
    "values_of_instance",
]
