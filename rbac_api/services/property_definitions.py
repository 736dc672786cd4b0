"""Property definition catalog services."""
from __future__ import annotations

import logging
import uuid

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from rbac_api.models import AuditAction, DataType, PropertyDefinition, PropertyValue, not_deleted, row_to_dict
from rbac_api.schemas.entity_definition import (
    PropertyDefinitionCreate,
    PropertyDefinitionRead,
    PropertyDefinitionUpdate,
)
from rbac_api.services.entity_definitions import definition_names, get_definition
from rbac_api.services.queries import Page, contains, exists_live, get_live, paginate
from rbac_api.services.unit_of_work import apply_changes, ensure_version, soft_delete, transactional
from rbac_api.services.value_validation import check_rules_document, validate_property_value
from rbac_api.utils.audit import log_audit, snapshot
from rbac_api.utils.errors import ConflictError, DependencyConflictError, ValidationError

logger = logging.getLogger(__name__)

ENTITY = "PropertyDefinition"


def get_property_definition(db: Session, property_definition_id: uuid.UUID) -> PropertyDefinition:
    return get_live(db, PropertyDefinition, property_definition_id, label="Property definition")


def to_read(db: Session, prop: PropertyDefinition, *, definition_name: str | None = None) -> PropertyDefinitionRead:
    if definition_name is None:
        definition_name = definition_names(db, {prop.entity_definition_id}).get(prop.entity_definition_id, "")
    return PropertyDefinitionRead.model_validate(row_to_dict(prop) | {"entity_definition_name": definition_name})


def _ensure_unique_name(
    db: Session, entity_definition_id: uuid.UUID, name: str, *, exclude_id: uuid.UUID | None = None
) -> None:
    criteria = [PropertyDefinition.entity_definition_id == entity_definition_id, PropertyDefinition.name == name]
    if exclude_id is not None:
        criteria.append(PropertyDefinition.id != exclude_id)
    if exists_live(db, PropertyDefinition, *criteria):
        raise ConflictError(
            f"Property definition with name '{name}' already exists in this entity definition.",
            code="PROPERTY_DEFINITION_NAME_CONFLICT",
        )


def _check_definition_payload(payload: PropertyDefinitionCreate) -> None:
    check_rules_document(payload.validation_rules)
    if payload.default_value:
        # Required-ness does not apply to the default itself.
        probe = PropertyDefinition(
            name=payload.name,
            data_type=payload.data_type,
            is_required=False,
            validation_rules=payload.validation_rules,
        )
        validate_property_value(probe, payload.default_value)


def list_property_definitions(
    db: Session,
    *,
    page_number: int,
    page_size: int,
    search: str | None = None,
    entity_definition_id: uuid.UUID | None = None,
    data_type: DataType | None = None,
) -> Page[PropertyDefinitionRead]:
    stmt = select(PropertyDefinition).where(not_deleted(PropertyDefinition))
    if search:
        pattern = contains(search)
        stmt = stmt.where(
            or_(
                PropertyDefinition.name.ilike(pattern, escape="\\"),
                PropertyDefinition.display_name.ilike(pattern, escape="\\"),
                PropertyDefinition.description.ilike(pattern, escape="\\"),
            )
        )
    if entity_definition_id is not None:
        stmt = stmt.where(PropertyDefinition.entity_definition_id == entity_definition_id)
    if data_type is not None:
        stmt = stmt.where(PropertyDefinition.data_type == data_type)
    stmt = stmt.order_by(PropertyDefinition.sort_order, PropertyDefinition.name, PropertyDefinition.id)

    page = paginate(db, stmt, page_number=page_number, page_size=page_size)
    names = definition_names(db, {prop.entity_definition_id for prop in page.items})
    page.items = [to_read(db, prop, definition_name=names.get(prop.entity_definition_id, "")) for prop in page.items]
    return page


def properties_of_definition(db: Session, entity_definition_id: uuid.UUID) -> list[PropertyDefinitionRead]:
    """All live property definitions of one entity definition, in display order."""

    definition = get_definition(db, entity_definition_id)
    rows = db.scalars(
        select(PropertyDefinition)
        .where(PropertyDefinition.entity_definition_id == definition.id, not_deleted(PropertyDefinition))
        .order_by(PropertyDefinition.sort_order, PropertyDefinition.name)
    )
    return [to_read(db, prop, definition_name=definition.name) for prop in rows]


def read_property_definition(db: Session, property_definition_id: uuid.UUID) -> PropertyDefinitionRead:
    return to_read(db, get_property_definition(db, property_definition_id))


@transactional
def create_property_definition(db: Session, payload: PropertyDefinitionCreate) -> PropertyDefinitionRead:
    definition = get_definition(db, payload.entity_definition_id)
    _ensure_unique_name(db, definition.id, payload.name)
    _check_definition_payload(payload)

    prop = PropertyDefinition(**payload.model_dump())
    db.add(prop)
    db.flush()
    log_audit(db, action=AuditAction.INSERT, entity=ENTITY, entity_id=prop.id, new=snapshot(prop))
    logger.info(
        "Property definition created",
        extra={"property_definition_id": str(prop.id), "entity_definition_id": str(definition.id)},
    )
    return to_read(db, prop, definition_name=definition.name)


@transactional
def update_property_definition(
    db: Session, property_definition_id: uuid.UUID, payload: PropertyDefinitionUpdate
) -> PropertyDefinitionRead:
    prop = get_property_definition(db, property_definition_id)
    ensure_version(prop, payload.version, entity_label="Property definition")
    definition = get_definition(db, payload.entity_definition_id)
    if payload.entity_definition_id != prop.entity_definition_id and exists_live(
        db, PropertyValue, PropertyValue.property_definition_id == prop.id
    ):
        raise ValidationError(
            "Cannot move a property definition that still has property values to another entity definition.",
            code="PROPERTY_DEFINITION_HAS_VALUES",
            details={"propertyDefinitionId": str(prop.id)},
        )
    if payload.name != prop.name or payload.entity_definition_id != prop.entity_definition_id:
        _ensure_unique_name(db, definition.id, payload.name, exclude_id=prop.id)
    _check_definition_payload(payload)

    before = snapshot(prop)
    apply_changes(prop, payload.model_dump(exclude={"version"}))
    db.flush()
    log_audit(
        db,
        action=AuditAction.UPDATE,
        entity=ENTITY,
        entity_id=prop.id,
        old=before,
        new=snapshot(prop),
        justification=payload.last_modified_reason,
    )
    return to_read(db, prop, definition_name=definition.name)


@transactional
def delete_property_definition(db: Session, property_definition_id: uuid.UUID) -> None:
    prop = get_property_definition(db, property_definition_id)
    if exists_live(db, PropertyValue, PropertyValue.property_definition_id == prop.id):
        raise DependencyConflictError(
            "Cannot delete property definition that still has property values.",
            details={"propertyDefinitionId": str(prop.id), "blockedBy": "PropertyValue"},
        )

    before = snapshot(prop)
    soft_delete(prop)
    db.flush()
    log_audit(db, action=AuditAction.DELETE, entity=ENTITY, entity_id=prop.id, old=before)


__all__ = [
    "create_property_definition",
    "delete_property_definition",
    "get_property_definition",
    "list_property_definitions",
    "properties_of_definition",
    "read_property_definition",
    "to_read",
    "update_property_definition",
]
