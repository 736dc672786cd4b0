"""Entity definition catalog services."""
from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from rbac_api.models import (
    AccessAssignment,
    AuditAction,
    EntityDefinition,
    EntityInstance,
    PropertyDefinition,
    PropertyValue,
    not_deleted,
    row_to_dict,
)
from rbac_api.schemas.entity_definition import EntityDefinitionCreate, EntityDefinitionRead, EntityDefinitionUpdate
from rbac_api.services.integration_systems import get_system, system_names
from rbac_api.services.queries import Page, contains, exists_live, get_live, paginate
from rbac_api.services.unit_of_work import apply_changes, ensure_version, soft_delete, transactional
from rbac_api.utils.audit import log_audit, snapshot
from rbac_api.utils.errors import ConflictError, DependencyConflictError

logger = logging.getLogger(__name__)

ENTITY = "EntityDefinition"
FIELD_RENAMES = {"metadata": "metadata_json"}


def get_definition(db: Session, definition_id: uuid.UUID) -> EntityDefinition:
    return get_live(db, EntityDefinition, definition_id, label="Entity definition")


def definition_names(db: Session, ids: set[uuid.UUID]) -> dict[uuid.UUID, str]:
    if not ids:
        return {}
    rows = db.execute(select(EntityDefinition.id, EntityDefinition.name).where(EntityDefinition.id.in_(ids)))
    return {row.id: row.name for row in rows}


def _count_live(db: Session, model, column, value: uuid.UUID) -> int:
    stmt = select(func.count()).select_from(model).where(column == value, not_deleted(model))
    return db.scalar(stmt) or 0


def to_read(db: Session, definition: EntityDefinition, *, system_name: str | None = None) -> EntityDefinitionRead:
    data = row_to_dict(definition)
    data["metadata"] = data.pop("metadata_json")
    if system_name is None:
        system_name = system_names(db, {definition.integration_system_id}).get(definition.integration_system_id, "")
    data["integration_system_name"] = system_name
    data["property_definitions_count"] = _count_live(
        db, PropertyDefinition, PropertyDefinition.entity_definition_id, definition.id
    )
    data["entity_instances_count"] = _count_live(db, EntityInstance, EntityInstance.entity_definition_id, definition.id)
    return EntityDefinitionRead.model_validate(data)


def _ensure_unique_name(
    db: Session, system_id: uuid.UUID, name: str, *, exclude_id: uuid.UUID | None = None
) -> None:
    criteria = [EntityDefinition.integration_system_id == system_id, EntityDefinition.name == name]
    if exclude_id is not None:
        criteria.append(EntityDefinition.id != exclude_id)
    if exists_live(db, EntityDefinition, *criteria):
        raise ConflictError(
            f"Entity definition with name '{name}' already exists in this integration system.",
            code="ENTITY_DEFINITION_NAME_CONFLICT",
        )


def list_definitions(
    db: Session,
    *,
    page_number: int,
    page_size: int,
    search: str | None = None,
    integration_system_id: uuid.UUID | None = None,
    is_active: bool | None = None,
) -> Page[EntityDefinitionRead]:
    stmt = select(EntityDefinition).where(not_deleted(EntityDefinition))
    if search:
        pattern = contains(search)
        stmt = stmt.where(
            or_(
                EntityDefinition.name.ilike(pattern, escape="\\"),
                EntityDefinition.display_name.ilike(pattern, escape="\\"),
                EntityDefinition.description.ilike(pattern, escape="\\"),
            )
        )
    if integration_system_id is not None:
        stmt = stmt.where(EntityDefinition.integration_system_id == integration_system_id)
    if is_active is not None:
        stmt = stmt.where(EntityDefinition.is_active.is_(is_active))
    stmt = stmt.order_by(EntityDefinition.sort_order, EntityDefinition.name, EntityDefinition.id)

    page = paginate(db, stmt, page_number=page_number, page_size=page_size)
    names = system_names(db, {definition.integration_system_id for definition in page.items})
    page.items = [
        to_read(db, definition, system_name=names.get(definition.integration_system_id, ""))
        for definition in page.items
    ]
    return page


def read_definition(db: Session, definition_id: uuid.UUID) -> EntityDefinitionRead:
    return to_read(db, get_definition(db, definition_id))


@transactional
def create_definition(db: Session, payload: EntityDefinitionCreate) -> EntityDefinitionRead:
    system = get_system(db, payload.integration_system_id)
    _ensure_unique_name(db, system.id, payload.name)

    definition = EntityDefinition()
    apply_changes(definition, payload.model_dump(), renames=FIELD_RENAMES)
    db.add(definition)
    db.flush()
    log_audit(db, action=AuditAction.INSERT, entity=ENTITY, entity_id=definition.id, new=snapshot(definition))
    logger.info("Entity definition created", extra={"entity_definition_id": str(definition.id), "name": definition.name})
    return to_read(db, definition, system_name=system.name)


@transactional
def update_definition(db: Session, definition_id: uuid.UUID, payload: EntityDefinitionUpdate) -> EntityDefinitionRead:
    definition = get_definition(db, definition_id)
    ensure_version(definition, payload.version, entity_label="Entity definition")
    system = get_system(db, payload.integration_system_id)
    if payload.name != definition.name or payload.integration_system_id != definition.integration_system_id:
        _ensure_unique_name(db, system.id, payload.name, exclude_id=definition.id)

    before = snapshot(definition)
    apply_changes(definition, payload.model_dump(exclude={"version"}), renames=FIELD_RENAMES)
    db.flush()
    log_audit(
        db,
        action=AuditAction.UPDATE,
        entity=ENTITY,
        entity_id=definition.id,
        old=before,
        new=snapshot(definition),
        justification=payload.last_modified_reason,
    )
    return to_read(db, definition, system_name=system.name)


@transactional
def delete_definition(db: Session, definition_id: uuid.UUID) -> None:
    """Soft delete a definition together with its property definitions, instances and values.

    Refused while any of its instances is referenced by a live access assignment.
    """

    definition = get_definition(db, definition_id)
    instances = list(
        db.scalars(
            select(EntityInstance).where(
                EntityInstance.entity_definition_id == definition.id, not_deleted(EntityInstance)
            )
        )
    )
    instance_ids = [instance.id for instance in instances]
    if instance_ids and exists_live(
        db,
        AccessAssignment,
        or_(AccessAssignment.user_id.in_(instance_ids), AccessAssignment.role_id.in_(instance_ids)),
    ):
        raise DependencyConflictError(
            "Cannot delete entity definition whose instances are referenced by access assignments.",
            details={"entityDefinitionId": str(definition.id), "blockedBy": "AccessAssignment"},
        )

    values = []
    if instance_ids:
        values = list(
            db.scalars(
                select(PropertyValue).where(
                    PropertyValue.entity_instance_id.in_(instance_ids), not_deleted(PropertyValue)
                )
            )
        )
    property_definitions = list(
        db.scalars(
            select(PropertyDefinition).where(
                PropertyDefinition.entity_definition_id == definition.id, not_deleted(PropertyDefinition)
            )
        )
    )

    before = snapshot(definition)
    for row in [*values, *instances, *property_definitions, definition]:
        soft_delete(row)
    db.flush()
    log_audit(
        db,
        action=AuditAction.DELETE,
        entity=ENTITY,
        entity_id=definition.id,
        old=before,
        new={
            "cascadedPropertyDefinitions": len(property_definitions),
            "cascadedEntityInstances": len(instances),
            "cascadedPropertyValues": len(values),
        },
    )
    logger.info(
        "Entity definition deleted",
        extra={"entity_definition_id": str(definition.id), "cascaded_instances": len(instances)},
    )


__all__ = [
    "create_definition",
    "definition_names",
    "delete_definition",
    "get_definition",
    "list_definitions",
    "read_definition",
    "to_read",
    "update_definition",
]
