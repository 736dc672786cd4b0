"""Entity instance services: the EAV record store."""
from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from collections.abc import Iterable, Sequence

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from rbac_api.models import (
    AccessAssignment,
    AuditAction,
    EntityDefinition,
    EntityInstance,
    PropertyDefinition,
    PropertyValue,
    SyncStatus,
    not_deleted,
    row_to_dict,
    visible,
)
from rbac_api.schemas.entity_instance import (
    EntityInstanceCreate,
    EntityInstanceRead,
    EntityInstanceUpdate,
    PropertyValueFields,
    PropertyValueRead,
)
from rbac_api.services.entity_definitions import definition_names, get_definition
from rbac_api.services.queries import Page, contains, exists_live, get_live, paginate
from rbac_api.services.unit_of_work import apply_changes, ensure_version, soft_delete, transactional
from rbac_api.services.value_validation import validate_property_value
from rbac_api.utils.audit import log_audit, snapshot
from rbac_api.utils.errors import ConflictError, DependencyConflictError, ValidationError
from rbac_api.utils.time import ensure_utc, utcnow

logger = logging.getLogger(__name__)

ENTITY = "EntityInstance"
VALUE_FIELDS = ("property_definition_id", "value", "display_value", "is_default", "effective_from", "effective_to")


def get_instance(db: Session, instance_id: uuid.UUID) -> EntityInstance:
    return get_live(db, EntityInstance, instance_id, label="Entity instance")


def instance_names(db: Session, ids: set[uuid.UUID]) -> dict[uuid.UUID, str]:
    if not ids:
        return {}
    rows = db.execute(select(EntityInstance.id, EntityInstance.display_name).where(EntityInstance.id.in_(ids)))
    return {row.id: row.display_name for row in rows}


# --- Property value helpers -------------------------------------------------


def property_definitions_of(db: Session, entity_definition_id: uuid.UUID) -> dict[uuid.UUID, PropertyDefinition]:
    rows = db.scalars(
        select(PropertyDefinition).where(
            PropertyDefinition.entity_definition_id == entity_definition_id, not_deleted(PropertyDefinition)
        )
    )
    return {prop.id: prop for prop in rows}


def value_columns(entry: PropertyValueFields) -> dict:
    data = entry.model_dump(include=set(VALUE_FIELDS))
    data["effective_from"] = ensure_utc(data["effective_from"])
    data["effective_to"] = ensure_utc(data["effective_to"])
    return data


def ensure_unique_value(
    db: Session, prop: PropertyDefinition, value: str, *, exclude_instance_id: uuid.UUID | None = None
) -> None:
    """Reject ``value`` when another live instance already holds it for a unique property."""

    stmt = (
        select(PropertyValue.id)
        .join(EntityInstance, EntityInstance.id == PropertyValue.entity_instance_id)
        .where(
            PropertyValue.property_definition_id == prop.id,
            PropertyValue.value == value,
            not_deleted(PropertyValue),
            not_deleted(EntityInstance),
        )
    )
    if exclude_instance_id is not None:
        stmt = stmt.where(PropertyValue.entity_instance_id != exclude_instance_id)
    if db.scalars(stmt.limit(1)).first() is not None:
        raise ConflictError(
            f"Value '{value}' is already used for unique property '{prop.name}'.",
            code="PROPERTY_VALUE_NOT_UNIQUE",
            details={"propertyDefinitionId": str(prop.id)},
        )


def check_value_entry(
    db: Session,
    definition: EntityDefinition,
    properties: dict[uuid.UUID, PropertyDefinition],
    entry: PropertyValueFields,
    *,
    instance_id: uuid.UUID | None = None,
) -> PropertyDefinition:
    """Validate one value against the catalog and return its property definition."""

    prop = properties.get(entry.property_definition_id)
    if prop is None:
        raise ValidationError(
            f"Property definition with ID {entry.property_definition_id} not found in entity definition "
            f"'{definition.name}'.",
            code="PROPERTY_DEFINITION_MISMATCH",
            details={
                "propertyDefinitionId": str(entry.property_definition_id),
                "entityDefinitionId": str(definition.id),
            },
        )
    validate_property_value(prop, entry.value)
    if prop.is_unique and entry.value:
        ensure_unique_value(db, prop, entry.value, exclude_instance_id=instance_id)
    return prop


def _check_value_set(
    db: Session,
    definition: EntityDefinition,
    properties: dict[uuid.UUID, PropertyDefinition],
    entries: Sequence[PropertyValueFields],
    *,
    instance_id: uuid.UUID | None = None,
    defaulted: Iterable[uuid.UUID] = (),
) -> None:
    seen: set[uuid.UUID] = set()
    for entry in entries:
        if entry.property_definition_id in seen:
            raise ValidationError(
                "Each property definition may only be supplied once.",
                code="DUPLICATE_PROPERTY_VALUE",
                details={"propertyDefinitionId": str(entry.property_definition_id)},
            )
        seen.add(entry.property_definition_id)
        check_value_entry(db, definition, properties, entry, instance_id=instance_id)

    covered = seen | set(defaulted)
    missing = sorted(prop.name for prop in properties.values() if prop.is_required and prop.id not in covered)
    if missing:
        raise ValidationError(
            f"Missing values for required properties: {', '.join(missing)}.",
            code="REQUIRED_PROPERTY_MISSING",
            details={"properties": missing},
        )


def value_reads(db: Session, values: Sequence[PropertyValue]) -> list[PropertyValueRead]:
    """Project property values with the names of their instance, definition and property."""

    if not values:
        return []
    prop_rows = {
        row.id: row
        for row in db.execute(
            select(
                PropertyDefinition.id,
                PropertyDefinition.name,
                PropertyDefinition.data_type,
                PropertyDefinition.entity_definition_id,
            ).where(PropertyDefinition.id.in_({value.property_definition_id for value in values}))
        )
    }
    instance_rows = {
        row.id: row
        for row in db.execute(
            select(EntityInstance.id, EntityInstance.display_name, EntityInstance.entity_definition_id).where(
                EntityInstance.id.in_({value.entity_instance_id for value in values})
            )
        )
    }
    def_names = definition_names(db, {row.entity_definition_id for row in instance_rows.values()})

    reads = []
    for value in values:
        prop = prop_rows.get(value.property_definition_id)
        instance = instance_rows.get(value.entity_instance_id)
        extras = {
            "property_definition_name": prop.name if prop else "",
            "property_data_type": prop.data_type if prop else None,
            "entity_instance_display_name": instance.display_name if instance else "",
            "entity_definition_name": def_names.get(instance.entity_definition_id, "") if instance else "",
        }
        reads.append(PropertyValueRead.model_validate(row_to_dict(value) | extras))
    return reads


def _live_values(db: Session, instance_ids: Iterable[uuid.UUID]) -> list[PropertyValue]:
    ids = list(instance_ids)
    if not ids:
        return []
    stmt = (
        select(PropertyValue)
        .join(PropertyDefinition, PropertyDefinition.id == PropertyValue.property_definition_id)
        .where(PropertyValue.entity_instance_id.in_(ids), not_deleted(PropertyValue))
        .order_by(PropertyDefinition.sort_order, PropertyDefinition.name)
    )
    return list(db.scalars(stmt))


# --- Instances ----------------------------------------------------------------


def _to_reads(db: Session, instances: Sequence[EntityInstance]) -> list[EntityInstanceRead]:
    values_by_instance: dict[uuid.UUID, list[PropertyValueRead]] = defaultdict(list)
    for read in value_reads(db, _live_values(db, [instance.id for instance in instances])):
        values_by_instance[read.entity_instance_id].append(read)
    names = definition_names(db, {instance.entity_definition_id for instance in instances})
    return [
        EntityInstanceRead.model_validate(
            row_to_dict(instance)
            | {
                "entity_definition_name": names.get(instance.entity_definition_id, ""),
                "property_values": values_by_instance.get(instance.id, []),
            }
        )
        for instance in instances
    ]


def to_read(db: Session, instance: EntityInstance) -> EntityInstanceRead:
    return _to_reads(db, [instance])[0]


def instance_snapshot(db: Session, instance: EntityInstance) -> dict:
    return snapshot(instance, property_values=[snapshot(value) for value in _live_values(db, [instance.id])])


def _ensure_unique_external_id(
    db: Session, entity_definition_id: uuid.UUID, external_id: str, *, exclude_id: uuid.UUID | None = None
) -> None:
    criteria = [EntityInstance.entity_definition_id == entity_definition_id, EntityInstance.external_id == external_id]
    if exclude_id is not None:
        criteria.append(EntityInstance.id != exclude_id)
    if exists_live(db, EntityInstance, *criteria):
        raise ConflictError(
            f"Entity instance with external ID '{external_id}' already exists in this entity definition.",
            code="ENTITY_INSTANCE_EXTERNAL_ID_CONFLICT",
        )


def list_instances(
    db: Session,
    *,
    page_number: int,
    page_size: int,
    search: str | None = None,
    entity_definition_id: uuid.UUID | None = None,
    is_active: bool | None = None,
    sync_status: SyncStatus | None = None,
    include_deleted: bool = False,
) -> Page[EntityInstanceRead]:
    """Instances matching every supplied filter, ordered by display name.

    Soft-deleted instances are hidden unless ``include_deleted`` is set.
    """

    stmt = select(EntityInstance).where(*visible(EntityInstance, include_deleted=include_deleted))
    if search:
        pattern = contains(search)
        stmt = stmt.where(
            or_(
                EntityInstance.display_name.ilike(pattern, escape="\\"),
                EntityInstance.external_id.ilike(pattern, escape="\\"),
            )
        )
    if entity_definition_id is not None:
        stmt = stmt.where(EntityInstance.entity_definition_id == entity_definition_id)
    if is_active is not None:
        stmt = stmt.where(EntityInstance.is_active.is_(is_active))
    if sync_status is not None:
        stmt = stmt.where(EntityInstance.sync_status == sync_status)
    stmt = stmt.order_by(EntityInstance.display_name, EntityInstance.id)

    page = paginate(db, stmt, page_number=page_number, page_size=page_size)
    page.items = _to_reads(db, page.items)
    return page


def read_instance(db: Session, instance_id: uuid.UUID) -> EntityInstanceRead:
    return to_read(db, get_instance(db, instance_id))


@transactional
def create_instance(db: Session, payload: EntityInstanceCreate) -> EntityInstanceRead:
    definition = get_definition(db, payload.entity_definition_id)
    _ensure_unique_external_id(db, definition.id, payload.external_id)

    properties = property_definitions_of(db, definition.id)
    supplied = {entry.property_definition_id for entry in payload.property_values}
    defaults = [
        prop for prop in properties.values() if prop.id not in supplied and prop.default_value not in (None, "")
    ]
    _check_value_set(
        db, definition, properties, payload.property_values, defaulted=[prop.id for prop in defaults]
    )

    instance = EntityInstance(
        **payload.model_dump(exclude={"property_values"}),
        sync_status=SyncStatus.SUCCESS,
        last_synced_at=utcnow(),
    )
    db.add(instance)
    db.flush()

    for entry in payload.property_values:
        db.add(PropertyValue(entity_instance_id=instance.id, **value_columns(entry)))
    for prop in defaults:
        db.add(
            PropertyValue(
                entity_instance_id=instance.id,
                property_definition_id=prop.id,
                value=prop.default_value,
                is_default=True,
            )
        )
    db.flush()

    log_audit(db, action=AuditAction.INSERT, entity=ENTITY, entity_id=instance.id, new=instance_snapshot(db, instance))
    logger.info(
        "Entity instance created",
        extra={
            "entity_instance_id": str(instance.id),
            "entity_definition_id": str(definition.id),
            "property_values": len(payload.property_values) + len(defaults),
        },
    )
    return to_read(db, instance)


@transactional
def update_instance(db: Session, instance_id: uuid.UUID, payload: EntityInstanceUpdate) -> EntityInstanceRead:
    """Whole-record update; the supplied property values replace the stored collection.

    Entries carrying an ``id`` update that stored value, entries without one are
    inserted and stored values missing from the request are soft-deleted.
    """

    instance = get_instance(db, instance_id)
    ensure_version(instance, payload.version, entity_label="Entity instance")
    definition = get_definition(db, payload.entity_definition_id)
    if payload.external_id != instance.external_id or payload.entity_definition_id != instance.entity_definition_id:
        _ensure_unique_external_id(db, definition.id, payload.external_id, exclude_id=instance.id)

    existing = {value.id: value for value in _live_values(db, [instance.id])}
    for entry in payload.property_values:
        if entry.id is not None and entry.id not in existing:
            raise ValidationError(
                f"Property value with ID {entry.id} does not belong to entity instance {instance.id}.",
                code="PROPERTY_VALUE_NOT_IN_INSTANCE",
                details={"propertyValueId": str(entry.id)},
            )
        if entry.id is not None and existing[entry.id].property_definition_id != entry.property_definition_id:
            raise ValidationError(
                f"Property value {entry.id} belongs to property definition "
                f"{existing[entry.id].property_definition_id}; send a new value without an id instead.",
                code="PROPERTY_VALUE_DEFINITION_CHANGED",
                details={"propertyValueId": str(entry.id)},
            )

    properties = property_definitions_of(db, definition.id)
    _check_value_set(db, definition, properties, payload.property_values, instance_id=instance.id)

    before = instance_snapshot(db, instance)
    kept_ids = {entry.id for entry in payload.property_values if entry.id is not None}
    removed = [value for value_id, value in existing.items() if value_id not in kept_ids]
    for value in removed:
        soft_delete(value)
    # Removed rows leave the partial unique index before replacements are written.
    db.flush()

    for entry in payload.property_values:
        if entry.id is not None:
            apply_changes(existing[entry.id], value_columns(entry))
    db.flush()
    for entry in payload.property_values:
        if entry.id is None:
            db.add(PropertyValue(entity_instance_id=instance.id, **value_columns(entry)))

    apply_changes(instance, payload.model_dump(exclude={"version", "property_values"}))
    db.flush()

    log_audit(
        db,
        action=AuditAction.UPDATE,
        entity=ENTITY,
        entity_id=instance.id,
        old=before,
        new=instance_snapshot(db, instance),
        justification=payload.last_modified_reason,
    )
    logger.info(
        "Entity instance updated",
        extra={"entity_instance_id": str(instance.id), "version": instance.version, "removed_values": len(removed)},
    )
    return to_read(db, instance)


@transactional
def delete_instance(db: Session, instance_id: uuid.UUID) -> None:
    """Soft delete an instance and its values unless an access assignment references it."""

    instance = get_instance(db, instance_id)
    if exists_live(
        db,
        AccessAssignment,
        or_(AccessAssignment.user_id == instance.id, AccessAssignment.role_id == instance.id),
    ):
        raise DependencyConflictError(
            "Cannot delete entity instance that is referenced by access assignments.",
            details={"entityInstanceId": str(instance.id), "blockedBy": "AccessAssignment"},
        )

    before = instance_snapshot(db, instance)
    for value in _live_values(db, [instance.id]):
        soft_delete(value)
    soft_delete(instance)
    db.flush()
    log_audit(db, action=AuditAction.DELETE, entity=ENTITY, entity_id=instance.id, old=before)
    logger.info("Entity instance deleted", extra={"entity_instance_id": str(instance.id)})


__all__ = [
    "check_value_entry",
    "create_instance",
    "delete_instance",
    "ensure_unique_value",
    "get_instance",
    "instance_names",
    "list_instances",
    "property_definitions_of",
    "read_instance",
    "to_read",
    "update_instance",
    "value_columns",
    "value_reads",
]
