"""ORM models package."""
from .access import AccessAssignment, AccessRule, access_assignment_rules
from .audit import AuditLog
from .base import AuditableMixin, Base, not_deleted, row_to_dict, visible
from .entity_definition import EntityDefinition, PropertyDefinition
from .entity_instance import EntityInstance, PropertyValue
from .enums import (
    ActionType,
    AssignmentType,
    AuditAction,
    AuthenticationType,
    DataType,
    SyncStatus,
    TriggerType,
)
from .integration_system import IntegrationSystem
from .sync_log import SyncLog

__all__ = [
    "AccessAssignment",
    "AccessRule",
    "ActionType",
    "AssignmentType",
    "AuditAction",
    "AuditLog",
    "AuditableMixin",
    "AuthenticationType",
    "Base",
    "DataType",
    "EntityDefinition",
    "EntityInstance",
    "IntegrationSystem",
    "PropertyDefinition",
    "PropertyValue",
    "SyncLog",
    "SyncStatus",
    "TriggerType",
    "access_assignment_rules",
    "not_deleted",
    "row_to_dict",
    "visible",
]
