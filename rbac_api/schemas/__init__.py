"""Schema package exports."""
from .access import (
    AccessAssignmentCreate,
    AccessAssignmentRead,
    AccessAssignmentStatusUpdate,
    AccessAssignmentUpdate,
    AccessRuleCreate,
    AccessRuleRead,
    AccessRuleUpdate,
)
from .audit import AuditLogRead, AuditSearchRequest, ComplianceReport
from .common import EnumOption, PagedResult, enum_options
from .entity_definition import (
    EntityDefinitionCreate,
    EntityDefinitionRead,
    EntityDefinitionUpdate,
    PropertyDefinitionCreate,
    PropertyDefinitionRead,
    PropertyDefinitionUpdate,
)
from .entity_instance import (
    EntityInstanceCreate,
    EntityInstanceRead,
    EntityInstanceUpdate,
    PropertyValueCreate,
    PropertyValueInput,
    PropertyValueRead,
    PropertyValueUpdate,
    PropertyValueUpsert,
)
from .integration_system import IntegrationSystemCreate, IntegrationSystemRead, IntegrationSystemUpdate
from .sync_log import SyncLogComplete, SyncLogCreate, SyncLogRead, SyncLogSummary, SyncLogUpdate

__all__ = [
    "AccessAssignmentCreate",
    "AccessAssignmentRead",
    "AccessAssignmentStatusUpdate",
    "AccessAssignmentUpdate",
    "AccessRuleCreate",
    "AccessRuleRead",
    "AccessRuleUpdate",
    "AuditLogRead",
    "AuditSearchRequest",
    "ComplianceReport",
    "EntityDefinitionCreate",
    "EntityDefinitionRead",
    "EntityDefinitionUpdate",
    "EntityInstanceCreate",
    "EntityInstanceRead",
    "EntityInstanceUpdate",
    "EnumOption",
    "IntegrationSystemCreate",
    "IntegrationSystemRead",
    "IntegrationSystemUpdate",
    "PagedResult",
    "PropertyDefinitionCreate",
    "PropertyDefinitionRead",
    "PropertyDefinitionUpdate",
    "PropertyValueCreate",
    "PropertyValueInput",
    "PropertyValueRead",
    "PropertyValueUpdate",
    "PropertyValueUpsert",
    "SyncLogComplete",
    "SyncLogCreate",
    "SyncLogRead",
    "SyncLogSummary",
    "SyncLogUpdate",
    "enum_options",
]
