"""Entity definition and property definition schemas."""
import uuid

from pydantic import Field

from rbac_api.models.enums import DataType

from .common import ApiModel, AuditableRead, JsonText, NonBlankStr, OptionalJsonText, VersionedUpdate


class EntityDefinitionBase(ApiModel):
    integration_system_id: uuid.UUID
    name: NonBlankStr = Field(max_length=100)
    display_name: str = Field(default="", max_length=200)
    description: str = Field(default="", max_length=1000)
    table_name: str = Field(default="", max_length=200)
    primary_key_field: str = Field(default="", max_length=100)
    is_active: bool = True
    sort_order: int = 0
    metadata: JsonText = "{}"


class EntityDefinitionCreate(EntityDefinitionBase):
    pass


class EntityDefinitionUpdate(EntityDefinitionBase, VersionedUpdate):
    pass


class EntityDefinitionRead(AuditableRead):
    integration_system_id: uuid.UUID
    name: str
    display_name: str
    description: str
    table_name: str
    primary_key_field: str
    is_active: bool
    sort_order: int
    metadata: str
    integration_system_name: str = ""
    property_definitions_count: int = 0
    entity_instances_count: int = 0


class PropertyDefinitionBase(ApiModel):
    entity_definition_id: uuid.UUID
    name: NonBlankStr = Field(max_length=100)
    display_name: str = Field(default="", max_length=200)
    description: str = Field(default="", max_length=1000)
    data_type: DataType = DataType.STRING
    source_field: str = Field(default="", max_length=200)
    is_required: bool = False
    is_unique: bool = False
    is_searchable: bool = True
    is_displayed: bool = True
    is_editable: bool = True
    sort_order: int = 0
    default_value: str | None = Field(default=None, max_length=1000)
    validation_rules: OptionalJsonText = None
    ui_metadata: JsonText = "{}"


class PropertyDefinitionCreate(PropertyDefinitionBase):
    pass


class PropertyDefinitionUpdate(PropertyDefinitionBase, VersionedUpdate):
    pass


class PropertyDefinitionRead(AuditableRead):
    entity_definition_id: uuid.UUID
    name: str
    display_name: str
    description: str
    data_type: DataType
    source_field: str
    is_required: bool
    is_unique: bool
    is_searchable: bool
    is_displayed: bool
    is_editable: bool
    sort_order: int
    default_value: str | None = None
    validation_rules: str | None = None
    ui_metadata: str
    entity_definition_name: str = ""
