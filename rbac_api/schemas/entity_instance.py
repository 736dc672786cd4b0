"""Entity instance and property value schemas."""
import uuid
from datetime import datetime

from pydantic import Field, model_validator

from rbac_api.models.enums import DataType, SyncStatus
from rbac_api.utils.time import ensure_utc

from .common import ApiModel, AuditableRead, JsonText, NonBlankStr, VersionedUpdate


class PropertyValueFields(ApiModel):
    property_definition_id: uuid.UUID
    value: str = ""
    display_value: str | None = None
    is_default: bool = False
    effective_from: datetime | None = None
    effective_to: datetime | None = None

    @model_validator(mode="after")
    def _check_effective_window(self):
        if self.effective_from and self.effective_to and ensure_utc(self.effective_from) > ensure_utc(self.effective_to):
            raise ValueError("effectiveFrom must not be later than effectiveTo")
        return self


class PropertyValueInput(PropertyValueFields):
    """A value supplied inline with an instance create."""


class PropertyValueUpsert(PropertyValueFields):
    """A value supplied inline with an instance update; ``id`` is null for new values."""

    id: uuid.UUID | None = None


class PropertyValueCreate(PropertyValueFields):
    entity_instance_id: uuid.UUID


class PropertyValueUpdate(PropertyValueFields, VersionedUpdate):
    pass


class PropertyValueRead(AuditableRead):
    entity_instance_id: uuid.UUID
    property_definition_id: uuid.UUID
    value: str
    display_value: str | None = None
    is_default: bool
    effective_from: datetime | None = None
    effective_to: datetime | None = None
    entity_instance_display_name: str = ""
    property_definition_name: str = ""
    property_data_type: DataType | None = None
    entity_definition_name: str = ""


class EntityInstanceBase(ApiModel):
    entity_definition_id: uuid.UUID
    external_id: NonBlankStr = Field(max_length=200)
    display_name: str = Field(default="", max_length=200)
    is_active: bool = True
    raw_data: JsonText = "{}"


class EntityInstanceCreate(EntityInstanceBase):
    property_values: list[PropertyValueInput] = Field(default_factory=list)


class EntityInstanceUpdate(EntityInstanceBase, VersionedUpdate):
    property_values: list[PropertyValueUpsert] = Field(default_factory=list)


class EntityInstanceRead(AuditableRead):
    entity_definition_id: uuid.UUID
    external_id: str
    display_name: str
    is_active: bool
    last_synced_at: datetime | None = None
    sync_status: SyncStatus | None = None
    raw_data: str
    entity_definition_name: str = ""
    property_values: list[PropertyValueRead] = Field(default_factory=list)
