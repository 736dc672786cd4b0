"""Access rule and access assignment schemas."""
import uuid
from datetime import datetime

from pydantic import Field, model_validator

from rbac_api.models.enums import ActionType, AssignmentType, TriggerType
from rbac_api.utils.time import ensure_utc, utcnow

from .common import ApiModel, AuditableRead, JsonText, NonBlankStr, VersionedUpdate


class AccessRuleBase(ApiModel):
    name: NonBlankStr = Field(max_length=200)
    description: str = Field(default="", max_length=1000)
    integration_system_id: uuid.UUID | None = None
    trigger_type: TriggerType = TriggerType.MANUAL
    trigger_condition: str = ""
    action_type: ActionType = ActionType.ASSIGN_ROLE
    action_configuration: str = ""
    priority: int = 0
    is_active: bool = True


class AccessRuleCreate(AccessRuleBase):
    pass


class AccessRuleUpdate(AccessRuleBase, VersionedUpdate):
    pass


class AccessRuleRead(AuditableRead):
    name: str
    description: str
    integration_system_id: uuid.UUID | None = None
    trigger_type: TriggerType
    trigger_condition: str
    action_type: ActionType
    action_configuration: str
    priority: int
    is_active: bool
    last_executed: datetime | None = None
    last_execution_result: str | None = None
    integration_system_name: str | None = None


class AccessAssignmentBase(ApiModel):
    user_id: uuid.UUID
    role_id: uuid.UUID
    target_system_id: uuid.UUID
    assignment_type: AssignmentType = AssignmentType.DIRECT
    assignment_reason: str | None = Field(default=None, max_length=1000)
    is_active: bool = True
    effective_from: datetime = Field(default_factory=utcnow)
    effective_to: datetime | None = None
    approved_by: str | None = Field(default=None, max_length=100)
    approved_at: datetime | None = None
    metadata: JsonText = "{}"
    access_rule_ids: list[uuid.UUID] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_effective_window(self):
        if self.effective_to and ensure_utc(self.effective_from) > ensure_utc(self.effective_to):
            raise ValueError("effectiveFrom must not be later than effectiveTo")
        return self


class AccessAssignmentCreate(AccessAssignmentBase):
    pass


class AccessAssignmentUpdate(AccessAssignmentBase, VersionedUpdate):
    pass


class AccessAssignmentStatusUpdate(ApiModel):
    is_active: bool
    version: int = Field(ge=1)
    last_modified_reason: str | None = Field(default=None, max_length=500)


class AccessAssignmentRead(AuditableRead):
    user_id: uuid.UUID
    role_id: uuid.UUID
    target_system_id: uuid.UUID
    assignment_type: AssignmentType
    assignment_reason: str | None = None
    is_active: bool
    effective_from: datetime
    effective_to: datetime | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    metadata: str
    access_rule_ids: list[uuid.UUID] = Field(default_factory=list)
    user_display_name: str = ""
    role_display_name: str = ""
    target_system_name: str = ""
