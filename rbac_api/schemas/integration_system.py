"""Integration system schemas."""
from datetime import datetime

from pydantic import EmailStr, Field

from rbac_api.models.enums import AuthenticationType, SyncStatus

from .common import ApiModel, AuditableRead, JsonText, NonBlankStr, VersionedUpdate


class IntegrationSystemBase(ApiModel):
    name: NonBlankStr = Field(max_length=100)
    display_name: str = Field(default="", max_length=200)
    description: str = Field(default="", max_length=1000)
    system_type: str = Field(default="", max_length=50)
    system_version: str = Field(default="", max_length=50)
    status: str = Field(default="Active", max_length=50)
    connection_string: str = Field(default="", max_length=1000)
    authentication_type: AuthenticationType = AuthenticationType.DATABASE
    is_active: bool = True
    configuration: JsonText = "{}"
    contact_person: str | None = Field(default=None, max_length=200)
    contact_email: EmailStr | None = None
    business_owner: str | None = Field(default=None, max_length=200)
    technical_owner: str | None = Field(default=None, max_length=200)
    environment: str | None = Field(default=None, max_length=50)
    location: str | None = Field(default=None, max_length=200)
    security_classification: str | None = Field(default=None, max_length=50)
    compliance_requirements: str | None = Field(default=None, max_length=500)
    tags: str | None = Field(default=None, max_length=500)


class IntegrationSystemCreate(IntegrationSystemBase):
    pass


class IntegrationSystemUpdate(IntegrationSystemBase, VersionedUpdate):
    pass


class IntegrationSystemRead(AuditableRead):
    name: str
    display_name: str
    description: str
    system_type: str
    system_version: str
    status: str
    connection_string: str
    authentication_type: AuthenticationType
    is_active: bool
    last_sync: datetime | None = None
    last_sync_status: SyncStatus | None = None
    configuration: str
    contact_person: str | None = None
    contact_email: str | None = None
    business_owner: str | None = None
    technical_owner: str | None = None
    environment: str | None = None
    location: str | None = None
    security_classification: str | None = None
    compliance_requirements: str | None = None
    tags: str | None = None
    entity_definition_count: int = 0
