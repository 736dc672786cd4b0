"""Synchronisation log schemas."""
import uuid
from datetime import datetime

from pydantic import Field, model_validator

from rbac_api.models.enums import SyncStatus
from rbac_api.utils.time import utcnow

from .common import ApiModel, AuditableRead, JsonText, NonBlankStr, VersionedUpdate


class SyncCounters(ApiModel):
    total_records: int = Field(default=0, ge=0)
    processed_records: int = Field(default=0, ge=0)
    successful_records: int = Field(default=0, ge=0)
    failed_records: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_counters(self):
        if self.successful_records + self.failed_records > self.processed_records:
            raise ValueError("successfulRecords + failedRecords cannot exceed processedRecords")
        return self


class SyncLogCreate(ApiModel):
    integration_system_id: uuid.UUID
    operation: NonBlankStr = Field(max_length=50)
    status: SyncStatus = SyncStatus.PENDING
    started_at: datetime = Field(default_factory=utcnow)
    total_records: int = Field(default=0, ge=0)
    details: JsonText = "{}"


class SyncLogUpdate(SyncCounters, VersionedUpdate):
    status: SyncStatus
    completed_at: datetime | None = None
    error_message: str | None = None
    details: JsonText = "{}"


class SyncLogComplete(SyncCounters):
    """Final outcome of a run; ``status`` must be a terminal one."""

    status: SyncStatus = SyncStatus.SUCCESS
    error_message: str | None = None
    details: JsonText | None = None
    version: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _check_terminal(self):
        if self.status in (SyncStatus.PENDING, SyncStatus.IN_PROGRESS):
            raise ValueError("status must be Success, Failed or Cancelled")
        return self


class SyncLogRead(AuditableRead):
    integration_system_id: uuid.UUID
    operation: str
    status: SyncStatus
    started_at: datetime
    completed_at: datetime | None = None
    total_records: int
    processed_records: int
    successful_records: int
    failed_records: int
    error_message: str | None = None
    details: str
    integration_system_name: str = ""
    duration_seconds: float | None = None
    success_rate: float = 0.0


class SyncLogSummary(ApiModel):
    integration_system_id: uuid.UUID
    integration_system_name: str
    total_syncs: int
    successful_syncs: int
    failed_syncs: int
    last_sync_date: datetime | None = None
    last_sync_status: SyncStatus | None = None
    success_rate: float
