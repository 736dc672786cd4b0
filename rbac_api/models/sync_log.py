"""Synchronisation run log model."""
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import AuditableMixin, Base, _utcnow, string_enum
from .enums import SyncStatus


class SyncLog(AuditableMixin, Base):
    """Outcome of one synchronisation run against an integration system."""

    __tablename__ = "sync_logs"

    integration_system_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("integration_systems.id"), nullable=False, index=True
    )
    operation: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[SyncStatus] = mapped_column(
        string_enum(SyncStatus, "sync_status"), nullable=False, default=SyncStatus.PENDING
    )
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    successful_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    details: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
