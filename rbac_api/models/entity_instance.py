"""Entity instance and property value models (the EAV instance store)."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from .base import LIVE_ROWS_POSTGRES, LIVE_ROWS_SQLITE, AuditableMixin, Base, string_enum
from .enums import SyncStatus


class EntityInstance(AuditableMixin, Base):
    """One synchronised record, e.g. the HR user with external id ``EMP001``."""

    __tablename__ = "entity_instances"
    __table_args__ = (
        Index(
            "uq_entity_instances_definition_external_id",
            "entity_definition_id",
            "external_id",
            unique=True,
            sqlite_where=text(LIVE_ROWS_SQLITE),
            postgresql_where=text(LIVE_ROWS_POSTGRES),
        ),
        Index("ix_entity_instances_display_name", "display_name"),
    )

    entity_definition_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("entity_definitions.id"), nullable=False, index=True
    )
    external_id: Mapped[str] = mapped_column(String(200), nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    sync_status: Mapped[SyncStatus | None] = mapped_column(
        string_enum(SyncStatus, "sync_status"), nullable=True
    )
    raw_data: Mapped[str] = mapped_column(Text, nullable=False, default="{}")


class PropertyValue(AuditableMixin, Base):
    """String-encoded value of one property definition for one instance."""

    __tablename__ = "property_values"
    __table_args__ = (
        Index(
            "uq_property_values_instance_property",
            "entity_instance_id",
            "property_definition_id",
            unique=True,
            sqlite_where=text(LIVE_ROWS_SQLITE),
            postgresql_where=text(LIVE_ROWS_POSTGRES),
        ),
    )

    entity_instance_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("entity_instances.id"), nullable=False, index=True
    )
    property_definition_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("property_definitions.id"), nullable=False, index=True
    )
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    display_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    effective_from: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    effective_to: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
