"""Integration system model."""
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from .base import LIVE_ROWS_POSTGRES, LIVE_ROWS_SQLITE, AuditableMixin, Base, string_enum
from .enums import AuthenticationType, SyncStatus


class IntegrationSystem(AuditableMixin, Base):
    """An external system (HR, EMR, CRM...) whose records are synchronised."""

    __tablename__ = "integration_systems"
    __table_args__ = (
        Index(
            "uq_integration_systems_name",
            "name",
            unique=True,
            sqlite_where=text(LIVE_ROWS_SQLITE),
            postgresql_where=text(LIVE_ROWS_POSTGRES),
        ),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    description: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    system_type: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    system_version: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="Active")
    connection_string: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    authentication_type: Mapped[AuthenticationType] = mapped_column(
        string_enum(AuthenticationType, "authentication_type"),
        nullable=False,
        default=AuthenticationType.DATABASE,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_sync: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_sync_status: Mapped[SyncStatus | None] = mapped_column(
        string_enum(SyncStatus, "sync_status"), nullable=True
    )
    configuration: Mapped[str] = mapped_column(Text, nullable=False, default="{}")

    contact_person: Mapped[str | None] = mapped_column(String(200), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    business_owner: Mapped[str | None] = mapped_column(String(200), nullable=True)
    technical_owner: Mapped[str | None] = mapped_column(String(200), nullable=True)
    environment: Mapped[str | None] = mapped_column(String(50), nullable=True)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    security_classification: Mapped[str | None] = mapped_column(String(50), nullable=True)
    compliance_requirements: Mapped[str | None] = mapped_column(String(500), nullable=True)
    tags: Mapped[str | None] = mapped_column(String(500), nullable=True)
