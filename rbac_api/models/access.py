"""Access rule and access assignment models."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Table, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from .base import LIVE_ROWS_POSTGRES, LIVE_ROWS_SQLITE, AuditableMixin, Base, _utcnow, string_enum
from .enums import ActionType, AssignmentType, TriggerType

access_assignment_rules = Table(
    "access_assignment_rules",
    Base.metadata,
    Column("access_assignment_id", ForeignKey("access_assignments.id"), primary_key=True),
    Column("access_rule_id", ForeignKey("access_rules.id"), primary_key=True),
)


class AccessRule(AuditableMixin, Base):
    """Declarative automation descriptor.

    Trigger and action fields are stored metadata only; nothing in this
    service evaluates them.
    """

    __tablename__ = "access_rules"
    __table_args__ = (
        Index(
            "uq_access_rules_name",
            "name",
            unique=True,
            sqlite_where=text(LIVE_ROWS_SQLITE),
            postgresql_where=text(LIVE_ROWS_POSTGRES),
        ),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    integration_system_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("integration_systems.id"), nullable=True, index=True
    )
    trigger_type: Mapped[TriggerType] = mapped_column(
        string_enum(TriggerType, "trigger_type"), nullable=False, default=TriggerType.MANUAL
    )
    trigger_condition: Mapped[str] = mapped_column(Text, nullable=False, default="")
    action_type: Mapped[ActionType] = mapped_column(
        string_enum(ActionType, "action_type"), nullable=False, default=ActionType.ASSIGN_ROLE
    )
    action_configuration: Mapped[str] = mapped_column(Text, nullable=False, default="")
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_executed: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_execution_result: Mapped[str | None] = mapped_column(Text, nullable=True)


class AccessAssignment(AuditableMixin, Base):
    """Grant of a role (entity instance) to a user (entity instance) in a target system."""

    __tablename__ = "access_assignments"
    __table_args__ = (
        Index("ix_access_assignments_user_role_system", "user_id", "role_id", "target_system_id"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("entity_instances.id"), nullable=False, index=True)
    role_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("entity_instances.id"), nullable=False, index=True)
    target_system_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("integration_systems.id"), nullable=False, index=True
    )
    assignment_type: Mapped[AssignmentType] = mapped_column(
        string_enum(AssignmentType, "assignment_type"), nullable=False, default=AssignmentType.DIRECT
    )
    assignment_reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    effective_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    effective_to: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    metadata_json: Mapped[str] = mapped_column("metadata", Text, nullable=False, default="{}")
