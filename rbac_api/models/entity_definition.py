"""Entity and property definition models (the schema catalog)."""
import uuid

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from .base import LIVE_ROWS_POSTGRES, LIVE_ROWS_SQLITE, AuditableMixin, Base, string_enum
from .enums import DataType


class EntityDefinition(AuditableMixin, Base):
    """Schema of one record type exposed by an integration system (User, Role...)."""

    __tablename__ = "entity_definitions"
    __table_args__ = (
        Index(
            "uq_entity_definitions_system_name",
            "integration_system_id",
            "name",
            unique=True,
            sqlite_where=text(LIVE_ROWS_SQLITE),
            postgresql_where=text(LIVE_ROWS_POSTGRES),
        ),
    )

    integration_system_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("integration_systems.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    description: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    table_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    primary_key_field: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # ``metadata`` is reserved on declarative classes.
    metadata_json: Mapped[str] = mapped_column("metadata", Text, nullable=False, default="{}")


class PropertyDefinition(AuditableMixin, Base):
    """Schema of one field of an entity definition (Email, Department...)."""

    __tablename__ = "property_definitions"
    __table_args__ = (
        Index(
            "uq_property_definitions_definition_name",
            "entity_definition_id",
            "name",
            unique=True,
            sqlite_where=text(LIVE_ROWS_SQLITE),
            postgresql_where=text(LIVE_ROWS_POSTGRES),
        ),
    )

    entity_definition_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("entity_definitions.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    description: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    data_type: Mapped[DataType] = mapped_column(
        string_enum(DataType, "data_type"), nullable=False, default=DataType.STRING
    )
    source_field: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_unique: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_searchable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_displayed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_editable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    default_value: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    validation_rules: Mapped[str | None] = mapped_column(Text, nullable=True)
    ui_metadata: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
