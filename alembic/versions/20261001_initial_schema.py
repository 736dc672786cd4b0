"""Initial schema: catalog, instance store, access, audit and sync tables.

Revision ID: 20261001_initial
Revises:
Create Date: 2026-10-01 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261001_initial"
down_revision = None
branch_labels = None
depends_on = None

LIVE_ROWS_SQLITE = sa.text("is_deleted = 0")
LIVE_ROWS_POSTGRES = sa.text("is_deleted = false")


def _enum() -> sa.String:
    # Enums are stored by value in VARCHAR columns.
    return sa.String(length=32)


def _auditable_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_by", sa.String(length=100), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_by", sa.String(length=100), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by", sa.String(length=100), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("row_stamp", sa.String(length=32), nullable=False),
        sa.Column("last_modified_reason", sa.String(length=500), nullable=True),
    ]


def _live_unique_index(name: str, table: str, columns: list[str]) -> None:
    op.create_index(
        name,
        table,
        columns,
        unique=True,
        sqlite_where=LIVE_ROWS_SQLITE,
        postgresql_where=LIVE_ROWS_POSTGRES,
    )


def upgrade() -> None:
    op.create_table(
        "integration_systems",
        *_auditable_columns(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("display_name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=False),
        sa.Column("system_type", sa.String(length=50), nullable=False),
        sa.Column("system_version", sa.String(length=50), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("connection_string", sa.String(length=1000), nullable=False),
        sa.Column("authentication_type", _enum(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_sync", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_sync_status", _enum(), nullable=True),
        sa.Column("configuration", sa.Text(), nullable=False),
        sa.Column("contact_person", sa.String(length=200), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("business_owner", sa.String(length=200), nullable=True),
        sa.Column("technical_owner", sa.String(length=200), nullable=True),
        sa.Column("environment", sa.String(length=50), nullable=True),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("security_classification", sa.String(length=50), nullable=True),
        sa.Column("compliance_requirements", sa.String(length=500), nullable=True),
        sa.Column("tags", sa.String(length=500), nullable=True),
    )
    op.create_index("ix_integration_systems_is_deleted", "integration_systems", ["is_deleted"])
    _live_unique_index("uq_integration_systems_name", "integration_systems", ["name"])

    op.create_table(
        "entity_definitions",
        *_auditable_columns(),
        sa.Column(
            "integration_system_id", sa.Uuid(), sa.ForeignKey("integration_systems.id"), nullable=False
        ),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("display_name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=False),
        sa.Column("table_name", sa.String(length=200), nullable=False),
        sa.Column("primary_key_field", sa.String(length=100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("metadata", sa.Text(), nullable=False),
    )
    op.create_index("ix_entity_definitions_is_deleted", "entity_definitions", ["is_deleted"])
    op.create_index(
        "ix_entity_definitions_integration_system_id", "entity_definitions", ["integration_system_id"]
    )
    _live_unique_index(
        "uq_entity_definitions_system_name", "entity_definitions", ["integration_system_id", "name"]
    )

    op.create_table(
        "property_definitions",
        *_auditable_columns(),
        sa.Column(
            "entity_definition_id", sa.Uuid(), sa.ForeignKey("entity_definitions.id"), nullable=False
        ),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("display_name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=False),
        sa.Column("data_type", _enum(), nullable=False),
        sa.Column("source_field", sa.String(length=200), nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False),
        sa.Column("is_unique", sa.Boolean(), nullable=False),
        sa.Column("is_searchable", sa.Boolean(), nullable=False),
        sa.Column("is_displayed", sa.Boolean(), nullable=False),
        sa.Column("is_editable", sa.Boolean(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("default_value", sa.String(length=1000), nullable=True),
        sa.Column("validation_rules", sa.Text(), nullable=True),
        sa.Column("ui_metadata", sa.Text(), nullable=False),
    )
    op.create_index("ix_property_definitions_is_deleted", "property_definitions", ["is_deleted"])
    op.create_index(
        "ix_property_definitions_entity_definition_id", "property_definitions", ["entity_definition_id"]
    )
    _live_unique_index(
        "uq_property_definitions_definition_name", "property_definitions", ["entity_definition_id", "name"]
    )

    op.create_table(
        "entity_instances",
        *_auditable_columns(),
        sa.Column(
            "entity_definition_id", sa.Uuid(), sa.ForeignKey("entity_definitions.id"), nullable=False
        ),
        sa.Column("external_id", sa.String(length=200), nullable=False),
        sa.Column("display_name", sa.String(length=200), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sync_status", _enum(), nullable=True),
        sa.Column("raw_data", sa.Text(), nullable=False),
    )
    op.create_index("ix_entity_instances_is_deleted", "entity_instances", ["is_deleted"])
    op.create_index("ix_entity_instances_entity_definition_id", "entity_instances", ["entity_definition_id"])
    op.create_index("ix_entity_instances_display_name", "entity_instances", ["display_name"])
    _live_unique_index(
        "uq_entity_instances_definition_external_id",
        "entity_instances",
        ["entity_definition_id", "external_id"],
    )

    op.create_table(
        "property_values",
        *_auditable_columns(),
        sa.Column("entity_instance_id", sa.Uuid(), sa.ForeignKey("entity_instances.id"), nullable=False),
        sa.Column(
            "property_definition_id", sa.Uuid(), sa.ForeignKey("property_definitions.id"), nullable=False
        ),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("display_value", sa.Text(), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("effective_from", sa.DateTime(timezone=True), nullable=True),
        sa.Column("effective_to", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_property_values_is_deleted", "property_values", ["is_deleted"])
    op.create_index("ix_property_values_entity_instance_id", "property_values", ["entity_instance_id"])
    op.create_index("ix_property_values_property_definition_id", "property_values", ["property_definition_id"])
    _live_unique_index(
        "uq_property_values_instance_property",
        "property_values",
        ["entity_instance_id", "property_definition_id"],
    )

    op.create_table(
        "access_rules",
        *_auditable_columns(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=False),
        sa.Column("integration_system_id", sa.Uuid(), sa.ForeignKey("integration_systems.id"), nullable=True),
        sa.Column("trigger_type", _enum(), nullable=False),
        sa.Column("trigger_condition", sa.Text(), nullable=False),
        sa.Column("action_type", _enum(), nullable=False),
        sa.Column("action_configuration", sa.Text(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_executed", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_execution_result", sa.Text(), nullable=True),
    )
    op.create_index("ix_access_rules_is_deleted", "access_rules", ["is_deleted"])
    op.create_index("ix_access_rules_integration_system_id", "access_rules", ["integration_system_id"])
    _live_unique_index("uq_access_rules_name", "access_rules", ["name"])

    op.create_table(
        "access_assignments",
        *_auditable_columns(),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("entity_instances.id"), nullable=False),
        sa.Column("role_id", sa.Uuid(), sa.ForeignKey("entity_instances.id"), nullable=False),
        sa.Column("target_system_id", sa.Uuid(), sa.ForeignKey("integration_systems.id"), nullable=False),
        sa.Column("assignment_type", _enum(), nullable=False),
        sa.Column("assignment_reason", sa.String(length=1000), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("effective_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("effective_to", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.String(length=100), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", sa.Text(), nullable=False),
    )
    op.create_index("ix_access_assignments_is_deleted", "access_assignments", ["is_deleted"])
    op.create_index("ix_access_assignments_user_id", "access_assignments", ["user_id"])
    op.create_index("ix_access_assignments_role_id", "access_assignments", ["role_id"])
    op.create_index("ix_access_assignments_target_system_id", "access_assignments", ["target_system_id"])
    op.create_index(
        "ix_access_assignments_user_role_system",
        "access_assignments",
        ["user_id", "role_id", "target_system_id"],
    )

    op.create_table(
        "access_assignment_rules",
        sa.Column(
            "access_assignment_id", sa.Uuid(), sa.ForeignKey("access_assignments.id"), primary_key=True
        ),
        sa.Column("access_rule_id", sa.Uuid(), sa.ForeignKey("access_rules.id"), primary_key=True),
    )

    op.create_table(
        "sync_logs",
        *_auditable_columns(),
        sa.Column("integration_system_id", sa.Uuid(), sa.ForeignKey("integration_systems.id"), nullable=False),
        sa.Column("operation", sa.String(length=50), nullable=False),
        sa.Column("status", _enum(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_records", sa.Integer(), nullable=False),
        sa.Column("processed_records", sa.Integer(), nullable=False),
        sa.Column("successful_records", sa.Integer(), nullable=False),
        sa.Column("failed_records", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("details", sa.Text(), nullable=False),
    )
    op.create_index("ix_sync_logs_is_deleted", "sync_logs", ["is_deleted"])
    op.create_index("ix_sync_logs_integration_system_id", "sync_logs", ["integration_system_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.String(length=100), nullable=False),
        sa.Column("action", _enum(), nullable=False),
        sa.Column("old_values", sa.JSON(), nullable=True),
        sa.Column("new_values", sa.JSON(), nullable=True),
        sa.Column("user_id", sa.String(length=100), nullable=False),
        sa.Column("user_name", sa.String(length=200), nullable=True),
        sa.Column("justification", sa.Text(), nullable=True),
        sa.Column("correlation_id", sa.String(length=100), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("request_path", sa.String(length=500), nullable=True),
        sa.Column("request_method", sa.String(length=10), nullable=True),
        sa.Column("response_status_code", sa.Integer(), nullable=True),
        sa.Column("execution_time_ms", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.String(length=100), nullable=False),
    )
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_correlation_id", "audit_logs", ["correlation_id"])


def downgrade() -> None:
    for table in (
        "audit_logs",
        "sync_logs",
        "access_assignment_rules",
        "access_assignments",
        "access_rules",
        "property_values",
        "entity_instances",
        "property_definitions",
        "entity_definitions",
        "integration_systems",
    ):
        op.drop_table(table)
