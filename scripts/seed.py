"""Seed a demo catalog: an HR system with users, roles and one assignment."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from rbac_api import db
from rbac_api.config import get_settings
from rbac_api.core.logging import setup_logging
from rbac_api.models import DataType
from rbac_api.schemas.access import AccessAssignmentCreate
from rbac_api.schemas.entity_definition import EntityDefinitionCreate, PropertyDefinitionCreate
from rbac_api.schemas.entity_instance import EntityInstanceCreate, PropertyValueInput
from rbac_api.schemas.integration_system import IntegrationSystemCreate
from rbac_api.services import (
    access_assignments,
    entity_definitions,
    entity_instances,
    integration_systems,
    property_definitions,
)

logger = logging.getLogger(__name__)


def seed_demo_data(session: Session) -> dict[str, str]:
    """Create the demo records and return their ids keyed by a short label."""

    system = integration_systems.create_system(
        session,
        IntegrationSystemCreate(name="HR_System", display_name="Human Resources", system_type="HRIS"),
    )
    users = entity_definitions.create_definition(
        session, EntityDefinitionCreate(integration_system_id=system.id, name="User", display_name="Employee")
    )
    roles = entity_definitions.create_definition(
        session, EntityDefinitionCreate(integration_system_id=system.id, name="Role", display_name="Role")
    )
    email = property_definitions.create_property_definition(
        session,
        PropertyDefinitionCreate(
            entity_definition_id=users.id, name="Email", data_type=DataType.EMAIL, is_required=True
        ),
    )
    department = property_definitions.create_property_definition(
        session, PropertyDefinitionCreate(entity_definition_id=users.id, name="Department", default_value="General")
    )

    employee = entity_instances.create_instance(
        session,
        EntityInstanceCreate(
            entity_definition_id=users.id,
            external_id="EMP001",
            display_name="John Doe",
            property_values=[PropertyValueInput(property_definition_id=email.id, value="john.doe@contoso.com")],
        ),
    )
    admin = entity_instances.create_instance(
        session,
        EntityInstanceCreate(entity_definition_id=roles.id, external_id="ROLE_ADMIN", display_name="Administrator"),
    )
    assignment = access_assignments.create_assignment(
        session,
        AccessAssignmentCreate(
            user_id=employee.id, role_id=admin.id, target_system_id=system.id, assignment_reason="Demo seed"
        ),
    )
    return {
        "system": str(system.id),
        "user_definition": str(users.id),
        "role_definition": str(roles.id),
        "department_property": str(department.id),
        "employee": str(employee.id),
        "role": str(admin.id),
        "assignment": str(assignment.id),
    }


def main() -> None:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    logger.info("Seeding database", extra={"in_memory": settings.uses_in_memory_database})

    db.init_engine()
    db.create_all()
    try:
        with db.session_scope() as session:
            ids = seed_demo_data(session)
        logger.info("Seed data inserted", extra=ids)
    finally:
        db.close_engine()


if __name__ == "__main__":
    main()
