"""API routers for the RBAC integration service."""
from fastapi import APIRouter

from . import (
    access_assignments,
    access_rules,
    audit,
    entity_definitions,
    entity_instances,
    health,
    integration_systems,
    property_definitions,
    property_values,
    sync_logs,
)


def get_api_router() -> APIRouter:
    """Return the root API router."""

    api_router = APIRouter()
    api_router.include_router(health.router)
    api_router.include_router(integration_systems.router)
    api_router.include_router(entity_definitions.router)
    api_router.include_router(property_definitions.router)
    api_router.include_router(entity_instances.router)
    api_router.include_router(property_values.router)
    api_router.include_router(access_rules.router)
    api_router.include_router(access_assignments.router)
    api_router.include_router(sync_logs.router)
    api_router.include_router(audit.router)
    return api_router
