"""Entity definition endpoints."""
import uuid

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from rbac_api.db import get_db
from rbac_api.schemas.common import PagedResult
from rbac_api.schemas.entity_definition import (
    EntityDefinitionCreate,
    EntityDefinitionRead,
    EntityDefinitionUpdate,
    PropertyDefinitionRead,
)
from rbac_api.services import entity_definitions as service
from rbac_api.services.property_definitions import properties_of_definition

from .paging import PageParams, page_params, paged, set_location

router = APIRouter(prefix="/api/entity-definitions", tags=["entity-definitions"])


@router.get("", response_model=PagedResult[EntityDefinitionRead])
def list_entity_definitions(
    paging: PageParams = Depends(page_params),
    search: str | None = Query(default=None),
    integration_system_id: uuid.UUID | None = Query(default=None, alias="integrationSystemId"),
    is_active: bool | None = Query(default=None, alias="isActive"),
    db: Session = Depends(get_db),
):
    page = service.list_definitions(
        db,
        page_number=paging.page_number,
        page_size=paging.page_size,
        search=search,
        integration_system_id=integration_system_id,
        is_active=is_active,
    )
    return paged(page)


@router.get("/{definition_id}", response_model=EntityDefinitionRead, name="get_entity_definition")
def get_entity_definition(definition_id: uuid.UUID, db: Session = Depends(get_db)) -> EntityDefinitionRead:
    return service.read_definition(db, definition_id)


@router.get("/{definition_id}/property-definitions", response_model=list[PropertyDefinitionRead])
def list_definition_properties(definition_id: uuid.UUID, db: Session = Depends(get_db)) -> list[PropertyDefinitionRead]:
    """Property definitions of one entity definition, in display order."""

    return properties_of_definition(db, definition_id)


@router.post("", response_model=EntityDefinitionRead, status_code=status.HTTP_201_CREATED)
def create_entity_definition(
    payload: EntityDefinitionCreate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> EntityDefinitionRead:
    created = service.create_definition(db, payload)
    set_location(request, response, "get_entity_definition", definition_id=created.id)
    return created


@router.put("/{definition_id}", response_model=EntityDefinitionRead)
def update_entity_definition(
    definition_id: uuid.UUID, payload: EntityDefinitionUpdate, db: Session = Depends(get_db)
) -> EntityDefinitionRead:
    return service.update_definition(db, definition_id, payload)


@router.delete("/{definition_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entity_definition(definition_id: uuid.UUID, db: Session = Depends(get_db)) -> Response:
    """Soft delete the definition and everything defined under it."""

    service.delete_definition(db, definition_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
