"""Property definition endpoints."""
import uuid

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from rbac_api.db import get_db
from rbac_api.models.enums import DataType
from rbac_api.schemas.common import EnumOption, PagedResult, enum_options
from rbac_api.schemas.entity_definition import (
    PropertyDefinitionCreate,
    PropertyDefinitionRead,
    PropertyDefinitionUpdate,
)
from rbac_api.services import property_definitions as service

from .paging import PageParams, page_params, paged, set_location

router = APIRouter(prefix="/api/property-definitions", tags=["property-definitions"])


@router.get("", response_model=PagedResult[PropertyDefinitionRead])
def list_property_definitions(
    paging: PageParams = Depends(page_params),
    search: str | None = Query(default=None),
    entity_definition_id: uuid.UUID | None = Query(default=None, alias="entityDefinitionId"),
    data_type: DataType | None = Query(default=None, alias="dataType"),
    db: Session = Depends(get_db),
):
    page = service.list_property_definitions(
        db,
        page_number=paging.page_number,
        page_size=paging.page_size,
        search=search,
        entity_definition_id=entity_definition_id,
        data_type=data_type,
    )
    return paged(page)


@router.get("/data-types", response_model=list[EnumOption])
def list_data_types() -> list[EnumOption]:
    return enum_options(DataType)


@router.get("/{property_definition_id}", response_model=PropertyDefinitionRead, name="get_property_definition")
def get_property_definition(property_definition_id: uuid.UUID, db: Session = Depends(get_db)) -> PropertyDefinitionRead:
    return service.read_property_definition(db, property_definition_id)


@router.post("", response_model=PropertyDefinitionRead, status_code=status.HTTP_201_CREATED)
def create_property_definition(
    payload: PropertyDefinitionCreate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> PropertyDefinitionRead:
    created = service.create_property_definition(db, payload)
    set_location(request, response, "get_property_definition", property_definition_id=created.id)
    return created


@router.put("/{property_definition_id}", response_model=PropertyDefinitionRead)
def update_property_definition(
    property_definition_id: uuid.UUID, payload: PropertyDefinitionUpdate, db: Session = Depends(get_db)
) -> PropertyDefinitionRead:
    return service.update_property_definition(db, property_definition_id, payload)


@router.delete("/{property_definition_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_property_definition(property_definition_id: uuid.UUID, db: Session = Depends(get_db)) -> Response:
    service.delete_property_definition(db, property_definition_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
