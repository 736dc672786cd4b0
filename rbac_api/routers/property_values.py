"""Property value endpoints."""
import uuid

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from rbac_api.db import get_db
from rbac_api.schemas.common import PagedResult
from rbac_api.schemas.entity_instance import PropertyValueCreate, PropertyValueRead, PropertyValueUpdate
from rbac_api.services import property_values as service

from .paging import PageParams, page_params, paged, set_location

router = APIRouter(prefix="/api/property-values", tags=["property-values"])


@router.get("", response_model=PagedResult[PropertyValueRead])
def list_property_values(
    paging: PageParams = Depends(page_params),
    search: str | None = Query(default=None),
    entity_instance_id: uuid.UUID | None = Query(default=None, alias="entityInstanceId"),
    property_definition_id: uuid.UUID | None = Query(default=None, alias="propertyDefinitionId"),
    is_default: bool | None = Query(default=None, alias="isDefault"),
    db: Session = Depends(get_db),
):
    page = service.list_values(
        db,
        page_number=paging.page_number,
        page_size=paging.page_size,
        search=search,
        entity_instance_id=entity_instance_id,
        property_definition_id=property_definition_id,
        is_default=is_default,
    )
    return paged(page)


@router.get("/entity-instance/{instance_id}", response_model=list[PropertyValueRead])
def list_instance_values(instance_id: uuid.UUID, db: Session = Depends(get_db)) -> list[PropertyValueRead]:
    return service.values_of_instance(db, instance_id)


@router.get("/{value_id}", response_model=PropertyValueRead, name="get_property_value")
def get_property_value(value_id: uuid.UUID, db: Session = Depends(get_db)) -> PropertyValueRead:
    return service.read_value(db, value_id)


@router.post("", response_model=PropertyValueRead, status_code=status.HTTP_201_CREATED)
def create_property_value(
    payload: PropertyValueCreate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> PropertyValueRead:
    created = service.create_value(db, payload)
    set_location(request, response, "get_property_value", value_id=created.id)
    return created


@router.put("/{value_id}", response_model=PropertyValueRead)
def update_property_value(
    value_id: uuid.UUID, payload: PropertyValueUpdate, db: Session = Depends(get_db)
) -> PropertyValueRead:
    return service.update_value(db, value_id, payload)


@router.patch("/{value_id}/expire", response_model=PropertyValueRead)
def expire_property_value(value_id: uuid.UUID, db: Session = Depends(get_db)) -> PropertyValueRead:
    """End the value's validity now."""

    return service.expire_value(db, value_id)


@router.delete("/{value_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_property_value(value_id: uuid.UUID, db: Session = Depends(get_db)) -> Response:
    service.delete_value(db, value_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
