"""Integration system endpoints."""
import uuid

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from rbac_api.db import get_db
from rbac_api.models.enums import AuthenticationType
from rbac_api.schemas.common import EnumOption, PagedResult, enum_options
from rbac_api.schemas.integration_system import (
    IntegrationSystemCreate,
    IntegrationSystemRead,
    IntegrationSystemUpdate,
)
from rbac_api.services import integration_systems as service

from .paging import PageParams, page_params, paged, set_location

router = APIRouter(prefix="/api/integration-systems", tags=["integration-systems"])


@router.get("", response_model=PagedResult[IntegrationSystemRead])
def list_integration_systems(
    paging: PageParams = Depends(page_params),
    search: str | None = Query(default=None),
    is_active: bool | None = Query(default=None, alias="isActive"),
    db: Session = Depends(get_db),
):
    page = service.list_systems(
        db, page_number=paging.page_number, page_size=paging.page_size, search=search, is_active=is_active
    )
    return paged(page)


@router.get("/authentication-types", response_model=list[EnumOption])
def list_authentication_types() -> list[EnumOption]:
    return enum_options(AuthenticationType)


@router.get("/{system_id}", response_model=IntegrationSystemRead, name="get_integration_system")
def get_integration_system(system_id: uuid.UUID, db: Session = Depends(get_db)) -> IntegrationSystemRead:
    return service.read_system(db, system_id)


@router.post("", response_model=IntegrationSystemRead, status_code=status.HTTP_201_CREATED)
def create_integration_system(
    payload: IntegrationSystemCreate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> IntegrationSystemRead:
    """Register an external system."""

    created = service.create_system(db, payload)
    set_location(request, response, "get_integration_system", system_id=created.id)
    return created


@router.put("/{system_id}", response_model=IntegrationSystemRead)
def update_integration_system(
    system_id: uuid.UUID, payload: IntegrationSystemUpdate, db: Session = Depends(get_db)
) -> IntegrationSystemRead:
    return service.update_system(db, system_id, payload)


@router.delete("/{system_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_integration_system(system_id: uuid.UUID, db: Session = Depends(get_db)) -> Response:
    service.delete_system(db, system_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
