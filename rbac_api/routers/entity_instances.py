"""Entity instance endpoints."""
import uuid

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from rbac_api.db import get_db
from rbac_api.models.enums import SyncStatus
from rbac_api.schemas.common import PagedResult
from rbac_api.schemas.entity_instance import EntityInstanceCreate, EntityInstanceRead, EntityInstanceUpdate
from rbac_api.services import entity_instances as service

from .paging import PageParams, page_params, paged, set_location

router = APIRouter(prefix="/api/entity-instances", tags=["entity-instances"])


@router.get("", response_model=PagedResult[EntityInstanceRead])
def list_entity_instances(
    paging: PageParams = Depends(page_params),
    search: str | None = Query(default=None),
    entity_definition_id: uuid.UUID | None = Query(default=None, alias="entityDefinitionId"),
    is_active: bool | None = Query(default=None, alias="isActive"),
    sync_status: SyncStatus | None = Query(default=None, alias="syncStatus"),
    include_deleted: bool = Query(default=False, alias="includeDeleted"),
    db: Session = Depends(get_db),
):
    """Page through instances ordered by display name; deleted ones only on request."""

    page = service.list_instances(
        db,
        page_number=paging.page_number,
        page_size=paging.page_size,
        search=search,
        entity_definition_id=entity_definition_id,
        is_active=is_active,
        sync_status=sync_status,
        include_deleted=include_deleted,
    )
    return paged(page)


@router.get("/{instance_id}", response_model=EntityInstanceRead, name="get_entity_instance")
def get_entity_instance(instance_id: uuid.UUID, db: Session = Depends(get_db)) -> EntityInstanceRead:
    return service.read_instance(db, instance_id)


@router.post("", response_model=EntityInstanceRead, status_code=status.HTTP_201_CREATED)
def create_entity_instance(
    payload: EntityInstanceCreate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> EntityInstanceRead:
    """Create an instance together with its property values."""

    created = service.create_instance(db, payload)
    set_location(request, response, "get_entity_instance", instance_id=created.id)
    return created


@router.put("/{instance_id}", response_model=EntityInstanceRead)
def update_entity_instance(
    instance_id: uuid.UUID, payload: EntityInstanceUpdate, db: Session = Depends(get_db)
) -> EntityInstanceRead:
    """Replace the instance and its property value collection."""

    return service.update_instance(db, instance_id, payload)


@router.delete("/{instance_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entity_instance(instance_id: uuid.UUID, db: Session = Depends(get_db)) -> Response:
    service.delete_instance(db, instance_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
