"""Access assignment endpoints."""
import uuid

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from rbac_api.db import get_db
from rbac_api.models.enums import AssignmentType
from rbac_api.schemas.access import (
    AccessAssignmentCreate,
    AccessAssignmentRead,
    AccessAssignmentStatusUpdate,
    AccessAssignmentUpdate,
)
from rbac_api.schemas.common import EnumOption, PagedResult, enum_options
from rbac_api.services import access_assignments as service

from .paging import PageParams, page_params, paged, set_location

router = APIRouter(prefix="/api/access-assignments", tags=["access-assignments"])


@router.get("", response_model=PagedResult[AccessAssignmentRead])
def list_access_assignments(
    paging: PageParams = Depends(page_params),
    search: str | None = Query(default=None),
    user_id: uuid.UUID | None = Query(default=None, alias="userId"),
    role_id: uuid.UUID | None = Query(default=None, alias="roleId"),
    target_system_id: uuid.UUID | None = Query(default=None, alias="targetSystemId"),
    assignment_type: AssignmentType | None = Query(default=None, alias="assignmentType"),
    is_active: bool | None = Query(default=None, alias="isActive"),
    db: Session = Depends(get_db),
):
    page = service.list_assignments(
        db,
        page_number=paging.page_number,
        page_size=paging.page_size,
        search=search,
        user_id=user_id,
        role_id=role_id,
        target_system_id=target_system_id,
        assignment_type=assignment_type,
        is_active=is_active,
    )
    return paged(page)


@router.get("/assignment-types", response_model=list[EnumOption])
def list_assignment_types() -> list[EnumOption]:
    return enum_options(AssignmentType)


@router.get("/user/{user_id}", response_model=list[AccessAssignmentRead])
def list_user_assignments(
    user_id: uuid.UUID,
    include_inactive: bool = Query(default=False, alias="includeInactive"),
    db: Session = Depends(get_db),
) -> list[AccessAssignmentRead]:
    return service.assignments_for(db, user_id=user_id, include_inactive=include_inactive)


@router.get("/system/{target_system_id}", response_model=list[AccessAssignmentRead])
def list_system_assignments(
    target_system_id: uuid.UUID,
    include_inactive: bool = Query(default=False, alias="includeInactive"),
    db: Session = Depends(get_db),
) -> list[AccessAssignmentRead]:
    return service.assignments_for(db, target_system_id=target_system_id, include_inactive=include_inactive)


@router.get("/{assignment_id}", response_model=AccessAssignmentRead, name="get_access_assignment")
def get_access_assignment(assignment_id: uuid.UUID, db: Session = Depends(get_db)) -> AccessAssignmentRead:
    return service.read_assignment(db, assignment_id)


@router.post("", response_model=AccessAssignmentRead, status_code=status.HTTP_201_CREATED)
def create_access_assignment(
    payload: AccessAssignmentCreate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> AccessAssignmentRead:
    """Grant a role to a user in a target system."""

    created = service.create_assignment(db, payload)
    set_location(request, response, "get_access_assignment", assignment_id=created.id)
    return created


@router.put("/{assignment_id}", response_model=AccessAssignmentRead)
def update_access_assignment(
    assignment_id: uuid.UUID, payload: AccessAssignmentUpdate, db: Session = Depends(get_db)
) -> AccessAssignmentRead:
    return service.update_assignment(db, assignment_id, payload)


@router.patch("/{assignment_id}/status", response_model=AccessAssignmentRead)
def update_access_assignment_status(
    assignment_id: uuid.UUID, payload: AccessAssignmentStatusUpdate, db: Session = Depends(get_db)
) -> AccessAssignmentRead:
    return service.set_assignment_status(db, assignment_id, payload)


@router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_access_assignment(assignment_id: uuid.UUID, db: Session = Depends(get_db)) -> Response:
    service.delete_assignment(db, assignment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
