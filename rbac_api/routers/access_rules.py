"""Access rule endpoints. Rules are stored descriptors; nothing here executes them."""
import uuid

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from rbac_api.db import get_db
from rbac_api.models.enums import ActionType, TriggerType
from rbac_api.schemas.access import AccessRuleCreate, AccessRuleRead, AccessRuleUpdate
from rbac_api.schemas.common import EnumOption, PagedResult, enum_options
from rbac_api.services import access_rules as service

from .paging import PageParams, page_params, paged, set_location

router = APIRouter(prefix="/api/access-rules", tags=["access-rules"])


@router.get("", response_model=PagedResult[AccessRuleRead])
def list_access_rules(
    paging: PageParams = Depends(page_params),
    search: str | None = Query(default=None),
    integration_system_id: uuid.UUID | None = Query(default=None, alias="integrationSystemId"),
    trigger_type: TriggerType | None = Query(default=None, alias="triggerType"),
    action_type: ActionType | None = Query(default=None, alias="actionType"),
    is_active: bool | None = Query(default=None, alias="isActive"),
    db: Session = Depends(get_db),
):
    page = service.list_rules(
        db,
        page_number=paging.page_number,
        page_size=paging.page_size,
        search=search,
        integration_system_id=integration_system_id,
        trigger_type=trigger_type,
        action_type=action_type,
        is_active=is_active,
    )
    return paged(page)


@router.get("/trigger-types", response_model=list[EnumOption])
def list_trigger_types() -> list[EnumOption]:
    return enum_options(TriggerType)


@router.get("/action-types", response_model=list[EnumOption])
def list_action_types() -> list[EnumOption]:
    return enum_options(ActionType)


@router.get("/{rule_id}", response_model=AccessRuleRead, name="get_access_rule")
def get_access_rule(rule_id: uuid.UUID, db: Session = Depends(get_db)) -> AccessRuleRead:
    return service.read_rule(db, rule_id)


@router.post("", response_model=AccessRuleRead, status_code=status.HTTP_201_CREATED)
def create_access_rule(
    payload: AccessRuleCreate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> AccessRuleRead:
    created = service.create_rule(db, payload)
    set_location(request, response, "get_access_rule", rule_id=created.id)
    return created


@router.put("/{rule_id}", response_model=AccessRuleRead)
def update_access_rule(rule_id: uuid.UUID, payload: AccessRuleUpdate, db: Session = Depends(get_db)) -> AccessRuleRead:
    return service.update_rule(db, rule_id, payload)


@router.delete("/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_access_rule(rule_id: uuid.UUID, db: Session = Depends(get_db)) -> Response:
    service.delete_rule(db, rule_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
