"""Synchronisation log endpoints."""
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from rbac_api.db import get_db
from rbac_api.models.enums import SyncStatus
from rbac_api.schemas.common import EnumOption, PagedResult, enum_options
from rbac_api.schemas.sync_log import SyncLogComplete, SyncLogCreate, SyncLogRead, SyncLogSummary, SyncLogUpdate
from rbac_api.services import sync_logs as service
from rbac_api.services.integration_systems import get_system

from .paging import PageParams, page_params, paged, set_location

router = APIRouter(prefix="/api/sync-logs", tags=["sync-logs"])


@router.get("", response_model=PagedResult[SyncLogRead])
def list_sync_logs(
    paging: PageParams = Depends(page_params),
    search: str | None = Query(default=None),
    integration_system_id: uuid.UUID | None = Query(default=None, alias="integrationSystemId"),
    operation: str | None = Query(default=None),
    sync_status: SyncStatus | None = Query(default=None, alias="status"),
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    db: Session = Depends(get_db),
):
    page = service.list_sync_logs(
        db,
        page_number=paging.page_number,
        page_size=paging.page_size,
        search=search,
        integration_system_id=integration_system_id,
        operation=operation,
        status=sync_status,
        start_date=start_date,
        end_date=end_date,
    )
    return paged(page)


@router.get("/sync-statuses", response_model=list[EnumOption])
def list_sync_statuses() -> list[EnumOption]:
    return enum_options(SyncStatus)


@router.get("/summary", response_model=list[SyncLogSummary])
def sync_summary(
    integration_system_id: uuid.UUID | None = Query(default=None, alias="integrationSystemId"),
    days: int = Query(default=30, ge=1, le=3650),
    db: Session = Depends(get_db),
) -> list[SyncLogSummary]:
    """Per-system run statistics over the last ``days`` days."""

    return service.summarize(db, days=days, integration_system_id=integration_system_id)


@router.get("/failed", response_model=list[SyncLogRead])
def recent_failed_sync_logs(
    hours: int = Query(default=24, ge=1, le=24 * 365),
    limit: int = Query(default=50, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[SyncLogRead]:
    return service.recent_failures(db, hours=hours, limit=limit)


@router.get("/integration-system/{integration_system_id}", response_model=PagedResult[SyncLogRead])
def list_system_sync_logs(
    integration_system_id: uuid.UUID,
    paging: PageParams = Depends(page_params),
    sync_status: SyncStatus | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
):
    get_system(db, integration_system_id)
    page = service.list_sync_logs(
        db,
        page_number=paging.page_number,
        page_size=paging.page_size,
        integration_system_id=integration_system_id,
        status=sync_status,
    )
    return paged(page)


@router.get("/{sync_log_id}", response_model=SyncLogRead, name="get_sync_log")
def get_sync_log(sync_log_id: uuid.UUID, db: Session = Depends(get_db)) -> SyncLogRead:
    return service.read_sync_log(db, sync_log_id)


@router.post("", response_model=SyncLogRead, status_code=status.HTTP_201_CREATED)
def create_sync_log(
    payload: SyncLogCreate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> SyncLogRead:
    created = service.create_sync_log(db, payload)
    set_location(request, response, "get_sync_log", sync_log_id=created.id)
    return created


@router.put("/{sync_log_id}", response_model=SyncLogRead)
def update_sync_log(sync_log_id: uuid.UUID, payload: SyncLogUpdate, db: Session = Depends(get_db)) -> SyncLogRead:
    return service.update_sync_log(db, sync_log_id, payload)


@router.patch("/{sync_log_id}/complete", response_model=SyncLogRead)
def complete_sync_log(sync_log_id: uuid.UUID, payload: SyncLogComplete, db: Session = Depends(get_db)) -> SyncLogRead:
    """Close a run and record its outcome on the integration system."""

    return service.complete_sync_log(db, sync_log_id, payload)


@router.delete("/{sync_log_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sync_log(sync_log_id: uuid.UUID, db: Session = Depends(get_db)) -> Response:
    service.delete_sync_log(db, sync_log_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
