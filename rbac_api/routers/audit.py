"""Audit trail endpoints (read-only)."""
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rbac_api.db import get_db
from rbac_api.schemas.audit import AuditLogRead, AuditSearchRequest, ComplianceReport
from rbac_api.schemas.common import PagedResult
from rbac_api.services import audit as service

from .paging import PageParams, audit_page_params, paged

router = APIRouter(prefix="/api/audit", tags=["audit"])


@router.get("/entity/{entity_type}/{entity_id}", response_model=PagedResult[AuditLogRead])
def entity_history(
    entity_type: str,
    entity_id: str,
    paging: PageParams = Depends(audit_page_params),
    db: Session = Depends(get_db),
):
    """Change history of one record, newest first."""

    page = service.entity_history(
        db, entity_type, entity_id, page_number=paging.page_number, page_size=paging.page_size
    )
    return paged(page)


@router.get("/user/{user_id}", response_model=PagedResult[AuditLogRead])
def user_activity(
    user_id: str,
    from_date: datetime | None = Query(default=None, alias="fromDate"),
    to_date: datetime | None = Query(default=None, alias="toDate"),
    paging: PageParams = Depends(audit_page_params),
    db: Session = Depends(get_db),
):
    page = service.user_activity(
        db,
        user_id,
        page_number=paging.page_number,
        page_size=paging.page_size,
        from_date=from_date,
        to_date=to_date,
    )
    return paged(page)


@router.post("/search", response_model=PagedResult[AuditLogRead])
def search_audit_logs(request: AuditSearchRequest, db: Session = Depends(get_db)):
    return paged(service.search(db, request))


@router.get("/compliance-report", response_model=ComplianceReport)
def compliance_report(
    from_date: datetime | None = Query(default=None, alias="fromDate"),
    to_date: datetime | None = Query(default=None, alias="toDate"),
    db: Session = Depends(get_db),
) -> ComplianceReport:
    return service.compliance_report(db, from_date=from_date, to_date=to_date)
