"""Query parameters and response helpers shared by list endpoints."""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import Query, Request, Response

from rbac_api.config import get_settings
from rbac_api.schemas.common import PagedResult
from rbac_api.services.queries import Page
from rbac_api.utils.errors import ValidationError


@dataclass(frozen=True)
class PageParams:
    page_number: int
    page_size: int


def _bounded(page_number: int, page_size: int | None, *, default: int, maximum: int) -> PageParams:
    size = default if page_size is None else page_size
    if size > maximum:
        raise ValidationError(
            f"pageSize must be between 1 and {maximum}.",
            code="INVALID_PAGE_SIZE",
            details={"pageSize": size, "maxPageSize": maximum},
        )
    return PageParams(page_number=page_number, page_size=size)


def page_params(
    page_number: int = Query(default=1, ge=1, alias="pageNumber"),
    page_size: int | None = Query(default=None, ge=1, alias="pageSize"),
) -> PageParams:
    settings = get_settings()
    return _bounded(page_number, page_size, default=settings.DEFAULT_PAGE_SIZE, maximum=settings.MAX_PAGE_SIZE)


def audit_page_params(
    page_number: int = Query(default=1, ge=1, alias="pageNumber"),
    page_size: int | None = Query(default=None, ge=1, alias="pageSize"),
) -> PageParams:
    settings = get_settings()
    return _bounded(
        page_number, page_size, default=settings.AUDIT_DEFAULT_PAGE_SIZE, maximum=settings.AUDIT_MAX_PAGE_SIZE
    )


def paged(page: Page) -> PagedResult:
    return PagedResult(
        items=page.items,
        total_count=page.total_count,
        page_number=page.page_number,
        page_size=page.page_size,
    )


def set_location(request: Request, response: Response, route_name: str, **path_params: object) -> None:
    """Point the ``Location`` header of a 201 response at the created resource."""

    response.headers["Location"] = str(request.url_for(route_name, **{k: str(v) for k, v in path_params.items()}))


__all__ = ["PageParams", "audit_page_params", "page_params", "paged", "set_location"]
