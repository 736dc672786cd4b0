"""Read helpers: live-row lookups and pagination."""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from rbac_api.models.base import visible
from rbac_api.utils.errors import NotFoundError

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: list[T]
    total_count: int
    page_number: int
    page_size: int


def get_live(db: Session, model: Any, entity_id: uuid.UUID, *, label: str, code: str | None = None) -> Any:
    """Return the non-deleted row ``entity_id`` of ``model`` or raise ``NotFoundError``."""

    stmt = select(model).where(model.id == entity_id, *visible(model))
    row = db.scalars(stmt).first()
    if row is None:
        raise NotFoundError(
            f"{label} with ID {entity_id} not found.",
            code=code or f"{_code_prefix(label)}_NOT_FOUND",
        )
    return row


def exists_live(db: Session, model: Any, *criteria: Any) -> bool:
    stmt = select(model.id).where(*criteria, *visible(model)).limit(1)
    return db.scalars(stmt).first() is not None


def paginate(db: Session, stmt: Select, *, page_number: int, page_size: int) -> Page:
    """Count ``stmt`` and return the requested 1-based page of it."""

    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = db.scalar(count_stmt) or 0
    offset = (page_number - 1) * page_size
    items = list(db.scalars(stmt.offset(offset).limit(page_size)).all())
    return Page(items=items, total_count=total, page_number=page_number, page_size=page_size)


def contains(term: str) -> str:
    """LIKE pattern for a substring match, with wildcards in ``term`` escaped."""

    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _code_prefix(label: str) -> str:
    return "_".join(label.upper().split())


__all__ = ["Page", "contains", "exists_live", "get_live", "paginate"]
