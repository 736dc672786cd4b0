"""Declarative base model and shared auditable columns."""
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Enum as SqlEnum, Integer, String, inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from sqlalchemy.sql.elements import ColumnElement


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def new_row_stamp() -> str:
    return uuid.uuid4().hex


def string_enum(enum_cls: type, name: str) -> SqlEnum:
    """Persist ``enum_cls`` members by their string value in a VARCHAR column."""

    return SqlEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [member.value for member in members],
    )


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


class AuditableMixin:
    """Audit, soft-delete and optimistic-concurrency columns.

    ``version`` is the mapper's ``version_id_col``: SQLAlchemy sets it to 1 on
    insert, increments it on every UPDATE and raises ``StaleDataError`` when
    the row changed underneath the session. ``row_stamp`` is an opaque token
    regenerated on each write.
    """

    created_by: Mapped[str] = mapped_column(String(100), nullable=False, default="system")
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    row_stamp: Mapped[str] = mapped_column(String(32), nullable=False, default=new_row_stamp)
    last_modified_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    @declared_attr.directive
    def __mapper_args__(cls) -> dict[str, Any]:
        return {"version_id_col": cls.version}


def not_deleted(model: Any) -> ColumnElement[bool]:
    """Predicate hiding soft-deleted rows of ``model``."""

    return model.is_deleted.is_(False)


def visible(model: Any, *, include_deleted: bool = False) -> list[ColumnElement[bool]]:
    """Default read criteria for ``model``; empty when deleted rows are requested explicitly."""

    return [] if include_deleted else [not_deleted(model)]


def row_to_dict(row: Base) -> dict[str, Any]:
    """Return the mapped column values of ``row`` keyed by attribute name."""

    mapper = inspect(row).mapper
    return {attr.key: getattr(row, attr.key) for attr in mapper.column_attrs}


# Partial unique indexes only cover live rows so that a soft-deleted name can be reused.
LIVE_ROWS_SQLITE = "is_deleted = 0"
LIVE_ROWS_POSTGRES = "is_deleted = false"
