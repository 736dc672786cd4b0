"""Shared schema building blocks."""
from __future__ import annotations

import json
import uuid
from datetime import datetime
from typing import Annotated, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

T = TypeVar("T")


def _ensure_json(value: str) -> str:
    try:
        json.loads(value)
    except ValueError as exc:
        raise ValueError("must be a valid JSON document") from exc
    return value


def _ensure_optional_json(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return _ensure_json(value)


NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
JsonText = Annotated[str, AfterValidator(_ensure_json)]
OptionalJsonText = Annotated[str | None, AfterValidator(_ensure_optional_json)]


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python; both accepted on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class VersionedUpdate(ApiModel):
    """Fields every whole-record update carries besides the business fields."""

    version: int = Field(ge=1, description="Version the client last read; stale values are rejected with 409.")
    last_modified_reason: str | None = Field(default=None, max_length=500)


class AuditableRead(ApiModel):
    id: uuid.UUID
    created_at: datetime
    created_by: str
    updated_at: datetime | None = None
    updated_by: str | None = None
    version: int
    row_stamp: str
    last_modified_reason: str | None = None
    is_deleted: bool = False
    deleted_at: datetime | None = None


class PagedResult(ApiModel, Generic[T]):
    items: list[T]
    total_count: int
    page_number: int
    page_size: int


class EnumOption(ApiModel):
    value: str
    name: str


def enum_options(enum_cls: type) -> list[EnumOption]:
    return [EnumOption(value=member.value, name=member.name) for member in enum_cls]


__all__ = [
    "ApiModel",
    "AuditableRead",
    "EnumOption",
    "JsonText",
    "NonBlankStr",
    "OptionalJsonText",
    "PagedResult",
    "VersionedUpdate",
    "enum_options",
]
