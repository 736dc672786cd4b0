"""Transaction boundary shared by every write operation."""
from __future__ import annotations

import logging
from collections.abc import Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from rbac_api.context import current_actor
from rbac_api.models.base import AuditableMixin, new_row_stamp
from rbac_api.utils.errors import ConflictError
from rbac_api.utils.time import utcnow

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def stamp_audit_fields(db: Session, actor: str) -> None:
    """Fill created/updated bookkeeping columns on pending and modified rows."""

    now = utcnow()
    for obj in db.new:
        if isinstance(obj, AuditableMixin):
            obj.created_at = now
            obj.created_by = actor
            obj.row_stamp = new_row_stamp()
    for obj in db.dirty:
        if isinstance(obj, AuditableMixin) and obj not in db.deleted:
            obj.updated_at = now
            obj.updated_by = actor
            obj.row_stamp = new_row_stamp()


def transactional(func: Callable[P, R]) -> Callable[P, R]:
    """Run a service write as one atomic unit.

    The wrapped function receives the session as its first argument. Audit
    columns are stamped on every flush issued while it runs, the session is
    committed once at the end and rolled back on any error. Stale version
    tokens and uniqueness races surface as ``ConflictError``.
    """

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        db: Session = args[0]  # type: ignore[assignment]
        actor = current_actor()

        def _stamp(session: Session, flush_context: Any, instances: Any) -> None:
            stamp_audit_fields(session, actor)

        event.listen(db, "before_flush", _stamp)
        try:
            result = func(*args, **kwargs)
            db.commit()
        except StaleDataError as exc:
            db.rollback()
            logger.info("Optimistic concurrency conflict", extra={"operation": func.__name__})
            raise ConflictError(
                "The record was modified by another request; reload it and retry.",
                code="CONCURRENCY_CONFLICT",
            ) from exc
        except IntegrityError as exc:
            db.rollback()
            logger.info("Integrity constraint rejected write", extra={"operation": func.__name__})
            raise ConflictError(
                "The change conflicts with an existing record.",
                code="CONSTRAINT_VIOLATION",
            ) from exc
        except Exception:
            db.rollback()
            raise
        finally:
            event.remove(db, "before_flush", _stamp)
        return result

    return wrapper


def ensure_version(entity: AuditableMixin, expected: int, *, entity_label: str) -> None:
    """Reject writes based on a stale copy of ``entity``."""

    if entity.version != expected:
        raise ConflictError(
            f"{entity_label} was modified by another request (expected version {expected}, "
            f"current version {entity.version}).",
            code="CONCURRENCY_CONFLICT",
            details={"expectedVersion": expected, "currentVersion": entity.version},
        )


def apply_changes(entity: Any, values: dict[str, Any], *, renames: dict[str, str] | None = None) -> None:
    """Copy ``values`` onto ``entity``; ``renames`` maps payload keys to attribute names."""

    renames = renames or {}
    for key, value in values.items():
        setattr(entity, renames.get(key, key), value)


def soft_delete(entity: AuditableMixin, actor: str | None = None) -> None:
    entity.is_deleted = True
    entity.deleted_at = utcnow()
    entity.deleted_by = actor or current_actor()


__all__ = ["apply_changes", "ensure_version", "soft_delete", "stamp_audit_fields", "transactional"]
