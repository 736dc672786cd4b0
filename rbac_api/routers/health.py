"""Health check endpoint."""
from __future__ import annotations

import logging
from pathlib import Path

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from rbac_api.config import AppInfo, get_settings
from rbac_api.db import get_engine

router = APIRouter(prefix="/health", tags=["health"])
logger = logging.getLogger(__name__)

ALEMBIC_INI = Path(__file__).resolve().parents[2] / "alembic.ini"


def _migration_head() -> str | None:
    """Head revision shipped with the code, or None when the scripts are unavailable."""

    if not ALEMBIC_INI.exists():
        logger.warning("Alembic configuration not found", extra={"path": str(ALEMBIC_INI)})
        return None
    config = Config(str(ALEMBIC_INI))
    config.set_main_option("script_location", str(ALEMBIC_INI.parent / "alembic"))
    return ScriptDirectory.from_config(config).get_current_head()


def _schema_status(conn: Connection) -> tuple[bool, str]:
    if get_settings().uses_in_memory_database:
        # Schema comes from create_all; there is no alembic_version table.
        return True, "not_applicable"
    head = _migration_head()
    if head is None:
        return False, "unknown"
    current = MigrationContext.configure(conn).get_current_revision()
    if current == head:
        return True, "up_to_date"
    logger.warning("Database schema behind code", extra={"current": current, "head": head})
    return False, "out_of_date"


def _probe() -> dict[str, object]:
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
            migrations_ok, migrations_status = _schema_status(conn)
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        return {"db_ok": False, "db_status": "error", "migrations_ok": False, "migrations_status": "unknown"}
    return {
        "db_ok": True,
        "db_status": "ok",
        "migrations_ok": migrations_ok,
        "migrations_status": migrations_status,
    }


@router.get("", summary="Health check")
def healthcheck() -> dict[str, object]:
    """Report database reachability and whether the schema matches the migration head."""

    settings = get_settings()
    info = AppInfo()
    checks = _probe()
    healthy = checks["db_ok"] and checks["migrations_ok"]
    return {
        "status": "ok" if healthy else "degraded",
        "service": info.name,
        "version": info.version,
        "env": settings.app_env,
        "in_memory_database": settings.uses_in_memory_database,
        **checks,
    }
