"""Alembic environment for the RBAC catalog schema."""
from __future__ import annotations

import logging
import os
import sys
from logging.config import fileConfig
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from alembic import context
from sqlalchemy import engine_from_config, pool

from rbac_api.config import get_settings
from rbac_api.models import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata


def database_url() -> str:
    """DATABASE_URL wins over alembic.ini, which wins over application settings."""

    url = os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url") or get_settings().effective_database_url
    if url.startswith("sqlite") and ":memory:" in url:
        raise RuntimeError("Refusing to migrate an in-memory SQLite database; set DATABASE_URL to a persistent store.")
    return url


def _skip_empty_revisions(migration_context, revision, directives) -> None:
    if getattr(config.cmd_opts, "autogenerate", False) and directives[0].upgrade_ops.is_empty():
        directives[:] = []
        logger.info("No schema changes detected; revision not written")


def _context_options() -> dict:
    return {
        "target_metadata": target_metadata,
        # SQLite cannot ALTER most constraints in place.
        "render_as_batch": True,
        "compare_type": True,
        "compare_server_default": True,
        "process_revision_directives": _skip_empty_revisions,
    }


def run_migrations_offline() -> None:
    context.configure(
        url=database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_context_options(),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {}) or {}
    section["sqlalchemy.url"] = database_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, **_context_options())
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
