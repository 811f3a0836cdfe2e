"""Alembic environment for the awardees and feature_requests tables."""

from __future__ import annotations

import asyncio
import logging
import os
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import async_engine_from_config
from sqlmodel import SQLModel

from app.config import settings
from app.core.database import async_connection_config
from app.models import records  # noqa: F401 - registers the tables on SQLModel.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("self_service.alembic")
target_metadata = SQLModel.metadata


def _resolve_database_config() -> tuple[str, dict[str, Any]]:
    """First of env var, alembic.ini, app settings; always on the async driver."""
    candidates = [
        ("environment variable", os.environ.get("DATABASE_URL")),
        ("alembic.ini", config.get_main_option("sqlalchemy.url")),
        ("app settings", settings.database_url),
    ]
    for source, value in candidates:
        if not value:
            continue
        url, connect_args = async_connection_config(value)
        rendered = make_url(url).render_as_string(hide_password=True)
        logger.info("self_service.alembic.database_url", extra={"source": source, "url": rendered})
        return url, connect_args
    raise RuntimeError("DATABASE_URL must be set to run migrations.")


def run_migrations_offline() -> None:
    url, _ = _resolve_database_config()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    url, connect_args = _resolve_database_config()
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = url
    connectable = async_engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        connect_args=connect_args,
    )

    try:
        async with connectable.connect() as connection:
            await connection.run_sync(do_run_migrations)
    finally:
        await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
