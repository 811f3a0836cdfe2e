from __future__ import annotations

import logging
import ssl
from typing import Any

import certifi
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings

logger = logging.getLogger(__name__)

# Global variables for database
engine: AsyncEngine | None = None
async_session: async_sessionmaker[AsyncSession] | None = None

_ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "postgresql+psycopg2": "postgresql+asyncpg",
    "postgresql+psycopg": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}
_TLS_QUERY_VALUES = {"require", "verify-ca", "verify-full", "true", "1"}


def _coerce_async_database_url(database_url: str) -> str:
    """Point sync connection strings at the async driver used for health checks."""
    url = make_url(database_url)
    drivername = _ASYNC_DRIVERS.get(url.drivername, url.drivername)
    return url.set(drivername=drivername).render_as_string(hide_password=False)


def async_connection_config(database_url: str) -> tuple[str, dict[str, Any]]:
    """Return an async URL plus connect args; shared by the app engine and Alembic.

    asyncpg rejects libpq's `sslmode`/`ssl` query parameters, so TLS moves into
    an SSL context. Supabase hosts always get TLS.
    """
    url = make_url(_coerce_async_database_url(database_url))
    if not url.drivername.startswith("postgresql"):
        return url.render_as_string(hide_password=False), {}

    query = dict(url.query)
    requested = {str(query.pop(key, "")).lower() for key in ("ssl", "sslmode")}
    url = url.set(query=query)
    connect_args: dict[str, Any] = {}
    if requested & _TLS_QUERY_VALUES or "supabase.co" in (url.host or "").lower():
        connect_args["ssl"] = ssl.create_default_context(cafile=certifi.where())
    return url.render_as_string(hide_password=False), connect_args


async def init_database():
    """Initialize database connection if DATABASE_URL is provided."""
    global engine, async_session

    if not settings.database_url:
        logger.info("No DATABASE_URL provided, running without database")
        return

    try:
        url, connect_args = async_connection_config(settings.database_url)
        engine = create_async_engine(
            url,
            echo=settings.debug,
            pool_pre_ping=True,
            pool_recycle=300,
            connect_args=connect_args,
        )

        async_session = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        logger.info("Database connection initialized successfully")

    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def dispose_database() -> None:
    """Release pooled connections on shutdown."""
    global engine, async_session

    if engine is not None:
        await engine.dispose()
    engine = None
    async_session = None


async def check_database_health() -> bool:
    """Check if database is accessible."""
    if not engine:
        return True  # No database configured, consider healthy

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
