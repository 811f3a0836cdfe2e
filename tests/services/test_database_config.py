from __future__ import annotations

import ssl

import pytest

from app.core.database import async_connection_config


@pytest.mark.parametrize(
    "database_url",
    [
        "postgresql://u:p@127.0.0.1:5999/db",
        "postgresql+psycopg2://u:p@127.0.0.1:5999/db",
        "postgresql+asyncpg://u:p@127.0.0.1:5999/db",
    ],
)
def test_postgres_urls_use_asyncpg(database_url):
    url, connect_args = async_connection_config(database_url)

    assert url == "postgresql+asyncpg://u:p@127.0.0.1:5999/db"
    assert connect_args == {}


def test_sslmode_becomes_ssl_context():
    url, connect_args = async_connection_config("postgresql://u:p@db.internal/db?sslmode=require")

    assert "sslmode" not in url
    assert isinstance(connect_args["ssl"], ssl.SSLContext)


def test_supabase_hosts_always_use_tls():
    _, connect_args = async_connection_config("postgresql://u:p@db.abc.supabase.co:6543/postgres")

    assert isinstance(connect_args["ssl"], ssl.SSLContext)


def test_sqlite_urls_use_aiosqlite():
    assert async_connection_config("sqlite:///local.db") == ("sqlite+aiosqlite:///local.db", {})
