# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Database engine, session factory and the request-scoped session dependency."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from staffportal_server.config import settings
from staffportal_server.models.base import Base


def engine_options(database_url: str) -> dict[str, Any]:
    """Pool settings for server databases; SQLite (local runs) gets the driver defaults."""
    if make_url(database_url).get_backend_name() == "sqlite":
        return {"echo": False}
    return {"echo": False, "pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}


def build_engine(database_url: str) -> AsyncEngine:
    engine = create_async_engine(database_url, **engine_options(database_url))
    if make_url(database_url).get_backend_name() == "sqlite":
        # SAVEPOINTs need SQLAlchemy, not the sqlite3 driver, to emit BEGIN
        @event.listens_for(engine.sync_engine, "connect")
        def _disable_driver_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _begin(conn):
            conn.exec_driver_sql("BEGIN")

    return engine


engine = build_engine(settings.database_url)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Session per request. Commits on success, rolls back if the handler raised.

    Handlers that must keep a change even though they go on to raise (lazy invitation
    expiry) commit it themselves first.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create missing tables. Called at startup; index changes ship as Alembic migrations."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
