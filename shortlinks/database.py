"""Database engine and session management for the shortlinks service.

This module wraps the SQLAlchemy async engine and session factory in a
``Database`` object that is constructed once at startup and shared by every
request through the service container.

Flow Diagram — Database Operations
==================================
::
    ┌─────────────┐
    │  lifespan   │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Database(   │
    │  settings)  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ init()      │
    │ create_all  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ session()   │  one per request
    │ per request │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ close()     │
    │ dispose     │
    └─────────────┘

How to Use
===========
**Step 1 — Initialize on startup**::
    database = Database.from_settings(settings)
    await database.init()

**Step 2 — Open a session**::
    async with database.session() as session:
        store = SQLAlchemyURLStore(session)

**Step 3 — Cleanup on shutdown**::
    await database.close()

Key Behaviours
===============
- Connection pooling is configured from settings for PostgreSQL.
- SQLite (aiosqlite) uses a single shared connection so in-memory databases
  survive across sessions.
- Sessions do not expire objects on commit.

Classes:
    Base:  SQLAlchemy declarative base for all models.
    Database:  Engine + session factory + lifecycle helpers.
"""

import asyncio

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from shortlinks.config import Settings
from shortlinks.exceptions import DependencyError

__all__ = ["Base", "Database", "DATABASE_ERRORS"]

# asyncpg raises plain OSError / TimeoutError when it cannot connect; SQLAlchemy
# does not wrap those.
DATABASE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


class Base(DeclarativeBase):
    pass


class Database:
    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        if settings.uses_sqlite:
            engine = create_async_engine(
                settings.DATABASE_URL,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            engine = create_async_engine(
                settings.DATABASE_URL,
                echo=(settings.APP_ENV == "development"),
                pool_size=settings.DATABASE_POOL_SIZE,
                max_overflow=settings.DATABASE_MAX_OVERFLOW,
                pool_pre_ping=True,
                connect_args={
                    "timeout": settings.DATABASE_CONNECT_TIMEOUT_SECONDS,
                    "command_timeout": settings.DATABASE_COMMAND_TIMEOUT_SECONDS,
                },
            )
        return cls(engine)

    async def init(self) -> None:
        # models must be imported so their tables are registered on Base.metadata
        from shortlinks import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> None:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except DATABASE_ERRORS as exc:
            raise DependencyError(f"database ping failed: {exc}") from exc

    async def close(self) -> None:
        await self.engine.dispose()
