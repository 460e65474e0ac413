"""Service container and FastAPI dependency functions.

Shared resources (engine, Redis-backed cache, logger) are built once at
startup into a ``ServiceContainer`` kept on ``app.state``; per-request
objects (session, store, service) are derived from it through FastAPI
dependencies.

Dependency Graph
================
::
    request.app.state.container ──► get_container
                                       │
              ┌────────────────────────┼───────────────────┐
              ▼                        ▼                   ▼
         get_session              get_url_cache      get_request_logger
              │                        │                   │
              ▼                        │                   │
        get_url_store                  │                   │
              └──────────────┬─────────┘───────────────────┘
                             ▼
                       get_url_service
"""

import logging
import uuid
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.cache import RedisURLCache, URLCache
from shortlinks.config import Settings
from shortlinks.database import Database
from shortlinks.store import SQLAlchemyURLStore, URLStore
from shortlinks.url_service import URLService

__all__ = [
    "ServiceContainer",
    "setup_logger",
    "get_container",
    "get_session",
    "get_url_store",
    "get_url_cache",
    "get_request_logger",
    "get_url_service",
]

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger("shortlinks")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level.upper())
    return logger


@dataclass
class ServiceContainer:
    """Process-wide resources, built once in the application lifespan.

    Attributes:
        settings: Application settings.
        database: Engine and session factory for the record store.
        cache: Cache adapter shared by every request.
        logger: The ``shortlinks`` logger.
    """

    settings: Settings
    database: Database
    cache: URLCache
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("shortlinks"))

    @classmethod
    async def create(cls, settings: Settings) -> "ServiceContainer":
        logger = setup_logger(settings.LOG_LEVEL)
        database = Database.from_settings(settings)
        await database.init()
        cache = RedisURLCache.from_settings(settings)
        logger.info(f"{settings.APP_NAME} resources initialized ({settings.APP_ENV})")
        return cls(settings=settings, database=database, cache=cache, logger=logger)

    async def close(self) -> None:
        close_cache = getattr(self.cache, "close", None)
        if close_cache is not None:
            await close_cache()
        await self.database.close()
        self.logger.info("Resources released")


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


async def get_session(
    container: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[AsyncSession, None]:
    async with container.database.session() as session:
        yield session


def get_url_store(session: AsyncSession = Depends(get_session)) -> URLStore:
    return SQLAlchemyURLStore(session)


def get_url_cache(container: ServiceContainer = Depends(get_container)) -> URLCache:
    return container.cache


def get_request_logger(
    request: Request,
    container: ServiceContainer = Depends(get_container),
) -> logging.LoggerAdapter:
    """Logger carrying the caller's X-Request-ID, or a fresh one."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    return logging.LoggerAdapter(container.logger, {"request_id": request_id})


def get_url_service(
    store: URLStore = Depends(get_url_store),
    cache: URLCache = Depends(get_url_cache),
    logger: logging.LoggerAdapter = Depends(get_request_logger),
    container: ServiceContainer = Depends(get_container),
) -> URLService:
    return URLService(store, cache, container.settings, logger=logger)
