"""Configuration management for the shortlinks service.

This module provides centralized configuration using Pydantic BaseSettings
with environment variable support and caching.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache │
    │ (lru_cache) │
    └──────┬──────┘
    HIT?   │
    ┌──────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Import**::
    from shortlinks.config import get_settings

**Step 2 — Read values**::
    settings = get_settings()
    ttl = settings.CACHE_TTL_SECONDS

**Step 3 — Override in tests**::
    settings = Settings(DATABASE_URL="sqlite+aiosqlite://")

Key Behaviours
===============
- Settings are cached after first access.
- Environment variables (and ``.env``) override defaults.
- Out-of-range values (e.g. ``SHORT_PATH_MIN_LENGTH=0``) raise ValidationError.

Classes:
    Settings:  Pydantic model for all configuration values.
"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "shortlinks"
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8080"
    LOG_LEVEL: str = "INFO"

    # Relational store
    DATABASE_URL: str = "postgresql+asyncpg://shortlinks:shortlinks@db:5432/shortlinks"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_CONNECT_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0)
    DATABASE_COMMAND_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0)

    # Redis cache
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_SOCKET_TIMEOUT_SECONDS: float = 2.0
    CACHE_TTL_SECONDS: int = Field(default=3600, ge=1)

    # Short path allocation
    SHORT_PATH_MIN_LENGTH: int = Field(default=6, ge=1, le=255)
    SHORT_PATH_MAX_ATTEMPTS: int = Field(default=10, ge=1)

    HEALTH_CHECK_TIMEOUT_SECONDS: float = 5.0

    # Listing
    DEFAULT_PAGE_LIMIT: int = 10
    MAX_PAGE_LIMIT: int = 100

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    @property
    def uses_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
