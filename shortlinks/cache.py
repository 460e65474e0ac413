"""Redis cache adapter for URL records.

Two independent key spaces mirror the store's lookup paths::

    url:<short_path>   -> JSON URLRecord   (TTL = CACHE_TTL_SECONDS)
    url_id:<uuid>      -> JSON URLRecord   (TTL = CACHE_TTL_SECONDS)

``URLCache`` is the capability interface the service depends on. The Redis
implementation translates every client or payload failure into
DependencyError; deciding that cache failures are non-fatal is the
service's job, not this module's.

How to Use
===========
**Step 1 — Build once at startup**::
    client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    cache = RedisURLCache(client, ttl_seconds=settings.CACHE_TTL_SECONDS)

**Step 2 — Read / write**::
    record = await cache.get_by_short_path("abc123")   # None on miss
    await cache.set_by_id(record)

**Step 3 — Cleanup on shutdown**::
    await cache.close()
"""

import uuid
from typing import Protocol

import pydantic
import redis.asyncio as redis
from redis.exceptions import RedisError

from shortlinks.config import Settings
from shortlinks.exceptions import DependencyError
from shortlinks.schemas import URLRecord

__all__ = ["URLCache", "RedisURLCache", "short_path_key", "id_key"]

SHORT_PATH_KEY_PREFIX = "url"
ID_KEY_PREFIX = "url_id"


def short_path_key(short_path: str) -> str:
    return f"{SHORT_PATH_KEY_PREFIX}:{short_path}"


def id_key(url_id: uuid.UUID | str) -> str:
    return f"{ID_KEY_PREFIX}:{url_id}"


class URLCache(Protocol):
    async def get_by_short_path(self, short_path: str) -> URLRecord | None: ...

    async def get_by_id(self, url_id: uuid.UUID) -> URLRecord | None: ...

    async def set_by_short_path(self, record: URLRecord) -> None: ...

    async def set_by_id(self, record: URLRecord) -> None: ...

    async def delete_by_short_path(self, short_path: str) -> None: ...

    async def delete_by_id(self, url_id: uuid.UUID) -> None: ...

    async def ping(self) -> None: ...


class RedisURLCache:
    def __init__(self, client: redis.Redis, ttl_seconds: int = 3600) -> None:
        self._client = client
        self._ttl = ttl_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisURLCache":
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
        )
        return cls(client, ttl_seconds=settings.CACHE_TTL_SECONDS)

    async def get_by_short_path(self, short_path: str) -> URLRecord | None:
        return await self._get(short_path_key(short_path))

    async def get_by_id(self, url_id: uuid.UUID) -> URLRecord | None:
        return await self._get(id_key(url_id))

    async def set_by_short_path(self, record: URLRecord) -> None:
        await self._set(short_path_key(record.short_path), record)

    async def set_by_id(self, record: URLRecord) -> None:
        await self._set(id_key(record.id), record)

    async def delete_by_short_path(self, short_path: str) -> None:
        await self._delete(short_path_key(short_path))

    async def delete_by_id(self, url_id: uuid.UUID) -> None:
        await self._delete(id_key(url_id))

    async def ping(self) -> None:
        try:
            await self._client.ping()
        except RedisError as exc:
            raise DependencyError(f"redis ping failed: {exc}") from exc

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, key: str) -> URLRecord | None:
        try:
            cached = await self._client.get(key)
        except RedisError as exc:
            raise DependencyError(f"redis GET {key} failed: {exc}") from exc
        if cached is None:
            return None
        try:
            return URLRecord.model_validate_json(cached)
        except pydantic.ValidationError as exc:
            raise DependencyError(f"corrupt cache entry at {key}: {exc}") from exc

    async def _set(self, key: str, record: URLRecord) -> None:
        try:
            await self._client.setex(key, self._ttl, record.model_dump_json())
        except RedisError as exc:
            raise DependencyError(f"redis SETEX {key} failed: {exc}") from exc

    async def _delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except RedisError as exc:
            raise DependencyError(f"redis DEL {key} failed: {exc}") from exc
