"""URL service layer: short path allocation plus cache-aside over the store.

Architecture Overview
=====================
::
    ┌──────────────────────────────────────────────────────────┐
    │                      URLService                          │
    │  ┌────────────────┐  ┌────────────────┐  ┌────────────┐  │
    │  │ ShortPath      │  │ Cache-aside    │  │ Metrics /  │  │
    │  │ Resolver       │  │ read / write / │  │ logging    │  │
    │  │                │  │ invalidate     │  │            │  │
    │  └────────────────┘  └────────────────┘  └────────────┘  │
    └──────────────────────────────────────────────────────────┘
              │                    │
              ▼                    ▼
    ┌─────────────────┐  ┌─────────────────┐
    │    URLStore     │  │    URLCache     │
    │ (authoritative) │  │ (non-owning,TTL)│
    └─────────────────┘  └─────────────────┘

Request Flow Diagrams
=====================

Create
------
::
    validate custom path ──or── resolver.resolve()
              │
              ▼
    store.create ──► cache: url:<path>, url_id:<id>

Lookup (by id or by short path)
-------------------------------
::
    cache.get ──hit──► (redirect only) expiry check ──► record
        │ miss / error
        ▼
    store.get ──None──► NotFoundError
        │
        ▼
    cache: url:<path>, url_id:<id> ──► (redirect only) expiry check ──► record

Delete
------
::
    store.get_by_id ──None──► NotFoundError (cache untouched)
        │
        ▼
    store.delete ──► cache: DEL url:<path>, DEL url_id:<id>

Key Behaviours
===============
- The store is the only source of truth; a cache miss and a cache error
  are handled the same way.
- Cache failures are logged and counted but never change the outcome of a
  request. Store failures propagate.
- Every successful store read or write refreshes both cache key spaces.
- An update that renames the short path leaves the old ``url:<path>`` key
  until its TTL runs out.
- No locking or single-flight: concurrent misses may read the store twice.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager

from prometheus_client import Counter

from shortlinks.cache import URLCache
from shortlinks.config import Settings
from shortlinks.enums import CacheKeyspace, CacheStatus, RequestStatus
from shortlinks.exceptions import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ShortlinkError,
    ValidationError,
)
from shortlinks.schemas import URLCreate, URLRecord, URLUpdate
from shortlinks.shortpath import ShortPathResolver, validate_short_path
from shortlinks.store import URLStore

__all__ = ["URLService", "parse_url_id"]


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

URL_OPERATIONS_TOTAL = Counter(
    "shortlinks_url_operations_total",
    "URL operations by outcome",
    ["operation", "status"],
)
CACHE_LOOKUPS_TOTAL = Counter(
    "shortlinks_cache_lookups_total",
    "Cache lookups by key space and result",
    ["keyspace", "result"],
)
CACHE_FAILURES_TOTAL = Counter(
    "shortlinks_cache_failures_total",
    "Cache writes and deletes that failed and were skipped",
    ["operation"],
)

_STATUS_BY_ERROR: dict[type[ShortlinkError], RequestStatus] = {
    ValidationError: RequestStatus.VALIDATION_ERROR,
    ConflictError: RequestStatus.CONFLICT,
    NotFoundError: RequestStatus.NOT_FOUND,
}


def parse_url_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError as exc:
        raise ValidationError("invalid URL ID") from exc


class URLService:
    """Orchestrates resolver, store and cache for every URL operation.

    One instance is built per request around a request-scoped store; the
    cache and settings are shared process-wide.

    Example:
        >>> service = URLService(SQLAlchemyURLStore(session), cache, settings)
        >>> record = await service.create_url(URLCreate(destination="https://example.com"))
        >>> same = await service.resolve_short_path(record.short_path)
    """

    def __init__(
        self,
        store: URLStore,
        cache: URLCache,
        settings: Settings,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        resolver: ShortPathResolver | None = None,
    ) -> None:
        self._store = store
        self._cache = cache
        self._settings = settings
        self._logger = logger or logging.getLogger("shortlinks")
        self._resolver = resolver or ShortPathResolver(
            store.short_path_exists,
            min_length=settings.SHORT_PATH_MIN_LENGTH,
            max_attempts=settings.SHORT_PATH_MAX_ATTEMPTS,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def create_url(self, request: URLCreate) -> URLRecord:
        """Create a record, generating a short path when none was supplied.

        Raises:
            ValidationError: The custom short path is malformed or reserved.
            ConflictError: The custom short path is already taken.
            ExhaustedError: No free short path was found.
        """
        with self._track("create"):
            if request.short_path is not None:
                short_path = validate_short_path(request.short_path)
            else:
                short_path = await self._resolver.resolve()

            record = await self._store.create(request, short_path)
            await self._cache_record(record)
            self._logger.info(f"URL created: {record.short_path} -> {record.destination} (id={record.id})")
            return record

    async def get_url(self, url_id: uuid.UUID) -> URLRecord:
        """Management lookup by id. Expired records are still returned."""
        with self._track("get"):
            record = await self._cached_lookup(CacheKeyspace.ID, lambda: self._cache.get_by_id(url_id))
            if record is None:
                record = await self._store.get_by_id(url_id)
                if record is None:
                    raise NotFoundError()
                await self._cache_record(record)
            return record

    async def resolve_short_path(self, short_path: str) -> URLRecord:
        """Redirect lookup. Expired records are reported as not found."""
        with self._track("redirect"):
            record = await self._cached_lookup(
                CacheKeyspace.SHORT_PATH, lambda: self._cache.get_by_short_path(short_path)
            )
            if record is None:
                record = await self._store.get_by_short_path(short_path)
                if record is None:
                    raise NotFoundError("URL not found or expired")
                await self._cache_record(record)

            if record.is_expired():
                raise NotFoundError("URL has expired")
            return record

    async def list_urls(self, page: int, limit: int) -> tuple[list[URLRecord], int]:
        with self._track("list"):
            return await self._store.list(page, limit)

    async def update_url(self, url_id: uuid.UUID, update: URLUpdate) -> URLRecord:
        """Merge the fields present in ``update`` into the record.

        Raises:
            ValidationError: The new short path is malformed or reserved.
            NotFoundError: No record has this id.
            ConflictError: The new short path is already taken.
        """
        with self._track("update"):
            changes = update.changes()
            if "short_path" in changes:
                validate_short_path(changes["short_path"])

            record = await self._store.update(url_id, changes)
            if record is None:
                raise NotFoundError()
            await self._cache_record(record)
            self._logger.info(f"URL updated: {record.id} fields={sorted(changes)}")
            return record

    async def delete_url(self, url_id: uuid.UUID) -> None:
        with self._track("delete"):
            record = await self._store.get_by_id(url_id)
            if record is None:
                raise NotFoundError()
            if not await self._store.delete(url_id):
                raise NotFoundError()

            await self._guard_cache_write("delete_by_id", self._cache.delete_by_id(url_id))
            await self._guard_cache_write(
                "delete_by_short_path", self._cache.delete_by_short_path(record.short_path)
            )
            self._logger.info(f"URL deleted: {record.short_path} (id={record.id})")

    # ========================================================================
    # CACHE-ASIDE HELPERS
    # ========================================================================

    async def _cached_lookup(
        self,
        keyspace: CacheKeyspace,
        fetch: Callable[[], Awaitable[URLRecord | None]],
    ) -> URLRecord | None:
        try:
            record = await fetch()
        except DependencyError as exc:
            CACHE_LOOKUPS_TOTAL.labels(keyspace=keyspace, result=CacheStatus.ERROR).inc()
            self._logger.warning(f"Cache lookup failed ({keyspace}), falling back to store: {exc}")
            return None

        result = CacheStatus.HIT if record is not None else CacheStatus.MISS
        CACHE_LOOKUPS_TOTAL.labels(keyspace=keyspace, result=result).inc()
        return record

    async def _cache_record(self, record: URLRecord) -> None:
        await self._guard_cache_write("set_by_short_path", self._cache.set_by_short_path(record))
        await self._guard_cache_write("set_by_id", self._cache.set_by_id(record))

    async def _guard_cache_write(self, operation: str, call: Awaitable[None]) -> None:
        try:
            await call
        except DependencyError as exc:
            CACHE_FAILURES_TOTAL.labels(operation=operation).inc()
            self._logger.warning(f"Cache {operation} failed, continuing: {exc}")

    @contextmanager
    def _track(self, operation: str) -> Iterator[None]:
        try:
            yield
        except ShortlinkError as exc:
            status = _STATUS_BY_ERROR.get(type(exc), RequestStatus.ERROR)
            URL_OPERATIONS_TOTAL.labels(operation=operation, status=status).inc()
            if status is RequestStatus.ERROR:
                self._logger.error(f"URL {operation} failed: {exc}")
            raise
        else:
            URL_OPERATIONS_TOTAL.labels(operation=operation, status=RequestStatus.SUCCESS).inc()
