"""Record store: durable CRUD over URL records.

``URLStore`` is the capability interface the service depends on;
``SQLAlchemyURLStore`` implements it on top of a request-scoped
``AsyncSession`` (PostgreSQL via asyncpg in production, SQLite via aiosqlite
for local runs and tests).

Key Behaviours
===============
- Every method returns detached ``URLRecord`` values, never ORM objects.
- Unique-constraint violations raise ConflictError; any other driver
  failure (including an unreachable server) raises DependencyError. Both roll the session back first.
- ``get_by_short_path`` filters out expired records in SQL;
  ``get_by_id`` does not.
- ``update`` applies only the keys present in the change set, so a key
  mapped to None clears that column while a missing key leaves it alone.
- Each write is a single-row statement committed on its own; there are no
  multi-operation transactions.
"""

import uuid
from collections.abc import Mapping
from typing import Any, Protocol

from sqlalchemy import delete, exists, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.database import DATABASE_ERRORS
from shortlinks.exceptions import ConflictError, DependencyError
from shortlinks.models import URL, utcnow
from shortlinks.schemas import URLCreate, URLRecord

__all__ = ["URLStore", "SQLAlchemyURLStore", "UPDATABLE_FIELDS"]

UPDATABLE_FIELDS = frozenset({"short_path", "destination", "title", "description", "image_url", "expires_at"})


class URLStore(Protocol):
    async def create(self, request: URLCreate, short_path: str) -> URLRecord: ...

    async def get_by_id(self, url_id: uuid.UUID) -> URLRecord | None: ...

    async def get_by_short_path(self, short_path: str) -> URLRecord | None: ...

    async def short_path_exists(self, short_path: str) -> bool: ...

    async def list(self, page: int, limit: int) -> tuple[list[URLRecord], int]: ...

    async def update(self, url_id: uuid.UUID, changes: Mapping[str, Any]) -> URLRecord | None: ...

    async def delete(self, url_id: uuid.UUID) -> bool: ...


class SQLAlchemyURLStore:
    def __init__(self, session: AsyncSession) -> None:
        self._db = session

    async def create(self, request: URLCreate, short_path: str) -> URLRecord:
        now = utcnow()
        url = URL(
            id=uuid.uuid4(),
            short_path=short_path,
            destination=request.destination,
            title=request.title,
            description=request.description,
            image_url=request.image_url,
            expires_at=request.expires_at,
            created_at=now,
            updated_at=now,
        )
        self._db.add(url)
        await self._commit(short_path)
        return URLRecord.model_validate(url)

    async def get_by_id(self, url_id: uuid.UUID) -> URLRecord | None:
        url = await self._scalar(select(URL).where(URL.id == url_id))
        return URLRecord.model_validate(url) if url is not None else None

    async def get_by_short_path(self, short_path: str) -> URLRecord | None:
        now = utcnow()
        url = await self._scalar(
            select(URL).where(
                URL.short_path == short_path,
                or_(URL.expires_at.is_(None), URL.expires_at > now),
            )
        )
        return URLRecord.model_validate(url) if url is not None else None

    async def short_path_exists(self, short_path: str) -> bool:
        return bool(await self._scalar(select(exists().where(URL.short_path == short_path))))

    async def list(self, page: int, limit: int) -> tuple[list[URLRecord], int]:
        offset = (page - 1) * limit
        try:
            total = (await self._db.execute(select(func.count()).select_from(URL))).scalar_one()
            result = await self._db.execute(
                select(URL).order_by(URL.created_at.desc(), URL.id).limit(limit).offset(offset)
            )
        except DATABASE_ERRORS as exc:
            await self._db.rollback()
            raise DependencyError(f"failed to list URLs: {exc}") from exc
        return [URLRecord.model_validate(url) for url in result.scalars().all()], total

    async def update(self, url_id: uuid.UUID, changes: Mapping[str, Any]) -> URLRecord | None:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown fields in update: {sorted(unknown)}")

        url = await self._scalar(select(URL).where(URL.id == url_id))
        if url is None:
            return None

        for field, value in changes.items():
            setattr(url, field, value)
        url.updated_at = utcnow()
        await self._commit(url.short_path)
        return URLRecord.model_validate(url)

    async def delete(self, url_id: uuid.UUID) -> bool:
        try:
            result = await self._db.execute(delete(URL).where(URL.id == url_id))
            await self._db.commit()
        except DATABASE_ERRORS as exc:
            await self._db.rollback()
            raise DependencyError(f"failed to delete URL: {exc}") from exc
        return result.rowcount > 0

    async def _scalar(self, statement: Any) -> Any:
        try:
            result = await self._db.execute(statement)
        except DATABASE_ERRORS as exc:
            await self._db.rollback()
            raise DependencyError(f"database read failed: {exc}") from exc
        return result.scalar_one_or_none()

    async def _commit(self, short_path: str) -> None:
        try:
            await self._db.commit()
        except IntegrityError as exc:
            await self._db.rollback()
            raise ConflictError(f"short path '{short_path}' already exists") from exc
        except DATABASE_ERRORS as exc:
            await self._db.rollback()
            raise DependencyError(f"database write failed: {exc}") from exc

