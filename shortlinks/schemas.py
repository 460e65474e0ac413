"""Pydantic schemas for request validation, records and responses.

Schema Hierarchy
=================
::
    URLCreate (Input)
    ├─ destination: str (validated URL)
    ├─ short_path: str | None (custom path, generated if absent)
    ├─ title / description / image_url: str | None
    └─ expires_at: datetime | None

    URLUpdate (Input, partial)
    └─ every mutable field optional; unset ≠ null

    URLRecord (Store + cache payload)
    ├─ id: UUID
    ├─ short_path, destination, title, description, image_url
    └─ expires_at, created_at, updated_at

    URLResponse (Output)
    └─ URLRecord + short_url (computed)

    URLListResponse (Output)
    ├─ urls: list[URLResponse]
    └─ total, page, limit

    HealthResponse (Output)
    ├─ status
    ├─ database
    └─ cache

Key Behaviours
===============
- Destination URLs are checked with the validators library.
- Naive datetimes are interpreted as UTC; every datetime leaving a schema is
  timezone-aware.
- ``URLUpdate.changes()`` returns only the fields the client actually sent,
  so ``{"expires_at": null}`` clears the expiry while ``{}`` keeps it.
- Short path format is checked by the service, not here, so a bad path is
  reported as a 400 with a specific message.
"""

import datetime
import uuid
from typing import Any

import validators
from pydantic import BaseModel, field_validator

from shortlinks.enums import HealthStatus

__all__ = [
    "URLCreate",
    "URLUpdate",
    "URLRecord",
    "URLResponse",
    "URLListResponse",
    "HealthResponse",
]


def _as_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def _check_destination(value: str) -> str:
    if not value or not validators.url(value):
        raise ValueError("Invalid destination URL provided")
    return value


class URLCreate(BaseModel):
    destination: str
    short_path: str | None = None
    title: str | None = None
    description: str | None = None
    image_url: str | None = None
    expires_at: datetime.datetime | None = None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        return _check_destination(v)

    @field_validator("short_path")
    @classmethod
    def blank_short_path_means_generate(cls, v: str | None) -> str | None:
        return v or None

    @field_validator("expires_at")
    @classmethod
    def normalize_expires_at(cls, v: datetime.datetime | None) -> datetime.datetime | None:
        return _as_utc(v)


class URLUpdate(BaseModel):
    short_path: str | None = None
    destination: str | None = None
    title: str | None = None
    description: str | None = None
    image_url: str | None = None
    expires_at: datetime.datetime | None = None

    @field_validator("short_path", "destination")
    @classmethod
    def reject_null(cls, v: str | None) -> str | None:
        # only runs for fields the client sent, so None here is an explicit null
        if v is None:
            raise ValueError("field cannot be null")
        return v

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        return _check_destination(v)

    @field_validator("expires_at")
    @classmethod
    def normalize_expires_at(cls, v: datetime.datetime | None) -> datetime.datetime | None:
        return _as_utc(v)

    def changes(self) -> dict[str, Any]:
        """Fields explicitly present in the request, with None meaning "clear"."""
        return self.model_dump(exclude_unset=True)


class URLRecord(BaseModel):
    id: uuid.UUID
    short_path: str
    destination: str
    title: str | None = None
    description: str | None = None
    image_url: str | None = None
    expires_at: datetime.datetime | None = None
    created_at: datetime.datetime
    updated_at: datetime.datetime

    model_config = {"from_attributes": True}

    @field_validator("expires_at", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: datetime.datetime | None) -> datetime.datetime | None:
        return _as_utc(v)

    def is_expired(self, now: datetime.datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.datetime.now(datetime.timezone.utc)
        return self.expires_at <= now


class URLResponse(URLRecord):
    short_url: str

    @classmethod
    def from_record(cls, record: URLRecord, base_url: str) -> "URLResponse":
        return cls(
            **record.model_dump(),
            short_url=f"{base_url.rstrip('/')}/{record.short_path}",
        )


class URLListResponse(BaseModel):
    urls: list[URLResponse]
    total: int
    page: int
    limit: int


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus
