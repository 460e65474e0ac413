"""Shared enums for the shortlinks service.

This module defines the status values used in responses, logs and metric labels.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "RequestStatus", "CacheStatus", "CacheKeyspace"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class RequestStatus(StrEnum):
    """Request outcome values for metrics and logging."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    ERROR = "error"


class CacheStatus(StrEnum):
    """Result of a single cache lookup."""

    HIT = "hit"
    MISS = "miss"
    ERROR = "error"


class CacheKeyspace(StrEnum):
    """The two cache key spaces mirroring the store's lookup paths."""

    SHORT_PATH = "short_path"
    ID = "id"
