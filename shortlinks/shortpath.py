"""Short path generation, validation and unique allocation.

Flow Diagram — ShortPathResolver.resolve()
==========================================
::
    ┌──────────────┐
    │ length = min │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ generate(len)│◄─────────────┐
    └──────┬───────┘              │
           ▼                      │
    ┌──────────────┐   taken      │
    │ exists(path)?├──────► len += 1
    └──────┬───────┘     (attempts left)
      free │
           ▼
    ┌──────────────┐
    │ return path  │
    └──────────────┘
    out of attempts -> ExhaustedError

Key Behaviours
===============
- Candidates come from ``secrets`` so issued paths cannot be predicted from
  earlier ones.
- Every collision widens the search space by one character instead of
  retrying the same length.
- The resolver performs exactly ``max_attempts`` existence checks before
  giving up; it never retries on its own after that.
- Custom paths never go through the resolver; they are only validated.
"""

import logging
import secrets
import string
from collections.abc import Awaitable, Callable

from prometheus_client import Counter

from shortlinks.exceptions import ExhaustedError, ValidationError

__all__ = [
    "ALPHABET",
    "MAX_SHORT_PATH_LENGTH",
    "RESERVED_PATHS",
    "ShortPathResolver",
    "generate_short_path",
    "is_reserved_path",
    "validate_short_path",
]

ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits
MAX_SHORT_PATH_LENGTH = 255

_ALLOWED_CHARS = frozenset(ALPHABET + "-")

RESERVED_PATHS = frozenset(
    {
        # API and tooling endpoints
        "api",
        "health",
        "urls",
        "metrics",
        "swagger",
        "docs",
        "doc",
        "redoc",
        "api-docs",
        "openapi",
        # Common web paths
        "admin",
        "login",
        "logout",
        "register",
        "signup",
        "signin",
        "dashboard",
        "profile",
        "settings",
        "help",
        "support",
        "contact",
        "about",
        "privacy",
        "terms",
        "faq",
        # HTTP methods
        "get",
        "post",
        "put",
        "patch",
        "delete",
        "head",
        "options",
        # File extensions
        "css",
        "js",
        "png",
        "jpg",
        "jpeg",
        "gif",
        "svg",
        "ico",
        "pdf",
        "txt",
        "xml",
        "json",
    }
)

SHORT_PATH_COLLISIONS_TOTAL = Counter(
    "shortlinks_short_path_collisions_total",
    "Generated short path candidates that were already taken",
)

logger = logging.getLogger("shortlinks")


def generate_short_path(length: int) -> str:
    if length < 1:
        raise ValueError("Short path length must be at least 1")
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def is_reserved_path(short_path: str) -> bool:
    return short_path.lower() in RESERVED_PATHS


def validate_short_path(short_path: str) -> str:
    """Return ``short_path`` unchanged or raise ValidationError.

    Reserved words get their own message so clients can tell the two apart.
    """
    if not 1 <= len(short_path) <= MAX_SHORT_PATH_LENGTH or not _ALLOWED_CHARS.issuperset(short_path):
        raise ValidationError("invalid short path format")
    if is_reserved_path(short_path):
        raise ValidationError("short path is reserved and cannot be used")
    return short_path


class ShortPathResolver:
    """Allocate a short path that is not yet present in the store.

    Args:
        exists: Awaitable existence check, usually ``URLStore.short_path_exists``.
        min_length: Length of the first candidate.
        max_attempts: Number of candidates to try before raising ExhaustedError.
        generate: Candidate generator, replaceable in tests.
    """

    def __init__(
        self,
        exists: Callable[[str], Awaitable[bool]],
        min_length: int = 6,
        max_attempts: int = 10,
        generate: Callable[[int], str] = generate_short_path,
    ) -> None:
        if min_length < 1:
            raise ValueError("min_length must be at least 1")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._exists = exists
        self._min_length = min_length
        self._max_attempts = max_attempts
        self._generate = generate

    async def resolve(self) -> str:
        length = self._min_length
        for attempt in range(1, self._max_attempts + 1):
            candidate = self._generate(length)
            if not await self._exists(candidate):
                return candidate
            SHORT_PATH_COLLISIONS_TOTAL.inc()
            logger.debug(f"Short path collision on attempt {attempt} at length {length}")
            length = min(length + 1, MAX_SHORT_PATH_LENGTH)

        logger.error(f"Short path allocation exhausted after {self._max_attempts} attempts")
        raise ExhaustedError(self._max_attempts)
