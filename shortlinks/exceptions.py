"""Domain exceptions raised by the shortlinks core.

Every error the store, cache adapter, resolver or service raises on purpose
derives from ``ShortlinkError`` so the HTTP layer can map it to a status code
in one place (see ``shortlinks.main``).

Hierarchy
=========
::
    ShortlinkError
    ├─ ValidationError   -> 400  malformed short path / reserved path / bad id
    ├─ ConflictError     -> 409  short path already taken
    ├─ NotFoundError     -> 404  absent, or expired on the redirect path
    ├─ ExhaustedError    -> 500  resolver ran out of attempts
    └─ DependencyError   -> 503  store or cache unreachable / timed out
"""

__all__ = [
    "ShortlinkError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "ExhaustedError",
    "DependencyError",
]


class ShortlinkError(Exception):
    status_code: int = 500
    default_message: str = "internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ShortlinkError):
    status_code = 400
    default_message = "invalid request"


class ConflictError(ShortlinkError):
    status_code = 409
    default_message = "short path already exists"


class NotFoundError(ShortlinkError):
    status_code = 404
    default_message = "URL not found"


class ExhaustedError(ShortlinkError):
    """The resolver could not find a free short path within its attempt budget."""

    status_code = 500
    default_message = "failed to generate a unique short path"

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"failed to generate unique short path after {attempts} attempts")


class DependencyError(ShortlinkError):
    status_code = 503
    default_message = "dependency unavailable"
