"""
core/errors.py -- Domain error kinds raised by the catalog and rental services.

Every business-rule failure is one of the LibraryError subclasses below. Each
carries a machine-readable code, a human message, and the HTTP status the API
layer maps it to, so api/main.py needs a single exception handler instead of
per-route try/except blocks.

Services never return error values -- they raise. Routes never build error
payloads for domain failures -- the handler does.

Layer rule: core/ is the kernel. No imports from api/, auth/, catalog/, or
rentals/.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("library.errors")

F = TypeVar("F", bound=Callable[..., Any])


class LibraryError(Exception):
    """Base class for all expected, client-facing failures."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        self.detail = detail
        super().__init__(self.message)


class ValidationError(LibraryError):
    """Missing or malformed input. Raised before any store mutation."""

    status_code = 400
    code = "validation_error"
    default_message = "Request validation failed."

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message, code=code, detail=field)
        self.field = field


class Unauthorized(LibraryError):
    status_code = 401
    code = "unauthorized"
    default_message = "Authentication required."


class Forbidden(LibraryError):
    status_code = 403
    code = "forbidden"
    default_message = "You do not have permission to perform this action."


class NotFound(LibraryError):
    """The entity is absent, or soft-deleted where deletion hides it."""

    status_code = 404
    code = "not_found"
    default_message = "Resource not found."


class Conflict(LibraryError):
    """Uniqueness violation, already-deleted, already-returned, or in-use dependency."""

    status_code = 409
    code = "conflict"
    default_message = "The request conflicts with the current state."


class InternalError(LibraryError):
    """Unexpected store failure. The message never carries internal detail."""


def guard_store_errors(func: F) -> F:
    """Translate unexpected SQLAlchemy failures into InternalError.

    Applied to every public service operation. LibraryError subclasses pass
    through untouched; any SQLAlchemyError that escapes the service's own
    handling is logged with its traceback and surfaced as a generic 500.

    Only SQLAlchemyError is translated. Errors the DB-API driver raises
    outside that hierarchy (for example OverflowError when binding an int
    wider than 64 bits) propagate unchanged and reach the application's
    catch-all 500 handler. Services bound every integer input before it
    reaches the store.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError as exc:
            logger.exception("Store failure in %s", func.__qualname__)
            raise InternalError() from exc

    return wrapper  # type: ignore[return-value]
