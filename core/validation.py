"""
core/validation.py -- Input checks shared by the service layer.

Each helper returns the normalized value or raises core.errors.ValidationError
naming the offending field. Services run these before touching the store, so
a validation failure never leaves a partial write behind.
"""

from __future__ import annotations

from typing import Any, Optional

from core.errors import ValidationError

# Largest value a signed 64-bit INTEGER column can hold. Larger Python ints
# cannot be bound as SQL parameters at all.
MAX_DB_INT = 2**63 - 1


def require_text(value: Any, field: str, max_length: int = 255) -> str:
    """Return value stripped of surrounding whitespace; reject non-strings and blanks."""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string.", field=field)
    value = value.strip()
    if not value:
        raise ValidationError(f"{field} is required.", field=field)
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters.", field=field)
    return value


def require_int(value: Any, field: str, minimum: Optional[int] = None, maximum: Optional[int] = None) -> int:
    """Return value if it is an int within [minimum, maximum].

    bool is rejected even though it subclasses int: True is not a year.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer.", field=field)
    if minimum is not None and value < minimum:
        raise ValidationError(f"{field} must be at least {minimum}.", field=field)
    if maximum is not None and value > maximum:
        raise ValidationError(f"{field} must be at most {maximum}.", field=field)
    return value
