"""
auth/permissions.py -- Caller checks shared by the catalog and rental services.

The HTTP dependencies in auth/dependencies.py reject unauthenticated and
non-admin requests before a route runs. Services call these helpers again on
the Caller they were handed, so the rules hold for any entry point (CLI,
tests, future transports), not just FastAPI routes.
"""

from __future__ import annotations

from auth.models import Caller
from core.errors import Forbidden, Unauthorized


def ensure_authenticated(caller: Caller | None) -> Caller:
    if caller is None:
        raise Unauthorized()
    return caller


def ensure_admin(caller: Caller | None) -> Caller:
    caller = ensure_authenticated(caller)
    if not caller.is_admin:
        raise Forbidden("Admin access required.")
    return caller
