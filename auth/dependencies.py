"""
auth/dependencies.py -- FastAPI Depends() helpers that resolve the Caller.

Two credentials are checked in priority order:
  1. Authorization: Bearer <token> header -- API clients using the JWT
     returned by POST /users/login.
  2. Session cookie (Starlette SessionMiddleware) -- browsers; login stores
     the user id under request.session["user_id"].

Both converge on a fresh read from the user store, so name changes and admin
grants take effect on the next request.

try_get_caller() is the soft variant (returns None on failure).
get_caller() raises HTTP 401 if unauthenticated.
require_admin() raises HTTP 401 if unauthenticated and 403 if not admin.

Services repeat the same checks on the Caller they receive; these
dependencies only reject early at the HTTP edge.

Layer rule: no imports from catalog/ or rentals/.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import Caller
from auth.store import UserStore
from auth.tokens import decode_access_token

SESSION_USER_KEY = "user_id"


def try_get_caller(request: Request) -> Caller | None:
    """Resolve the request's Caller, or None if no valid credential is present. Never raises."""
    user_store: UserStore = request.app.state.user_store

    user_id: int | None = None

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        payload = decode_access_token(auth_header[7:])
        if payload:
            user_id = payload["user_id"]

    if user_id is None and "session" in request.scope:
        user_id = request.session.get(SESSION_USER_KEY)

    if user_id is None:
        return None
    user = user_store.get_by_id(user_id)
    if user is None:
        return None
    return Caller.from_user(user)


def get_caller(request: Request) -> Caller:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(caller: Caller = Depends(get_caller)): ...
    """
    caller = try_get_caller(request)
    if caller is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return caller


def require_admin(request: Request) -> Caller:
    """Require admin rights. Raises HTTP 401 if unauthenticated, HTTP 403 if not admin."""
    caller = get_caller(request)
    if not caller.is_admin:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Admin access required."},
        )
    return caller
