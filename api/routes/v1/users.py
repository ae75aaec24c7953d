"""
api/routes/v1/users.py -- Account and session endpoints.

Routes:
  POST /api/v1/users/register   -- create an account (public)
  POST /api/v1/users/login      -- start a session; also returns a bearer token
  POST /api/v1/users/logout     -- end the session
  GET  /api/v1/users/me         -- current caller (requires auth)
  PUT  /api/v1/users/change     -- change display name (requires auth)
  GET  /api/v1/users/history    -- caller's rental history (requires auth)

Security:
  POST /login is rate-limited per IP (LOGIN_RATE_LIMIT).
  authenticate_user() provides timing equalization -- use it, never inline.
  Cache-Control: no-store on login responses.
  Accounts created here are never admins.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter
from api.models import (
    ChangeNameRequest,
    HistoryEntry,
    HistoryResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    UserResponse,
)
from auth.dependencies import SESSION_USER_KEY, get_caller
from auth.models import Caller, User
from auth.store import UserStore
from auth.tokens import authenticate_user, create_access_token, hash_password
from core.config import get_settings
from core.errors import Conflict, NotFound
from rentals.service import RentalService

logger = logging.getLogger("library.api.users")

_settings = get_settings()

router = APIRouter(prefix="/users")


def _login_rate_limit() -> str:
    # Read on every request so a changed setting applies without re-importing.
    return _settings.login_rate_limit


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, email=user.email, name=user.name, is_admin=user.is_admin)


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/register", response_model=UserResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> UserResponse:
    """Create a regular (non-admin) account. Email must be unused."""
    user_store: UserStore = request.app.state.user_store
    user = User(email=body.email, name=body.name, hashed_password=hash_password(body.password))
    try:
        user_id = user_store.create_user(user)
    except IntegrityError as exc:
        raise Conflict("This email address is already registered.", code="email_exists") from exc
    logger.info("User registered (id=%s)", user_id)
    return _user_to_response(user_store.get_by_id(user_id))


@limiter.limit(_login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password.

    Stores the user id in the signed session cookie and returns a bearer
    token with the same lifetime. Wrong email and wrong password produce the
    same error so email existence is not leaked.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid email or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id
    token = create_access_token(user.id, user.email)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=_settings.token_expire_seconds,
            user=_user_to_response(user),
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request) -> MessageResponse:
    """Clear the session. Bearer tokens simply expire."""
    request.session.clear()
    return MessageResponse(message="Logged out.")


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserResponse)
def me(request: Request, caller: Caller = Depends(get_caller)) -> UserResponse:
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(caller.id)
    if user is None:
        raise NotFound("User not found.", code="user_not_found")
    return _user_to_response(user)


@router.put("/change", response_model=UserResponse)
def change_name(request: Request, body: ChangeNameRequest, caller: Caller = Depends(get_caller)) -> UserResponse:
    """Change the caller's display name. The current name is rejected as a no-op."""
    user_store: UserStore = request.app.state.user_store
    if body.name == caller.name:
        raise Conflict("This is already your name.", code="name_unchanged")
    if not user_store.update_name(caller.id, body.name):
        raise NotFound("User not found.", code="user_not_found")
    return _user_to_response(user_store.get_by_id(caller.id))


@router.get("/history", response_model=HistoryResponse)
def history(request: Request, caller: Caller = Depends(get_caller)) -> HistoryResponse:
    """Return the caller's rentals, newest checkout first. 404 if there are none."""
    rentals: RentalService = request.app.state.rentals
    entries = rentals.history(caller)
    return HistoryResponse(history=[HistoryEntry.from_entry(e) for e in entries])
