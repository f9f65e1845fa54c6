"""
api/routes/v1/auth.py -- Registration, login, logout, and identity endpoints.

Routes:
  POST /api/v1/auth/register  -- create account; returns profile + bearer token
  POST /api/v1/auth/login     -- password login; returns bearer token (and session cookie)
  POST /api/v1/auth/logout    -- ends the server-side session, clears cookie
  GET  /api/v1/auth/me        -- current user's profile (requires auth)

Security:
  POST /login and POST /register are rate-limited per IP.
  LocalStrategy provides timing equalization -- use it, never inline a
    store lookup + verify.
  Login failures return one response for "no such user" and "wrong password".
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter
from api.models import (
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserPublic,
)
from auth.dependencies import get_current_user
from auth.guard import AuthGuard
from auth.models import Errored, LocalCredentials, Rejected, User
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.strategies import SESSION_COOKIE
from auth.tokens import TokenService
from core.config import Settings, get_settings
from core.errors import DuplicateKeyError, ForbiddenError, InfrastructureError

logger = logging.getLogger("quill.api.auth")

_settings = get_settings()

# Auth policy:
# - POST /api/v1/auth/register: public -- gated by SELF_REGISTRATION_ENABLED
# - POST /api/v1/auth/login:    public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/logout:   public -- clearing a session needs no prior auth
# - GET  /api/v1/auth/me:       requires auth (get_current_user)
router = APIRouter()

_BAD_CREDENTIALS = "Invalid email/username or password."


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _set_session_cookie(response: JSONResponse, raw_session_id: str, settings: Settings) -> None:
    """Write the server-side session id as an httpOnly cookie.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation for most cases.
    secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
    max_age: matches the server-side session expiry so both end together.
    """
    response.set_cookie(
        SESSION_COOKIE,
        value=raw_session_id,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=settings.session_expire_seconds,
    )


def _token_response(request: Request, account: User, content_model: type[TokenResponse], **extra) -> JSONResponse:
    """Issue a bearer token for account and, when enabled, open a cookie session."""
    tokens: TokenService = request.app.state.tokens
    guard: AuthGuard = request.app.state.auth_guard
    issued = tokens.issue(account.id)
    body = content_model(token=issued.token, expires_in=issued.expires_in, expires_at=issued.expires_at, **extra)
    resp = JSONResponse(status_code=200, content=body.model_dump(mode="json"))
    if guard.session is not None:
        _set_session_cookie(resp, guard.session.open_session(account.id), request.app.state.settings)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(_settings.register_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/register", response_model=RegisterResponse)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account, then log it in.

    Duplicate email or username answers 409 and leaves the existing record
    untouched. The store's UNIQUE constraints back up the pre-checks when two
    registrations race.
    """
    settings: Settings = request.app.state.settings
    if not settings.self_registration_enabled:
        raise ForbiddenError("Self-registration is disabled.", code="registration_disabled")

    user_store: UserStore = request.app.state.user_store
    hasher: PasswordHasher = request.app.state.hasher

    if user_store.get_by_email(body.email) is not None:
        raise DuplicateKeyError("An account with that email already exists.", code="duplicate_email")
    if body.username and user_store.get_by_username(body.username) is not None:
        raise DuplicateKeyError("That username is already taken.", code="duplicate_username")

    record = hasher.hash(body.password)
    new_user = User(
        name=body.name,
        email=body.email,
        username=body.username,
        hashed_password=record.hash,
        salt=record.salt,
    )
    try:
        user_id = user_store.create_user(new_user)
    except IntegrityError as exc:
        raise DuplicateKeyError("An account with that email or username already exists.") from exc

    created = user_store.get_by_id(user_id)
    if created is None:
        raise InfrastructureError("User not found after write.")
    logger.info("Registered user_id=%d", user_id)
    return _token_response(request, created, RegisterResponse, user=UserPublic.from_user(created))


@limiter.limit(_settings.login_rate_limit)  # brute-force mitigation
@router.post("/auth/login", response_model=TokenResponse, responses={401: {"model": ErrorResponse}})
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email-or-username and password.

    Unknown identifier and wrong password produce byte-identical responses.
    """
    guard: AuthGuard = request.app.state.auth_guard
    result = guard.local.authenticate(LocalCredentials(identifier=body.identifier, password=body.password))

    if isinstance(result, Errored):
        logger.error("Login backend failure: %s", type(result.cause).__name__)
        raise InfrastructureError()

    if isinstance(result, Rejected):
        logger.info("Login rejected")
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse.build("bad_credentials", _BAD_CREDENTIALS).model_dump(),
            headers={"WWW-Authenticate": "Bearer"},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    user = result.identity.user
    logger.info("Login succeeded for user_id=%d", user.id)
    return _token_response(request, user, TokenResponse)


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request) -> JSONResponse:
    """End the server-side session (if any) and clear the cookie.

    Bearer tokens are stateless and stay valid until they expire; clients
    discard them on logout.
    """
    guard: AuthGuard = request.app.state.auth_guard
    raw = request.cookies.get(SESSION_COOKIE)
    if raw and guard.session is not None:
        guard.session.close_session(raw)
    resp = JSONResponse(content=MessageResponse(message="Logged out.").model_dump())
    resp.delete_cookie(SESSION_COOKIE)
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserPublic)
def me(current_user: User = Depends(get_current_user)) -> UserPublic:
    """Return the profile of the currently authenticated user."""
    return UserPublic.from_user(current_user)
