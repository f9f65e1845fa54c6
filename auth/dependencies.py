"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two request transports are checked in priority order by the AuthGuard:
  1. Authorization: Bearer <token> header -- API clients using JWTs.
  2. "session_id" cookie -- server-side session, when SESSION_COOKIES_ENABLED.

Both converge on an AuthenticatedIdentity after successful verification.

get_current_identity() raises 401 if unauthenticated (500 if the store is down).
get_current_user() is the same gate for handlers that only need the User.

Layer rule: no imports from api/ or blog/.
  auth/dependencies.py may import from fastapi (for Depends/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Depends, Request

from auth.guard import AuthGuard
from auth.models import AuthenticatedIdentity, User


def get_auth_guard(request: Request) -> AuthGuard:
    return request.app.state.auth_guard


def get_current_identity(request: Request) -> AuthenticatedIdentity:
    """Require authentication.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: AuthenticatedIdentity = Depends(get_current_identity)): ...
    """
    return get_auth_guard(request).authenticate(request)


def get_current_user(identity: AuthenticatedIdentity = Depends(get_current_identity)) -> User:
    """Require authentication and return the resolved User."""
    return identity.user
