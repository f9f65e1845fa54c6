"""
auth/guard.py -- Request-level authentication gate and ownership checks.

AuthGuard is built once at startup by build_auth_guard() and stored on
app.state.auth_guard. There is no module-level strategy registry: everything
the guard needs is passed in, so tests can build one against in-memory stores.

Per-request state machine (recorded on request.state.auth_state):

    unauthenticated -> authenticating -> authenticated | rejected | error
    authenticated   -> authorized | forbidden        (only when ownership is checked)

Failures never reach route bodies: the guard raises UnauthenticatedError (401)
or InfrastructureError (500), and ensure_owner() raises ForbiddenError (403).
401 means "who are you?"; 403 means "we know who you are, and no".

Layer rule: no imports from api/ or blog/. Resources only need an author_id
attribute, so blog.models.Post works without an import.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from starlette.requests import Request

from auth.models import Authenticated, AuthenticatedIdentity, Errored, Rejected, RejectReason
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.strategies import BearerStrategy, LocalStrategy, SessionStrategy, Strategy
from auth.tokens import TokenService
from core.config import Settings
from core.errors import ForbiddenError, InfrastructureError, UnauthenticatedError

logger = logging.getLogger("quill.auth.guard")


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"
    ERROR = "error"
    AUTHORIZED = "authorized"
    FORBIDDEN = "forbidden"


class OwnedResource(Protocol):
    author_id: int | None


# Rejection reason -> (error code, client message). Local-login reasons are
# absent on purpose: the login route answers them itself with one message.
_REJECTION_MESSAGES: dict[RejectReason, tuple[str, str]] = {
    RejectReason.MISSING_CREDENTIALS: ("unauthorized", "Authentication required."),
    RejectReason.TOKEN_MALFORMED: ("token_malformed", "Malformed authentication token."),
    RejectReason.TOKEN_INVALID_SIGNATURE: ("invalid_token", "Invalid authentication token."),
    RejectReason.TOKEN_EXPIRED: ("token_expired", "Authentication token has expired. Please log in again."),
    RejectReason.UNKNOWN_USER: ("invalid_token", "Invalid authentication token."),
    RejectReason.SESSION_INVALID: ("invalid_session", "Invalid session. Please log in again."),
    RejectReason.SESSION_EXPIRED: ("session_expired", "Session has expired. Please log in again."),
}


def _set_state(request: Request, state: AuthState) -> None:
    request.state.auth_state = state


@dataclass
class AuthGuard:
    """The authentication components of the app, wired once at startup.

    request_strategies are tried in order; the first one that finds its
    credential in the request decides the outcome. A bad bearer token is not
    rescued by a valid session cookie.
    """

    local: LocalStrategy
    bearer: BearerStrategy
    session: SessionStrategy | None = None
    request_strategies: list[Strategy] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.request_strategies:
            self.request_strategies = [self.bearer] + ([self.session] if self.session else [])

    def authenticate(self, request: Request) -> AuthenticatedIdentity:
        """Resolve the caller or raise. On success the identity is attached to request.state."""
        _set_state(request, AuthState.UNAUTHENTICATED)

        result = Rejected(RejectReason.MISSING_CREDENTIALS)
        for strategy in self.request_strategies:
            credentials = strategy.extract(request)
            if credentials is None:
                continue
            _set_state(request, AuthState.AUTHENTICATING)
            result = strategy.authenticate(credentials)
            break

        if isinstance(result, Authenticated):
            _set_state(request, AuthState.AUTHENTICATED)
            request.state.identity = result.identity
            return result.identity

        if isinstance(result, Errored):
            _set_state(request, AuthState.ERROR)
            logger.error(
                "Authentication backend failure on %s %s: %s",
                request.method,
                request.url.path,
                type(result.cause).__name__,
            )
            raise InfrastructureError()

        _set_state(request, AuthState.REJECTED)
        code, message = _REJECTION_MESSAGES.get(result.reason, _REJECTION_MESSAGES[RejectReason.MISSING_CREDENTIALS])
        if result.reason is not RejectReason.MISSING_CREDENTIALS:
            logger.info("Authentication rejected on %s %s: %s", request.method, request.url.path, result.reason.value)
        raise UnauthenticatedError(message, code=code)


def build_auth_guard(
    settings: Settings,
    user_store: UserStore,
    hasher: PasswordHasher,
    tokens: TokenService,
) -> AuthGuard:
    """Assemble the guard from configuration. Called once from the app lifespan."""
    session = None
    if settings.session_cookies_enabled:
        session = SessionStrategy(user_store, tokens, expire_seconds=settings.session_expire_seconds)
    return AuthGuard(
        local=LocalStrategy(user_store, hasher),
        bearer=BearerStrategy(user_store, tokens),
        session=session,
    )


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------


def require_owner(identity: AuthenticatedIdentity, resource: OwnedResource) -> bool:
    """Return True if identity is the recorded author of resource.

    A resource with no author (author deleted) matches nobody.
    """
    return resource.author_id is not None and resource.author_id == identity.user_id


def ensure_owner(request: Request, identity: AuthenticatedIdentity, resource: OwnedResource) -> None:
    """Raise ForbiddenError unless identity owns resource. Records authorized/forbidden on request.state."""
    if not require_owner(identity, resource):
        _set_state(request, AuthState.FORBIDDEN)
        logger.info(
            "Ownership check failed: user_id=%d on %s %s",
            identity.user_id,
            request.method,
            request.url.path,
        )
        raise ForbiddenError()
    _set_state(request, AuthState.AUTHORIZED)


@dataclass(frozen=True)
class _AccountRef:
    author_id: int | None


def ensure_self(request: Request, identity: AuthenticatedIdentity, user_id: int) -> None:
    """Account-level ownership: a user owns their own record and nobody else's."""
    ensure_owner(request, identity, _AccountRef(author_id=user_id))
