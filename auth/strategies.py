"""
auth/strategies.py -- Pluggable authentication strategies.

Each strategy turns one kind of credential into an AuthResult:
  Authenticated(identity) -- credential verified, user resolved
  Rejected(reason)        -- credential missing, wrong, expired, or user gone
  Errored(cause)          -- the store failed; the guard answers 500, not 401

Strategies:
  LocalStrategy   -- identifier (email or username) + password, used by /auth/login.
  BearerStrategy  -- Authorization: Bearer <jwt>.
  SessionStrategy -- "session_id" cookie pointing at a server-side session row.

Bearer and session are interchangeable request transports: both end in the
same AuthenticatedIdentity, so the guard does not care which one ran.

Security:
  LocalStrategy always runs bcrypt, against a dummy hash when the identifier
  is unknown, so response time does not reveal whether an account exists.
  Both failure reasons are collapsed into one response by the login route.

  Bearer and session strategies re-fetch the user on every request. A deleted
  user's still-valid token or session fails closed.

Layer rule: no imports from api/ or blog/.
"""

from __future__ import annotations

import logging
import secrets
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from starlette.requests import Request

from auth.models import (
    Authenticated,
    AuthenticatedIdentity,
    AuthResult,
    Errored,
    HashRecord,
    LocalCredentials,
    Rejected,
    RejectReason,
    Session,
)
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenError, TokenService

logger = logging.getLogger("quill.auth.strategies")

SESSION_COOKIE = "session_id"


class Strategy(ABC):
    """Resolve credentials into an identity or a failure."""

    name: str = ""

    def extract(self, request: Request) -> Any | None:
        """Pull this strategy's credential out of a request. None means "not present"."""
        return None

    @abstractmethod
    def authenticate(self, credentials: Any) -> AuthResult:
        """Verify credentials. Never raises for bad input; returns Rejected instead."""


# ---------------------------------------------------------------------------
# Local (identifier + password)
# ---------------------------------------------------------------------------


class LocalStrategy(Strategy):
    name = "local"

    def __init__(self, user_store: UserStore, hasher: PasswordHasher) -> None:
        self.user_store = user_store
        self.hasher = hasher
        # Computed once so the first unknown-user login is not measurably faster.
        self._dummy = hasher.hash("quill_timing_dummy")

    def authenticate(self, credentials: LocalCredentials) -> AuthResult:
        try:
            user = self.user_store.get_by_identifier(credentials.identifier)
        except SQLAlchemyError as exc:
            return Errored(exc)

        if user is None:
            # Equalize timing -- do NOT return before running bcrypt
            self.hasher.verify(credentials.password, self._dummy)
            return Rejected(RejectReason.UNKNOWN_USER)

        record = HashRecord(hash=user.hashed_password or "", salt=user.salt)
        if not self.hasher.verify(credentials.password, record):
            return Rejected(RejectReason.BAD_CREDENTIALS)
        return Authenticated(AuthenticatedIdentity(user=user, method=self.name))


# ---------------------------------------------------------------------------
# Bearer (JWT in the Authorization header)
# ---------------------------------------------------------------------------


class BearerStrategy(Strategy):
    name = "bearer"

    def __init__(self, user_store: UserStore, tokens: TokenService) -> None:
        self.user_store = user_store
        self.tokens = tokens

    def extract(self, request: Request) -> str | None:
        auth_header = request.headers.get("Authorization", "")
        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() != "bearer":
            return None
        # "Bearer" with nothing after it is still a bearer attempt; verify() rejects it as malformed
        return token.strip()

    def authenticate(self, credentials: str) -> AuthResult:
        try:
            user_id = self.tokens.verify(credentials)
        except TokenError as exc:
            return Rejected(RejectReason(exc.kind.value))

        try:
            user = self.user_store.get_by_id(user_id)
        except SQLAlchemyError as exc:
            return Errored(exc)
        if user is None:
            return Rejected(RejectReason.UNKNOWN_USER)
        return Authenticated(AuthenticatedIdentity(user=user, method=self.name))


# ---------------------------------------------------------------------------
# Session (server-side session id in a cookie)
# ---------------------------------------------------------------------------


class SessionStrategy(Strategy):
    name = "session"

    def __init__(self, user_store: UserStore, tokens: TokenService, expire_seconds: int = 86400) -> None:
        self.user_store = user_store
        self.tokens = tokens
        self.expire_seconds = expire_seconds

    def extract(self, request: Request) -> str | None:
        return request.cookies.get(SESSION_COOKIE) or None

    def authenticate(self, credentials: str) -> AuthResult:
        token_hash = self.tokens.digest(credentials)
        try:
            session = self.user_store.get_session_by_hash(token_hash)
            if session is None:
                return Rejected(RejectReason.SESSION_INVALID)
            if datetime.fromisoformat(session.expires_at) <= datetime.now(timezone.utc):
                self.user_store.delete_session(token_hash)
                return Rejected(RejectReason.SESSION_EXPIRED)
            user = self.user_store.get_by_id(session.user_id)
        except SQLAlchemyError as exc:
            return Errored(exc)
        if user is None:
            return Rejected(RejectReason.UNKNOWN_USER)
        return Authenticated(AuthenticatedIdentity(user=user, method=self.name))

    def open_session(self, user_id: int) -> str:
        """Create a server-side session for user_id and return the raw id for the cookie.

        secrets.token_urlsafe(32) gives 256 bits of entropy. Only the digest is stored.
        """
        raw = secrets.token_urlsafe(32)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.expire_seconds)
        self.user_store.create_session(
            Session(user_id=user_id, token_hash=self.tokens.digest(raw), expires_at=expires_at.isoformat())
        )
        logger.info("Session opened for user_id=%d", user_id)
        return raw

    def close_session(self, raw: str) -> bool:
        """Delete the session behind a raw cookie value. Returns True if one existed."""
        return self.user_store.delete_session(self.tokens.digest(raw))
