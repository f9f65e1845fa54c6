"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in blog/models.py -- dataclasses own domain shape; stores, strategies, and
routes do the work.

A strategy returns exactly one of the three AuthResult variants and the guard
branches on which one it got.

Layer rule: no imports from api/, blog/, or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


@dataclass
class User:
    """A registered account.

    email is stored lower-cased and is unique. username is optional but unique
    when present. hashed_password and salt never leave the server: API response
    models are built field by field and do not include them.
    """

    name: str
    email: str
    id: int | None = None
    username: str | None = None
    hashed_password: str | None = None
    salt: str | None = None  # bcrypt salt prefix; also embedded in hashed_password
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Session:
    """A server-side login session for the cookie transport.

    token_hash is HMAC-SHA256(SECRET_KEY, raw_session_id). The raw id only
    ever exists in the client's cookie.
    """

    user_id: int
    token_hash: str
    expires_at: str  # ISO 8601
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class HashRecord:
    """Output of PasswordHasher.hash(); what gets persisted for a credential."""

    hash: str
    salt: str | None = None


@dataclass(frozen=True)
class LocalCredentials:
    """Transient login input. Exists only for the duration of one authenticate() call."""

    identifier: str  # email or username
    password: str

    def __repr__(self) -> str:
        return f"LocalCredentials(identifier={self.identifier!r}, password='***')"


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """The resolved caller for one request. Never persisted."""

    user: User
    method: str  # "local", "bearer", "session"

    @property
    def user_id(self) -> int:
        return self.user.id  # type: ignore[return-value]


class RejectReason(str, Enum):
    MISSING_CREDENTIALS = "missing_credentials"
    UNKNOWN_USER = "unknown_user"
    BAD_CREDENTIALS = "bad_credentials"
    TOKEN_MALFORMED = "malformed"
    TOKEN_INVALID_SIGNATURE = "invalid_signature"
    TOKEN_EXPIRED = "expired"
    SESSION_INVALID = "session_invalid"
    SESSION_EXPIRED = "session_expired"


@dataclass(frozen=True)
class Authenticated:
    identity: AuthenticatedIdentity


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason


@dataclass(frozen=True)
class Errored:
    """Infrastructure failure (store unreachable, etc.). Maps to 500, not 401."""

    cause: BaseException


AuthResult = Union[Authenticated, Rejected, Errored]
