"""
auth/tokens.py -- JWT issuance/verification and HMAC digests.

Security design decisions:
  JWT: python-jose, HS256 with SECRET_KEY by default, or RS256 with the
       configured key pair. Tokens carry only sub (user id), iat, and exp.
       The lifetime is TOKEN_EXPIRE_SECONDS from configuration -- callers
       cannot mint longer-lived tokens.

  Verification order: structure, then signature, then expiry. A tampered
       token is reported as invalid_signature even when it is also expired,
       so an attacker learns nothing from the expiry branch.

  Errors are typed (MalformedTokenError, InvalidSignatureError,
       TokenExpiredError) because the guard answers each one with a different
       code: malformed/invalid means "bad credential", expired means
       "log in again".

  Session digests: HMAC-SHA256(SECRET_KEY, raw_session_id). Session ids are
       32 random bytes, so a fast keyed hash is enough and gives O(1) lookup.

The service is built once at startup from Settings and injected via
app.state; nothing here reads configuration at import time.

Layer rule: no imports from api/ or blog/.
"""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

from jose import ExpiredSignatureError, JWSError, JWTError, jws, jwt

from core.config import Settings


class TokenErrorKind(str, Enum):
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"


class TokenError(Exception):
    """Base class for token verification failures. Messages never include the token."""

    kind: TokenErrorKind


class MalformedTokenError(TokenError):
    kind = TokenErrorKind.MALFORMED


class InvalidSignatureError(TokenError):
    kind = TokenErrorKind.INVALID_SIGNATURE


class TokenExpiredError(TokenError):
    kind = TokenErrorKind.EXPIRED


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime
    expires_in: int  # seconds


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issues and verifies signed, time-limited bearer tokens.

    Usage:
        tokens = TokenService.from_settings(get_settings())
        issued = tokens.issue(user.id)
        user_id = tokens.verify(issued.token)
    """

    def __init__(
        self,
        secret_key: str,
        *,
        expire_seconds: int = 3600,
        algorithm: str = "HS256",
        signing_key: str | None = None,
        verification_key: str | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds
        self.algorithm = algorithm
        self._signing_key = signing_key or secret_key
        self._verification_key = verification_key or secret_key
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenService:
        return cls(
            settings.secret_key,
            expire_seconds=settings.token_expire_seconds,
            algorithm=settings.jwt_algorithm,
            signing_key=settings.signing_key,
            verification_key=settings.verification_key,
        )

    def __repr__(self) -> str:
        return f"TokenService(algorithm={self.algorithm!r}, expire_seconds={self.expire_seconds})"

    # ------------------------------------------------------------------
    # JWT
    # ------------------------------------------------------------------

    def issue(self, user_id: int) -> IssuedToken:
        """Sign a token for user_id that expires expire_seconds from now."""
        issued_at = self._clock()
        expires_at = issued_at + timedelta(seconds=self.expire_seconds)
        payload = {
            "sub": str(user_id),
            "iat": issued_at,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self._signing_key, algorithm=self.algorithm)
        return IssuedToken(token=token, expires_at=expires_at, expires_in=self.expire_seconds)

    def verify(self, token: str) -> int:
        """Return the user id carried by token.

        Raises:
            MalformedTokenError:   token cannot be parsed, or claims are missing.
            InvalidSignatureError: signature does not verify, or wrong algorithm.
            TokenExpiredError:     signature is valid but exp is in the past.
        """
        if not token or not isinstance(token, str):
            raise MalformedTokenError("Token is empty.")

        try:
            header = jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise MalformedTokenError("Token could not be parsed.") from exc

        # Reject algorithm substitution (e.g. "none" or HS256 against an RS256 public key)
        if header.get("alg") != self.algorithm:
            raise InvalidSignatureError("Unexpected signing algorithm.")

        try:
            jws.verify(token, self._verification_key, algorithms=[self.algorithm])
        except JWSError as exc:
            raise InvalidSignatureError("Signature verification failed.") from exc

        try:
            claims = jwt.decode(
                token,
                self._verification_key,
                algorithms=[self.algorithm],
                options={"require_exp": True, "require_sub": True},
            )
        except ExpiredSignatureError as exc:
            raise TokenExpiredError("Token has expired.") from exc
        except JWTError as exc:
            raise MalformedTokenError("Token claims are invalid.") from exc

        try:
            return int(claims["sub"])
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedTokenError("Token subject is invalid.") from exc

    # ------------------------------------------------------------------
    # HMAC digest (server-side session ids)
    # ------------------------------------------------------------------

    def digest(self, raw: str) -> str:
        """Return HMAC-SHA256(SECRET_KEY, raw) as a hex string."""
        return hmac.new(self._secret_key.encode(), raw.encode(), hashlib.sha256).hexdigest()
