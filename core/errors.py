"""
core/errors.py -- Application error taxonomy.

Every error a route handler can surface is an AppError subclass carrying the
HTTP status, a stable machine-readable code, and a message that is safe to
show to clients. api/main.py registers one exception handler for AppError and
renders all of them in the same envelope.

Messages must never include passwords, hashes, tokens, or the signing secret.
Callers pass generic text; details belong in server-side logs only.

Layer rule: core/ is the kernel. No imports from api/, auth/, or blog/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        self.headers = headers
        super().__init__(self.message)


class ValidationError(AppError):
    """Bad input shape or value."""

    status_code = 400
    code = "validation_error"
    message = "Request validation failed."


class DuplicateKeyError(AppError):
    """A unique constraint (email, username) would be violated."""

    status_code = 409
    code = "duplicate_key"
    message = "A record with that value already exists."


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"
    message = "Resource not found."


class UnauthenticatedError(AppError):
    """Missing, invalid, or expired credentials. Always carries WWW-Authenticate."""

    status_code = 401
    code = "unauthorized"
    message = "Authentication required."

    def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
        super().__init__(message, code=code, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    """Authenticated, but not allowed to act on this resource."""

    status_code = 403
    code = "forbidden"
    message = "You do not have permission to perform this action."


class InfrastructureError(AppError):
    """Store or signing failure. The underlying cause is logged, never returned."""

    status_code = 500
    code = "infrastructure_error"
    message = "A server error occurred. Please try again later."
