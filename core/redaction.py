"""
core/redaction.py -- Logging filter that scrubs credentials from log records.

Passwords, bcrypt hashes, bearer tokens, and JWTs must never reach a log sink.
Application code already avoids logging them; this filter is the last line in
case a third-party library or an exception message echoes one back.

install_redaction() attaches RedactingFilter to every handler on the root
logger. Call it right after logging.basicConfig().
"""

from __future__ import annotations

import logging
import re

_REDACTED = "***REDACTED***"

_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # Authorization: Bearer <token>
    (re.compile(r"(bearer\s+)[A-Za-z0-9_\-\.=]+", re.IGNORECASE), r"\1" + _REDACTED),
    # Bare JWTs (three base64url segments, header starts with eyJ)
    (re.compile(r"eyJ[A-Za-z0-9_\-]*\.[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+"), _REDACTED),
    # bcrypt hashes and salts
    (re.compile(r"\$2[abxy]?\$\d{2}\$[./A-Za-z0-9]{22,53}"), _REDACTED),
    # password=..., "password": "...", secret_key=..., session_id=...
    (
        re.compile(
            r"((?:password|passwd|pwd|secret[_-]?key|session[_-]?id|token)[\"']?\s*[:=]\s*[\"']?)([^\"'\s,}]+)",
            re.IGNORECASE,
        ),
        r"\1" + _REDACTED,
    ),
]


def redact(message: str) -> str:
    """Return message with every credential-looking fragment replaced."""
    for pattern, replacement in _PATTERNS:
        message = pattern.sub(replacement, message)
    return message


class RedactingFilter(logging.Filter):
    """Rewrite the formatted message of each record before it is emitted.

    The record's args are merged into msg first so a token passed as a
    %-style argument is caught too. Exception text is left to the formatter;
    exception messages raised by this codebase carry no credentials.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        record.msg = redact(message)
        record.args = None
        return True


def install_redaction(logger: logging.Logger | None = None) -> None:
    """Attach a RedactingFilter to every handler of logger (root by default). Idempotent."""
    target = logger or logging.getLogger()
    for handler in target.handlers:
        if not any(isinstance(f, RedactingFilter) for f in handler.filters):
            handler.addFilter(RedactingFilter())
