"""
auth/passwords.py -- bcrypt password hashing.

bcrypt is the right choice for low-entropy secrets (passwords) because its
cost factor makes brute-force expensive. The cost is BCRYPT_ROUNDS from
core.config; tests run with the minimum (4) to stay fast.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

The salt is embedded in the bcrypt output and also returned separately in the
HashRecord so the store can persist it next to the hash. verify() recomputes
the hash with the stored salt and compares with hmac.compare_digest.
"""

from __future__ import annotations

import hmac

import bcrypt

from auth.models import HashRecord
from core.errors import ValidationError

# bcrypt only looks at the first 72 bytes of input. Longer passwords are
# rejected rather than silently truncated.
MAX_PASSWORD_BYTES = 72

# "$2b$" + 2-digit cost + "$" + 22-char salt
_SALT_PREFIX_LEN = 29


class PasswordHasher:
    """One-way salted hash plus constant-time verify.

    Usage:
        hasher = PasswordHasher(rounds=12)
        record = hasher.hash("correct horse")
        hasher.verify("correct horse", record)  # True
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, password: str) -> HashRecord:
        """Return a HashRecord for password using a fresh random salt.

        Raises ValidationError for an empty password or one longer than 72 bytes.
        """
        if not isinstance(password, str) or not password:
            raise ValidationError("Password must be a non-empty string.")
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        salt = bcrypt.gensalt(rounds=self.rounds)
        hashed = bcrypt.hashpw(encoded, salt)
        return HashRecord(hash=hashed.decode("utf-8"), salt=salt.decode("utf-8"))

    def verify(self, password: str, record: HashRecord | None) -> bool:
        """Return True only if password matches record. Never raises.

        A malformed record (None, empty hash, unusable salt) fails closed, and so
        does a password over 72 bytes: some bcrypt releases truncate it silently.
        """
        if record is None or not record.hash or not isinstance(password, str):
            return False
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            return False
        salt = record.salt or record.hash[:_SALT_PREFIX_LEN]
        try:
            candidate = bcrypt.hashpw(encoded, salt.encode("utf-8"))
        except (ValueError, TypeError):
            return False
        return hmac.compare_digest(candidate, record.hash.encode("utf-8"))
