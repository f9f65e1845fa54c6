"""
tests/test_tokens.py -- Unit tests for auth.tokens.TokenService.

Covers:
  - issue/verify happy path for HS256 and RS256
  - configured lifetime is applied to exp and expires_in
  - malformed input -> MalformedTokenError
  - wrong key, tampered signature, algorithm substitution -> InvalidSignatureError
  - expired token -> TokenExpiredError
  - tampered AND expired reports invalid signature (signature checked first)
  - HMAC digest is deterministic and keyed
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

from auth.tokens import (
    InvalidSignatureError,
    MalformedTokenError,
    TokenErrorKind,
    TokenExpiredError,
    TokenService,
)

SECRET = "unit-test-secret-key-that-is-long-enough"


def _tamper_signature(token: str) -> str:
    """Flip the first character of the signature segment.

    The first character always carries signature bits; the last one may only
    carry base64 padding bits.
    """
    header, payload, signature = token.split(".")
    first = "A" if signature[0] != "A" else "B"
    return ".".join([header, payload, first + signature[1:]])


def _b64(data: dict) -> str:
    return base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()


def _past_clock() -> datetime:
    return datetime.now(timezone.utc) - timedelta(hours=2)


@pytest.fixture(scope="module")
def rsa_keys() -> tuple[str, str]:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = (
        key.public_key()
        .public_bytes(serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo)
        .decode()
    )
    return private_pem, public_pem


class TestIssueAndVerify:
    def test_round_trip_returns_user_id(self, tokens: TokenService) -> None:
        issued = tokens.issue(42)
        assert tokens.verify(issued.token) == 42

    def test_claims_carry_only_subject_and_times(self, tokens: TokenService) -> None:
        claims = jwt.get_unverified_claims(tokens.issue(7).token)
        assert set(claims) == {"sub", "iat", "exp"}
        assert claims["sub"] == "7"

    def test_lifetime_comes_from_configuration(self) -> None:
        service = TokenService(SECRET, expire_seconds=120)
        issued = service.issue(1)
        claims = jwt.get_unverified_claims(issued.token)
        assert issued.expires_in == 120
        assert claims["exp"] - claims["iat"] == 120
        assert issued.expires_at > datetime.now(timezone.utc)

    def test_repr_hides_secret(self, tokens: TokenService) -> None:
        assert "secret" not in repr(tokens).lower()

    def test_rs256_round_trip(self, rsa_keys: tuple[str, str]) -> None:
        private_pem, public_pem = rsa_keys
        service = TokenService(SECRET, algorithm="RS256", signing_key=private_pem, verification_key=public_pem)
        assert service.verify(service.issue(9).token) == 9


class TestMalformed:
    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b", "abc.def.ghi"])
    def test_unparseable_tokens(self, tokens: TokenService, token: str) -> None:
        with pytest.raises(MalformedTokenError) as exc_info:
            tokens.verify(token)
        assert exc_info.value.kind is TokenErrorKind.MALFORMED

    def test_missing_subject(self) -> None:
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode({"exp": exp}, SECRET, algorithm="HS256")
        with pytest.raises(MalformedTokenError):
            TokenService(SECRET).verify(token)

    def test_missing_expiry(self) -> None:
        token = jwt.encode({"sub": "1"}, SECRET, algorithm="HS256")
        with pytest.raises(MalformedTokenError):
            TokenService(SECRET).verify(token)

    def test_non_numeric_subject(self) -> None:
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode({"sub": "alice", "exp": exp}, SECRET, algorithm="HS256")
        with pytest.raises(MalformedTokenError):
            TokenService(SECRET).verify(token)


class TestInvalidSignature:
    def test_tampered_signature(self, tokens: TokenService) -> None:
        token = _tamper_signature(tokens.issue(1).token)
        with pytest.raises(InvalidSignatureError) as exc_info:
            tokens.verify(token)
        assert exc_info.value.kind is TokenErrorKind.INVALID_SIGNATURE

    def test_tampered_payload(self, tokens: TokenService) -> None:
        """Swapping in another subject without re-signing fails the signature check."""
        header, _payload, signature = tokens.issue(1).token.split(".")
        exp = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
        forged = ".".join([header, _b64({"sub": "2", "exp": exp}), signature])
        with pytest.raises(InvalidSignatureError):
            tokens.verify(forged)

    def test_wrong_secret(self, tokens: TokenService) -> None:
        other = TokenService("a-completely-different-secret-value-xyz")
        with pytest.raises(InvalidSignatureError):
            tokens.verify(other.issue(1).token)

    def test_alg_none_rejected(self, tokens: TokenService) -> None:
        exp = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
        token = f"{_b64({'alg': 'none', 'typ': 'JWT'})}.{_b64({'sub': '1', 'exp': exp})}."
        with pytest.raises(InvalidSignatureError):
            tokens.verify(token)

    def test_hs256_signed_with_public_key_rejected_by_rs256(self, rsa_keys: tuple[str, str]) -> None:
        """Algorithm confusion: the public key must never be accepted as an HMAC secret."""
        private_pem, public_pem = rsa_keys
        service = TokenService(SECRET, algorithm="RS256", signing_key=private_pem, verification_key=public_pem)
        exp = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
        signing_input = f"{_b64({'alg': 'HS256', 'typ': 'JWT'})}.{_b64({'sub': '1', 'exp': exp})}"
        mac = hmac.new(public_pem.encode(), signing_input.encode(), hashlib.sha256).digest()
        forged = signing_input + "." + base64.urlsafe_b64encode(mac).rstrip(b"=").decode()
        with pytest.raises(InvalidSignatureError):
            service.verify(forged)


class TestExpired:
    def test_expired_token(self) -> None:
        service = TokenService(SECRET, expire_seconds=60, clock=_past_clock)
        token = service.issue(1).token
        with pytest.raises(TokenExpiredError) as exc_info:
            TokenService(SECRET).verify(token)
        assert exc_info.value.kind is TokenErrorKind.EXPIRED

    def test_tampered_expired_token_reports_signature(self) -> None:
        service = TokenService(SECRET, expire_seconds=60, clock=_past_clock)
        token = _tamper_signature(service.issue(1).token)
        with pytest.raises(InvalidSignatureError):
            TokenService(SECRET).verify(token)


class TestDigest:
    def test_deterministic(self, tokens: TokenService) -> None:
        assert tokens.digest("raw-session-id") == tokens.digest("raw-session-id")

    def test_keyed_by_secret(self, tokens: TokenService) -> None:
        other = TokenService("a-completely-different-secret-value-xyz")
        assert tokens.digest("raw-session-id") != other.digest("raw-session-id")

    def test_is_sha256_hex(self, tokens: TokenService) -> None:
        digest = tokens.digest("raw-session-id")
        assert len(digest) == 64
        int(digest, 16)
