#  Voice Tutor - Session Token Tests
#
#  Tests for issuing and verifying signed session tokens: round trip,
#  expiry, tampering, wrong secret, and wrong token type.
#
#  Depends on: backend/services/tokens.py
#  Used by:    pytest

import base64
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from backend.config import ConfigError
from backend.services.tokens import Identity, SessionTokenService

SECRET = "unit-test-secret-that-is-at-least-32-chars"
OTHER_SECRET = "another-secret-that-is-also-32-chars-long"

IDENTITY = Identity(user_id="user-123", email="katie@example.com", display_name="Katie")


def _b64decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _flip_signature_bit(token: str) -> str:
    """Flip one bit of the decoded signature and re-encode it."""
    header, payload, signature = token.split(".")
    raw = bytearray(_b64decode(signature))
    raw[0] ^= 0x01
    return f"{header}.{payload}.{_b64encode(bytes(raw))}"


class TestConstruction:
    def test_empty_secret_is_config_error(self):
        with pytest.raises(ConfigError, match="not configured"):
            SessionTokenService(secret="")

    def test_default_lifetime_is_30_days(self):
        assert SessionTokenService(secret=SECRET).lifetime == timedelta(days=30)


class TestIssueVerify:
    def test_roundtrip_returns_identity(self):
        service = SessionTokenService(secret=SECRET)
        claims = service.verify(service.issue(IDENTITY))
        assert claims is not None
        assert claims.identity == IDENTITY

    def test_expiry_is_issued_at_plus_lifetime(self):
        service = SessionTokenService(secret=SECRET, lifetime=timedelta(days=30))
        # iat/exp are whole seconds on the wire
        issued = datetime.now(timezone.utc).replace(microsecond=0)
        claims = service.verify(service.issue(IDENTITY, now=issued))
        assert claims.issued_at == issued
        assert claims.expires_at - claims.issued_at == timedelta(days=30)

    def test_payload_carries_identity_claims(self):
        service = SessionTokenService(secret=SECRET)
        payload = jwt.decode(service.issue(IDENTITY), SECRET, algorithms=["HS256"])
        assert payload["sub"] == "user-123"
        assert payload["email"] == "katie@example.com"
        assert payload["name"] == "Katie"
        assert payload["type"] == "session"

    def test_tokens_are_verifiable_by_another_instance_with_same_secret(self):
        token = SessionTokenService(secret=SECRET).issue(IDENTITY)
        assert SessionTokenService(secret=SECRET).verify(token) is not None


class TestRejections:
    def test_expired_token_returns_none(self):
        service = SessionTokenService(secret=SECRET, lifetime=timedelta(days=30))
        long_ago = datetime.now(timezone.utc) - timedelta(days=31)
        token = service.issue(IDENTITY, now=long_ago)
        assert service.verify(token) is None

    def test_token_just_inside_lifetime_is_valid(self):
        service = SessionTokenService(secret=SECRET, lifetime=timedelta(days=30))
        almost = datetime.now(timezone.utc) - timedelta(days=29, hours=23)
        assert service.verify(service.issue(IDENTITY, now=almost)) is not None

    def test_tampered_signature_returns_none(self):
        service = SessionTokenService(secret=SECRET)
        token = service.issue(IDENTITY)
        assert service.verify(_flip_signature_bit(token)) is None

    def test_tampered_payload_returns_none(self):
        service = SessionTokenService(secret=SECRET)
        header, _, signature = service.issue(IDENTITY).split(".")
        forged_payload = _b64encode(
            b'{"sub":"admin","email":"a@b.c","name":"x","type":"session",'
            b'"iat":1700000000,"exp":4100000000}'
        )
        assert service.verify(f"{header}.{forged_payload}.{signature}") is None

    def test_wrong_secret_returns_none(self):
        token = SessionTokenService(secret=OTHER_SECRET).issue(IDENTITY)
        assert SessionTokenService(secret=SECRET).verify(token) is None

    def test_wrong_token_type_returns_none(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "user-123", "email": "e@x.com", "name": "n", "type": "refresh",
             "iat": now, "exp": now + timedelta(hours=1)},
            SECRET, algorithm="HS256",
        )
        assert SessionTokenService(secret=SECRET).verify(token) is None

    def test_missing_identity_claims_returns_none(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "user-123", "type": "session", "iat": now, "exp": now + timedelta(hours=1)},
            SECRET, algorithm="HS256",
        )
        assert SessionTokenService(secret=SECRET).verify(token) is None

    def test_missing_exp_returns_none(self):
        token = jwt.encode(
            {"sub": "user-123", "email": "e@x.com", "name": "n", "type": "session",
             "iat": datetime.now(timezone.utc)},
            SECRET, algorithm="HS256",
        )
        assert SessionTokenService(secret=SECRET).verify(token) is None

    def test_unsigned_token_returns_none(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "user-123", "email": "e@x.com", "name": "n", "type": "session",
             "iat": now, "exp": now + timedelta(hours=1)},
            None, algorithm="none",
        )
        assert SessionTokenService(secret=SECRET).verify(token) is None

    @pytest.mark.parametrize("garbage", ["", "not.a.valid.token", "abc", "a.b.c"])
    def test_garbage_returns_none(self, garbage):
        assert SessionTokenService(secret=SECRET).verify(garbage) is None
