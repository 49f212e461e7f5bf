#  Voice Tutor - Request Authenticator Tests
#
#  Tests for credential extraction and the three failure kinds:
#  missing, invalid/expired, principal not found.
#
#  Depends on: backend/services/authenticator.py, backend/services/tokens.py
#  Used by:    pytest

from datetime import datetime, timedelta, timezone

import pytest

from backend.models.enums import AuthErrorKind
from backend.services.authenticator import AuthFailure, RequestAuthenticator, extract_token
from backend.services.tokens import Identity, SessionTokenService

IDENTITY = Identity(user_id="user-1", email="sam@example.com", display_name="Sam")


class FakeUsers:
    def __init__(self, users: dict):
        self.users = users
        self.lookups: list[str] = []

    async def get_user(self, user_id):
        self.lookups.append(user_id)
        return self.users.get(user_id)


class TestExtractToken:
    @pytest.mark.parametrize("raw,expected", [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("bearer abc.def.ghi", "abc.def.ghi"),
        ("BEARER abc.def.ghi", "abc.def.ghi"),
        ("abc.def.ghi", "abc.def.ghi"),
        ("  Bearer   abc.def.ghi  ", "abc.def.ghi"),
    ])
    def test_extracts_token(self, raw, expected):
        assert extract_token(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "Bearer ", "Bearer    "])
    def test_missing_token(self, raw):
        assert extract_token(raw) is None


class TestAuthenticate:
    def test_valid_token_returns_identity(self, tokens):
        authenticator = RequestAuthenticator(tokens=tokens)
        result = authenticator.authenticate(f"Bearer {tokens.issue(IDENTITY)}")
        assert result == IDENTITY

    def test_bare_token_accepted(self, tokens):
        authenticator = RequestAuthenticator(tokens=tokens)
        assert authenticator.authenticate(tokens.issue(IDENTITY)) == IDENTITY

    @pytest.mark.parametrize("raw", [None, "", "Bearer "])
    def test_missing_credential(self, tokens, raw):
        result = RequestAuthenticator(tokens=tokens).authenticate(raw)
        assert isinstance(result, AuthFailure)
        assert result.kind is AuthErrorKind.MISSING_CREDENTIAL
        assert result.detail == "No token provided"

    def test_garbage_is_invalid(self, tokens):
        result = RequestAuthenticator(tokens=tokens).authenticate("Bearer garbage")
        assert isinstance(result, AuthFailure)
        assert result.kind is AuthErrorKind.INVALID_OR_EXPIRED_CREDENTIAL
        assert result.detail == "Invalid or expired token"

    def test_expired_is_invalid(self, tokens):
        stale = tokens.issue(IDENTITY, now=datetime.now(timezone.utc) - timedelta(days=31))
        result = RequestAuthenticator(tokens=tokens).authenticate(f"Bearer {stale}")
        assert result.kind is AuthErrorKind.INVALID_OR_EXPIRED_CREDENTIAL

    def test_token_from_other_secret_is_invalid(self, tokens):
        foreign = SessionTokenService(secret="x" * 40).issue(IDENTITY)
        result = RequestAuthenticator(tokens=tokens).authenticate(foreign)
        assert result.kind is AuthErrorKind.INVALID_OR_EXPIRED_CREDENTIAL

    def test_does_not_touch_user_store(self, tokens):
        users = FakeUsers({})
        RequestAuthenticator(tokens=tokens, users=users).authenticate(tokens.issue(IDENTITY))
        assert users.lookups == []


class TestResolvePrincipal:
    async def test_returns_identity_and_user(self, tokens):
        user = {"id": "user-1", "email": "sam@example.com", "age": 10}
        authenticator = RequestAuthenticator(tokens=tokens, users=FakeUsers({"user-1": user}))
        identity, resolved = await authenticator.resolve_principal(tokens.issue(IDENTITY))
        assert identity == IDENTITY
        assert resolved == user

    async def test_deleted_user_is_principal_not_found(self, tokens):
        authenticator = RequestAuthenticator(tokens=tokens, users=FakeUsers({}))
        result = await authenticator.resolve_principal(tokens.issue(IDENTITY))
        assert isinstance(result, AuthFailure)
        assert result.kind is AuthErrorKind.PRINCIPAL_NOT_FOUND
        assert result.detail == "User not found"

    async def test_invalid_token_skips_lookup(self, tokens):
        users = FakeUsers({"user-1": {"id": "user-1"}})
        authenticator = RequestAuthenticator(tokens=tokens, users=users)
        result = await authenticator.resolve_principal("Bearer nope")
        assert result.kind is AuthErrorKind.INVALID_OR_EXPIRED_CREDENTIAL
        assert users.lookups == []

    async def test_without_user_lookup_raises(self, tokens):
        authenticator = RequestAuthenticator(tokens=tokens)
        with pytest.raises(RuntimeError):
            await authenticator.resolve_principal(tokens.issue(IDENTITY))

    async def test_against_real_auth_service(self, auth_service, tokens):
        result = await auth_service.register("kid@example.com", "password123", "Kid", 9)
        authenticator = RequestAuthenticator(tokens=tokens, users=auth_service)
        identity, user = await authenticator.resolve_principal(f"Bearer {result['token']}")
        assert identity.email == "kid@example.com"
        assert user["age"] == 9
