#  Voice Tutor - Request Authenticator
#
#  Single gate used by every protected operation: extract the bearer
#  credential, verify it, and optionally resolve the user it refers to.
#  Expected failures come back as AuthFailure values, not exceptions.
#
#  Depends on: services/tokens.py, services/auth.py (user lookup)
#  Used by:    container.py, middleware/auth.py

from dataclasses import dataclass

from backend.models.enums import AuthErrorKind
from backend.services.tokens import Identity, SessionTokenService

_BEARER_SCHEME = "bearer"


@dataclass(frozen=True)
class AuthFailure:
    kind: AuthErrorKind
    detail: str


_MISSING = AuthFailure(AuthErrorKind.MISSING_CREDENTIAL, "No token provided")
_INVALID = AuthFailure(AuthErrorKind.INVALID_OR_EXPIRED_CREDENTIAL, "Invalid or expired token")
_NO_PRINCIPAL = AuthFailure(AuthErrorKind.PRINCIPAL_NOT_FOUND, "User not found")


def extract_token(raw: str | None) -> str | None:
    """Pull the token out of an Authorization value.

    Accepts "Bearer <token>" or a bare token.
    """
    if raw is None:
        return None
    value = raw.strip()
    scheme, _, rest = value.partition(" ")
    if scheme.lower() == _BEARER_SCHEME:
        value = rest.strip()
    return value or None


class RequestAuthenticator:
    def __init__(self, tokens: SessionTokenService, users=None):
        self._tokens = tokens
        self._users = users

    def authenticate(self, raw: str | None) -> Identity | AuthFailure:
        token = extract_token(raw)
        if token is None:
            return _MISSING
        claims = self._tokens.verify(token)
        if claims is None:
            return _INVALID
        return claims.identity

    async def resolve_principal(self, raw: str | None) -> tuple[Identity, dict] | AuthFailure:
        """authenticate() plus a lookup of the user the token names."""
        result = self.authenticate(raw)
        if isinstance(result, AuthFailure):
            return result
        if self._users is None:
            raise RuntimeError("RequestAuthenticator was built without a user lookup")
        user = await self._users.get_user(result.user_id)
        if user is None:
            return _NO_PRINCIPAL
        return result, user
