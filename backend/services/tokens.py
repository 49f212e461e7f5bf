#  Voice Tutor - Session Tokens
#
#  Issues and verifies signed, time-bound identity tokens (JWT).
#  Expiry is absolute (fixed at issuance), never sliding.
#
#  Depends on: backend/config.py
#  Used by:    container.py, services/auth.py, services/authenticator.py

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from backend.config import ConfigError

logger = logging.getLogger("tutor.auth")

_TOKEN_TYPE = "session"


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str
    display_name: str


@dataclass(frozen=True)
class TokenClaims:
    identity: Identity
    issued_at: datetime
    expires_at: datetime


class SessionTokenService:
    """Stateless token issue/verify around a process-wide signing secret.

    The secret is captured once at construction; a missing secret is a
    configuration error and fails construction rather than individual calls.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(days=30),
    ):
        if not secret:
            raise ConfigError("FATAL: JWT signing secret is not configured")
        self._secret = secret
        self._algorithm = algorithm
        self._lifetime = lifetime

    @property
    def lifetime(self) -> timedelta:
        return self._lifetime

    def issue(self, identity: Identity, *, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": identity.user_id,
            "email": identity.email,
            "name": identity.display_name,
            "type": _TOKEN_TYPE,
            "iat": issued_at,
            "exp": issued_at + self._lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims | None:
        """Return the token's claims, or None if it is malformed, forged or expired."""
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.PyJWTError as e:
            logger.debug("Token verification failed: %s", e)
            return None

        if payload.get("type") != _TOKEN_TYPE:
            logger.debug("Token verification failed: wrong token type")
            return None

        email = payload.get("email")
        name = payload.get("name")
        if not isinstance(email, str) or not isinstance(name, str):
            logger.debug("Token verification failed: identity claims missing")
            return None

        return TokenClaims(
            identity=Identity(user_id=payload["sub"], email=email, display_name=name),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
