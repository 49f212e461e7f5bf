#  Voice Tutor - Auth Service
#
#  Register/login and user lookup. Password hashing lives in
#  services/passwords.py, token signing in services/tokens.py.
#
#  Depends on: backend/db/connection.py, backend/exceptions.py, services/passwords.py, services/tokens.py
#  Used by:    container.py, routes/auth.py, services/authenticator.py

import asyncio
import logging
import sqlite3
import time
import uuid

from backend.config import DEFAULT_VOICE
from backend.db.connection import Database
from backend.exceptions import EmailInUseError, InvalidCredentialsError
from backend.services.passwords import PasswordHasher
from backend.services.tokens import Identity, SessionTokenService

logger = logging.getLogger("tutor.auth")

_USER_COLUMNS = (
    "id, email, display_name, age, selected_voice, total_points, created_at"
)


def public_user(row) -> dict:
    """User row without credential columns."""
    return {
        "id": row["id"],
        "email": row["email"],
        "display_name": row["display_name"],
        "age": row["age"],
        "selected_voice": row["selected_voice"],
        "total_points": row["total_points"],
        "created_at": row["created_at"],
    }


class AuthService:
    """Handles user registration, login, and session token issuance."""

    def __init__(self, db: Database, passwords: PasswordHasher, tokens: SessionTokenService):
        self._db = db
        self._passwords = passwords
        self._tokens = tokens
        self._dummy_hash: str | None = None

    def _issue_for(self, user: dict) -> str:
        return self._tokens.issue(Identity(
            user_id=user["id"],
            email=user["email"],
            display_name=user["display_name"],
        ))

    async def _timing_dummy_hash(self) -> str:
        # Same cost factor as real digests so a miss takes as long as a hit
        if self._dummy_hash is None:
            self._dummy_hash = await asyncio.to_thread(
                self._passwords.hash, "dummy-password-for-timing"
            )
        return self._dummy_hash

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def register(self, email: str, password: str, display_name: str, age: int) -> dict:
        """Create an account and return {token, user}. Raises EmailInUseError on duplicate email."""
        existing = await self._db.fetchone("SELECT id FROM users WHERE email = ?", (email,))
        if existing:
            raise EmailInUseError("Email already in use")

        password_hash = await asyncio.to_thread(self._passwords.hash, password)
        user_id = str(uuid.uuid4())
        now = time.time()

        try:
            await self._db.execute_write(
                "INSERT INTO users (id, email, password_hash, display_name, age, "
                "selected_voice, total_points, created_at) VALUES (?, ?, ?, ?, ?, ?, 0, ?)",
                (user_id, email, password_hash, display_name, age, DEFAULT_VOICE, now),
            )
        except sqlite3.IntegrityError:
            # Lost a race with a concurrent registration for the same email
            raise EmailInUseError("Email already in use")

        user = await self.get_user(user_id)
        logger.info("User registered: %s", user_id)
        return {"token": self._issue_for(user), "user": user}

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> dict:
        """Authenticate by email/password and return {token, user}. Raises InvalidCredentialsError on a miss."""
        row = await self._db.fetchone(
            f"SELECT {_USER_COLUMNS}, password_hash FROM users WHERE email = ?", (email,)
        )

        if not row:
            # Timing-safe: still run bcrypt against a dummy hash
            await asyncio.to_thread(
                self._passwords.verify, password, await self._timing_dummy_hash()
            )
            raise InvalidCredentialsError("Invalid email or password")

        if not await asyncio.to_thread(self._passwords.verify, password, row["password_hash"]):
            raise InvalidCredentialsError("Invalid email or password")

        await self._db.execute_write(
            "UPDATE users SET last_login_at = ? WHERE id = ?", (time.time(), row["id"]),
        )

        user = public_user(row)
        return {"token": self._issue_for(user), "user": user}

    # ------------------------------------------------------------------
    # Get user
    # ------------------------------------------------------------------

    async def get_user(self, user_id: str) -> dict | None:
        """Fetch user by ID. Returns dict or None."""
        row = await self._db.fetchone(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,),
        )
        if not row:
            return None
        return public_user(row)
