#  Voice Tutor - Password Hashing
#
#  Salted bcrypt digests with a tunable work factor.
#  verify() never raises on a malformed digest; it just returns False.
#
#  Depends on: (none)
#  Used by:    container.py, services/auth.py, models/schemas.py

import logging

import bcrypt

logger = logging.getLogger("tutor.auth")

# bcrypt only reads the first 72 bytes of its input; longer plaintexts are
# refused at the request boundary rather than silently truncated.
MAX_PASSWORD_BYTES = 72


def password_too_long(plaintext: str) -> bool:
    return len(plaintext.encode()) > MAX_PASSWORD_BYTES


class PasswordHasher:
    """One-way password digests (bcrypt).

    Every hash() call draws a fresh salt, so the same plaintext never
    produces the same digest twice. The salt and cost factor travel inside
    the digest, which is all verify() needs.

    Plaintexts are limited to MAX_PASSWORD_BYTES of UTF-8.
    """

    def __init__(self, rounds: int = 10):
        self._rounds = rounds

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, plaintext: str) -> str:
        if password_too_long(plaintext):
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(plaintext.encode(), bcrypt.gensalt(rounds=self._rounds)).decode()

    def verify(self, plaintext: str, digest: str | None) -> bool:
        if not digest or password_too_long(plaintext):
            return False
        try:
            return bcrypt.checkpw(plaintext.encode(), digest.encode())
        except (ValueError, TypeError):
            # Not a bcrypt digest (bad salt / wrong prefix / truncated)
            logger.debug("Rejected malformed password digest")
            return False
