#  Voice Tutor - Profile Service
#
#  Display name and voice preference updates. Email and age are fixed
#  after registration.
#
#  Depends on: backend/db/connection.py, services/voices.py, services/auth.py
#  Used by:    container.py, routes/profile.py

import logging

from backend.db.connection import Database
from backend.exceptions import NotFoundError
from backend.services.auth import AuthService
from backend.services.voices import get_voice, voice_ids

logger = logging.getLogger("tutor.profile")


class ProfileService:
    def __init__(self, db: Database, users: AuthService):
        self._db = db
        self._users = users

    async def update_profile(
        self,
        user_id: str,
        *,
        display_name: str | None = None,
        selected_voice: str | None = None,
    ) -> dict:
        """Apply the given changes and return the updated user.

        Raises ValueError for an unknown voice, NotFoundError if the user is gone.
        """
        updates: dict[str, object] = {}
        if display_name is not None:
            updates["display_name"] = display_name
        if selected_voice is not None:
            if get_voice(selected_voice) is None:
                raise ValueError(
                    f"Invalid voice: {selected_voice}. "
                    f"Must be one of: {', '.join(voice_ids())}"
                )
            updates["selected_voice"] = selected_voice

        if updates:
            set_clause = ", ".join(f"{col} = ?" for col in updates)
            cursor = await self._db.execute_write(
                f"UPDATE users SET {set_clause} WHERE id = ?",
                (*updates.values(), user_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("User not found")
            logger.info("Profile updated for %s: %s", user_id, ", ".join(updates))

        user = await self._users.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user
