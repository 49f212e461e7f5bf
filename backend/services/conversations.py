#  Voice Tutor - Conversation Service
#
#  Starts realtime voice conversations (daily allowance + session proxy),
#  records their results, awards points, and pages through history.
#
#  Depends on: backend/db/connection.py, services/realtime.py, services/voices.py
#  Used by:    container.py, routes/conversations.py

import json
import logging
import time
import uuid
from datetime import datetime, timezone

from backend.config import CONVERSATION_DAILY_LIMIT
from backend.db.connection import Database
from backend.exceptions import (
    DailyLimitExceededError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    UpstreamServiceError,
)
from backend.services.realtime import RealtimeSessionClient
from backend.services.voices import get_voice

logger = logging.getLogger("tutor.conversations")

_SUMMARY_COLUMNS = (
    "id, started_at, ended_at, duration_minutes, topic, points_earned, had_errors"
)


def _utc_day_start(now: float) -> float:
    day = datetime.fromtimestamp(now, tz=timezone.utc).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return day.timestamp()


def _summary(row) -> dict:
    return {
        "id": row["id"],
        "started_at": row["started_at"],
        "ended_at": row["ended_at"],
        "duration_minutes": row["duration_minutes"],
        "topic": row["topic"],
        "points_earned": row["points_earned"],
        "had_errors": bool(row["had_errors"]),
    }


class ConversationService:
    def __init__(
        self,
        db: Database,
        realtime: RealtimeSessionClient,
        daily_limit: int = CONVERSATION_DAILY_LIMIT,
    ):
        self._db = db
        self._realtime = realtime
        self._daily_limit = daily_limit

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    async def start_conversation(self, user: dict) -> dict:
        """Open a conversation record and request a realtime session for it.

        Raises DailyLimitExceededError when today's allowance is used up,
        ValueError when the stored voice is not in the catalogue, and
        UpstreamServiceError when the realtime API fails (the record is then
        closed and flagged with the error).
        """
        voice = get_voice(user["selected_voice"])
        if voice is None:
            raise ValueError("Invalid voice configuration")

        now = time.time()
        day_start = _utc_day_start(now)
        conversation_id = str(uuid.uuid4())

        # Count + insert under one write lock so parallel starts can't overshoot
        async with self._db.transaction() as conn:
            cursor = await conn.execute(
                "SELECT COUNT(*) FROM conversations WHERE user_id = ? AND started_at >= ?",
                (user["id"], day_start),
            )
            used = (await cursor.fetchone())[0]
            if used >= self._daily_limit:
                raise DailyLimitExceededError(
                    limit=self._daily_limit, used=used, reset_at=day_start + 86400,
                )
            await conn.execute(
                "INSERT INTO conversations (id, user_id, started_at, connection_attempts) "
                "VALUES (?, ?, ?, 1)",
                (conversation_id, user["id"], now),
            )

        try:
            session_token = await self._realtime.create_session(
                voice=voice.id,
                learner_name=user["display_name"],
                learner_age=user["age"],
            )
        except UpstreamServiceError as e:
            await self._db.execute_write(
                "UPDATE conversations SET had_errors = 1, error_log_json = ?, ended_at = ? "
                "WHERE id = ?",
                (
                    json.dumps({"error": "Failed to create session", "details": str(e)}),
                    time.time(),
                    conversation_id,
                ),
            )
            raise

        logger.info("Conversation %s started for %s", conversation_id, user["id"])
        return {
            "conversation_id": conversation_id,
            "session_token": session_token,
            "voice": voice.id,
            "user_name": user["display_name"],
            "user_age": user["age"],
        }

    # ------------------------------------------------------------------
    # End
    # ------------------------------------------------------------------

    async def end_conversation(
        self,
        user_id: str,
        conversation_id: str,
        *,
        duration_minutes: float | None = None,
        topic: str | None = None,
        points_earned: int = 0,
        transcript=None,
        had_errors: bool = False,
        error_log=None,
    ) -> dict:
        """Close a conversation and credit its points to the owner."""
        async with self._db.transaction() as conn:
            cursor = await conn.execute(
                "SELECT user_id, ended_at FROM conversations WHERE id = ?",
                (conversation_id,),
            )
            row = await cursor.fetchone()
            if row is None:
                raise NotFoundError("Conversation not found")
            if row["user_id"] != user_id:
                raise ForbiddenError("Not authorized to end this conversation")
            if row["ended_at"] is not None:
                raise InvalidStateError("Conversation already ended")

            await conn.execute(
                "UPDATE conversations SET ended_at = ?, duration_minutes = ?, topic = ?, "
                "points_earned = ?, transcript_json = ?, had_errors = ?, error_log_json = ? "
                "WHERE id = ?",
                (
                    time.time(),
                    duration_minutes,
                    topic,
                    points_earned,
                    json.dumps(transcript) if transcript is not None else None,
                    int(had_errors),
                    json.dumps(error_log) if error_log is not None else None,
                    conversation_id,
                ),
            )
            if points_earned > 0:
                await conn.execute(
                    "UPDATE users SET total_points = total_points + ? WHERE id = ?",
                    (points_earned, user_id),
                )

        updated = await self._db.fetchone(
            f"SELECT {_SUMMARY_COLUMNS} FROM conversations WHERE id = ?", (conversation_id,),
        )
        logger.info(
            "Conversation %s ended (%d points)", conversation_id, points_earned,
        )
        return _summary(updated)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def list_conversations(self, user_id: str, limit: int = 20, offset: int = 0) -> dict:
        """Completed conversations, newest first, with pagination info."""
        rows = await self._db.fetchall(
            f"SELECT {_SUMMARY_COLUMNS} FROM conversations "
            "WHERE user_id = ? AND ended_at IS NOT NULL "
            "ORDER BY started_at DESC LIMIT ? OFFSET ?",
            (user_id, limit, offset),
        )
        total_row = await self._db.fetchone(
            "SELECT COUNT(*) FROM conversations WHERE user_id = ? AND ended_at IS NOT NULL",
            (user_id,),
        )
        total = total_row[0]
        return {
            "conversations": [_summary(r) for r in rows],
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "has_more": offset + limit < total,
            },
        }
