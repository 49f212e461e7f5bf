#  Voice Tutor - Database Connection
#
#  Async SQLite manager with WAL mode and transaction support.
#  Production uses Alembic migrations; tests use inline schema for speed.
#
#  Depends on: backend/db/migrate.py (optional, for production migrations)
#  Used by:    container.py (via DI), tests

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

logger = logging.getLogger("tutor.db")


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    display_name TEXT NOT NULL,
    age INTEGER NOT NULL,
    selected_voice TEXT NOT NULL DEFAULT 'shimmer',
    total_points INTEGER NOT NULL DEFAULT 0,
    created_at REAL NOT NULL,
    last_login_at REAL
);

CREATE TABLE IF NOT EXISTS conversations (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    topic TEXT,
    started_at REAL NOT NULL,
    ended_at REAL,
    duration_minutes REAL,
    points_earned INTEGER NOT NULL DEFAULT 0,
    transcript_json TEXT,
    had_errors INTEGER NOT NULL DEFAULT 0,
    error_log_json TEXT,
    connection_attempts INTEGER NOT NULL DEFAULT 1
);

CREATE INDEX IF NOT EXISTS idx_conversations_user ON conversations(user_id);
CREATE INDEX IF NOT EXISTS idx_conversations_started ON conversations(started_at);
"""


# ---------------------------------------------------------------------------
# Database class
# ---------------------------------------------------------------------------

class Database:
    """Async SQLite database with WAL mode.

    Uses aiosqlite which runs SQLite on a dedicated background thread,
    so no threading.Lock is needed on our side.
    """

    def __init__(self):
        self._conn: aiosqlite.Connection | None = None
        self._path: Path | None = None
        self._in_transaction: bool = False
        self._tx_lock: asyncio.Lock = asyncio.Lock()
        self._tx_owner: asyncio.Task | None = None

    async def init(self, db_path: str | Path, *, run_migrations: bool = False):
        """Open or create the database and apply schema.

        Args:
            db_path: Path to the SQLite database file.
            run_migrations: If True, use Alembic migrations (production).
                            If False, use inline schema (tests, faster).
        """
        self._path = Path(db_path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

        if run_migrations:
            from backend.db.migrate import run_migrations as _migrate
            await asyncio.to_thread(_migrate, self._path)

        self._conn = await aiosqlite.connect(str(self._path))
        self._conn.row_factory = sqlite3.Row
        await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.execute("PRAGMA foreign_keys=ON")

        if not run_migrations:
            await self._conn.executescript(_SCHEMA)
            await self._conn.commit()

        logger.info("Database initialized at %s", self._path)

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Database not initialized. Call await db.init() first.")
        return self._conn

    @asynccontextmanager
    async def transaction(self):
        """Atomic read+write transaction. Rolls back on exception.

        Uses BEGIN IMMEDIATE to acquire a write lock upfront, preventing
        other writers from interleaving. An asyncio.Lock serializes
        concurrent coroutines sharing the same connection.

        Safe to nest within the same task: if the current asyncio task
        already owns a transaction, inner calls are no-ops.
        """
        current = asyncio.current_task()
        if self._in_transaction and self._tx_owner is current:
            yield self.conn
            return

        async with self._tx_lock:
            self._in_transaction = True
            self._tx_owner = current
            try:
                await self.conn.execute("BEGIN IMMEDIATE")
                try:
                    yield self.conn
                    await self.conn.commit()
                except Exception:
                    await self.conn.rollback()
                    raise
            finally:
                self._in_transaction = False
                self._tx_owner = None

    async def execute_write(self, sql: str, params: tuple | list = ()) -> aiosqlite.Cursor:
        """Execute a write query and commit.

        Inside a transaction() block, participates in the outer transaction
        (no auto-commit). Outside, auto-commits.
        """
        cursor = await self.conn.execute(sql, params)
        if not self._in_transaction:
            await self.conn.commit()
        return cursor

    async def fetchone(self, sql: str, params: tuple | list = ()) -> sqlite3.Row | None:
        cursor = await self.conn.execute(sql, params)
        return await cursor.fetchone()

    async def fetchall(self, sql: str, params: tuple | list = ()) -> list[sqlite3.Row]:
        cursor = await self.conn.execute(sql, params)
        return await cursor.fetchall()

    async def close(self):
        """Close the database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None
