#  Voice Tutor - SQLAlchemy Table Metadata
#
#  Declarative Table definitions for Alembic autogenerate.
#  These mirror the SQLite schema but are NOT used at runtime;
#  the app still uses raw SQL via aiosqlite.
#
#  Depends on: (none)
#  Used by:    migrations/env.py (Alembic autogenerate)

from sqlalchemy import (
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Text, primary_key=True),
    Column("email", Text, nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("display_name", Text, nullable=False),
    Column("age", Integer, nullable=False),
    Column("selected_voice", Text, nullable=False, server_default="shimmer"),
    Column("total_points", Integer, nullable=False, server_default="0"),
    Column("created_at", Float, nullable=False),
    Column("last_login_at", Float),
)

conversations = Table(
    "conversations",
    metadata,
    Column("id", Text, primary_key=True),
    Column("user_id", Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("topic", Text),
    Column("started_at", Float, nullable=False),
    Column("ended_at", Float),
    Column("duration_minutes", Float),
    Column("points_earned", Integer, nullable=False, server_default="0"),
    Column("transcript_json", Text),
    Column("had_errors", Integer, nullable=False, server_default="0"),
    Column("error_log_json", Text),
    Column("connection_attempts", Integer, nullable=False, server_default="1"),
)

Index("idx_conversations_user", conversations.c.user_id)
Index("idx_conversations_started", conversations.c.started_at)
