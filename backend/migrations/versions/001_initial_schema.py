"""Initial schema: users and conversations.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("email", sa.Text, nullable=False, unique=True),
        sa.Column("password_hash", sa.Text, nullable=False),
        sa.Column("display_name", sa.Text, nullable=False),
        sa.Column("age", sa.Integer, nullable=False),
        sa.Column("selected_voice", sa.Text, nullable=False, server_default="shimmer"),
        sa.Column("total_points", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.Float, nullable=False),
        sa.Column("last_login_at", sa.Float),
    )

    op.create_table(
        "conversations",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column(
            "user_id", sa.Text,
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("topic", sa.Text),
        sa.Column("started_at", sa.Float, nullable=False),
        sa.Column("ended_at", sa.Float),
        sa.Column("duration_minutes", sa.Float),
        sa.Column("points_earned", sa.Integer, nullable=False, server_default="0"),
        sa.Column("transcript_json", sa.Text),
        sa.Column("had_errors", sa.Integer, nullable=False, server_default="0"),
        sa.Column("error_log_json", sa.Text),
        sa.Column("connection_attempts", sa.Integer, nullable=False, server_default="1"),
    )
    op.create_index("idx_conversations_user", "conversations", ["user_id"])
    op.create_index("idx_conversations_started", "conversations", ["started_at"])


def downgrade() -> None:
    op.drop_index("idx_conversations_started", table_name="conversations")
    op.drop_index("idx_conversations_user", table_name="conversations")
    op.drop_table("conversations")
    op.drop_table("users")
