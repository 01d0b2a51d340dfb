"""add recent_sessions table

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19

Append-only session log written best-effort next to achievement writes.
"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "recent_sessions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("task_id", sa.String(64), nullable=True),
        sa.Column("task_title", sa.String(256), nullable=False, server_default=""),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "session_type",
            sa.Enum("focus", "short_break", "long_break", name="session_type_enum"),
            nullable=False,
        ),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_recent_sessions_id", "recent_sessions", ["id"])
    op.create_index("ix_recent_sessions_project_id", "recent_sessions", ["project_id"])
    op.create_index("ix_recent_sessions_user_id", "recent_sessions", ["user_id"])
    op.create_index("ix_recent_sessions_day", "recent_sessions", ["day"])


def downgrade() -> None:
    op.drop_index("ix_recent_sessions_day", table_name="recent_sessions")
    op.drop_index("ix_recent_sessions_user_id", table_name="recent_sessions")
    op.drop_index("ix_recent_sessions_project_id", table_name="recent_sessions")
    op.drop_index("ix_recent_sessions_id", table_name="recent_sessions")
    op.drop_table("recent_sessions")
    sa.Enum(name="session_type_enum").drop(op.get_bind(), checkfirst=True)
