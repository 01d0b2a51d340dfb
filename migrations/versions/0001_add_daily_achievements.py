"""add daily_achievements table

Revision ID: 0001
Revises:
Create Date: 2026-10-19

One row per (project_id, day, owner_key). owner_key is the user id, or
'anonymous' for rows written without a signed-in user (user_id NULL).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_COUNTERS_INT = (
    "focus_sessions", "break_sessions", "tasks_completed", "tasks_created",
    "focused_alerts", "deviated_alerts",
)
_COUNTERS_FLOAT = (
    "total_session_time", "break_time", "deviation_time", "focus_time", "long_break_time",
)


def upgrade() -> None:
    op.create_table(
        "daily_achievements",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.String(64), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("owner_key", sa.String(64), nullable=False, server_default="anonymous"),
        *[sa.Column(name, sa.Integer(), nullable=False, server_default="0") for name in _COUNTERS_INT],
        *[sa.Column(name, sa.Float(), nullable=False, server_default="0") for name in _COUNTERS_FLOAT],
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("planned_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("completed_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("target_tasks_created", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("project_id", "day", "owner_key", name="uq_achievement_project_date_owner"),
    )
    op.create_index("ix_daily_achievements_id", "daily_achievements", ["id"])
    op.create_index("ix_daily_achievements_project_id", "daily_achievements", ["project_id"])
    op.create_index("ix_daily_achievements_day", "daily_achievements", ["day"])
    op.create_index("ix_daily_achievements_user_id", "daily_achievements", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_daily_achievements_user_id", table_name="daily_achievements")
    op.drop_index("ix_daily_achievements_day", table_name="daily_achievements")
    op.drop_index("ix_daily_achievements_project_id", table_name="daily_achievements")
    op.drop_index("ix_daily_achievements_id", table_name="daily_achievements")
    op.drop_table("daily_achievements")
