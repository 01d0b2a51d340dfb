from datetime import datetime, date
from typing import Optional

from sqlalchemy import Integer, String, Float, Date, DateTime, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from focus_progress.db.base import Base

ANONYMOUS_OWNER = "anonymous"

# Summed on same-day merges and across rollup windows.
ACCUMULATING_FIELDS = (
    "focus_sessions",
    "break_sessions",
    "tasks_completed",
    "tasks_created",
    "total_session_time",
    "focused_alerts",
    "deviated_alerts",
    "break_time",
    "deviation_time",
    "focus_time",
    "long_break_time",
)

# Absolute values supplied by the client, never summed.
STREAK_FIELDS = ("current_streak", "longest_streak")

# Plan ceilings: max(existing, new) on same-day merges.
HIGH_WATERMARK_FIELDS = ("planned_hours", "completed_hours", "target_tasks_created")

METRIC_FIELDS = ACCUMULATING_FIELDS + STREAK_FIELDS + HIGH_WATERMARK_FIELDS


def owner_key_for(user_id: Optional[str]) -> str:
    return user_id if user_id else ANONYMOUS_OWNER


class DailyAchievement(Base):
    """Per-day metric snapshot for one (project, date, owner)."""

    __tablename__ = "daily_achievements"
    __table_args__ = (
        UniqueConstraint("project_id", "day", "owner_key", name="uq_achievement_project_date_owner"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    # NULL user_id is the anonymous owner; owner_key mirrors it so the
    # unique constraint also covers anonymous rows.
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    owner_key: Mapped[str] = mapped_column(String(64), nullable=False, default=ANONYMOUS_OWNER)

    focus_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    break_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tasks_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tasks_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_session_time: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    focused_alerts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deviated_alerts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    break_time: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    deviation_time: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    focus_time: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    long_break_time: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    planned_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    completed_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    target_tasks_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def metrics(self) -> dict:
        return {name: getattr(self, name) or 0 for name in METRIC_FIELDS}
