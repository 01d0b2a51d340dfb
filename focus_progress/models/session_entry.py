from datetime import datetime, date
import enum

from sqlalchemy import Integer, String, Boolean, DateTime, Date, Enum, func
from sqlalchemy.orm import Mapped, mapped_column

from focus_progress.db.base import Base


class SessionType(str, enum.Enum):
    focus = "focus"
    short_break = "short_break"
    long_break = "long_break"


class SessionEntry(Base):
    """Append-only log of individual timer sessions."""

    __tablename__ = "recent_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    task_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    task_title: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    session_type: Mapped[str] = mapped_column(
        Enum(SessionType, name="session_type_enum"),
        nullable=False,
        default=SessionType.focus,
    )
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
