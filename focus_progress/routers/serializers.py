"""Mapping from ORM rows / service dataclasses to response models."""
from __future__ import annotations

from focus_progress.models.achievement import DailyAchievement
from focus_progress.models.session_entry import SessionEntry
from focus_progress.schemas.achievement import AchievementOut, AggregateOut, SessionEntryOut
from focus_progress.services.aggregator import DayMetrics, Rollup


def _ev(v) -> str:
    """Extract bare string value from a str-enum or plain str."""
    return v.value if hasattr(v, "value") else str(v)


def row_to_out(row: DailyAchievement) -> AchievementOut:
    return AchievementOut(
        project_id=row.project_id,
        date=str(row.day),
        user_id=row.user_id,
        updated_at=row.updated_at.isoformat() if row.updated_at else None,
        **row.metrics(),
    )


def day_to_out(d: DayMetrics) -> AchievementOut:
    return AchievementOut(
        project_id=d.project_id,
        date=str(d.day),
        user_id=d.user_id,
        synthetic=d.synthetic,
        updated_at=d.updated_at.isoformat() if d.updated_at else None,
        **d.values,
    )


def rollup_to_out(r: Rollup) -> AggregateOut:
    return AggregateOut(
        project_id=r.project_id,
        granularity=_ev(r.granularity),
        start_date=str(r.start),
        end_date=str(r.end),
        days_with_data=r.days_with_data,
        **r.values,
    )


def session_to_out(s: SessionEntry) -> SessionEntryOut:
    return SessionEntryOut(
        id=s.id,
        project_id=s.project_id,
        task_id=s.task_id,
        task_title=s.task_title,
        date=str(s.day),
        start_time=s.start_time.isoformat() if s.start_time else None,
        end_time=s.end_time.isoformat() if s.end_time else None,
        duration_minutes=s.duration_minutes,
        session_type=_ev(s.session_type),
        completed=s.completed,
    )
