"""
Read aggregator — day, week, month and all-time rollups.

Visibility
----------
An authenticated caller sees their own rows plus anonymous rows for the
project; an anonymous caller sees anonymous rows only. When both an own
and an anonymous row exist for one day they fold into a single day:
counters are summed, hours / target tasks / streaks take the maximum.

Public API
----------
read_aggregate(db, project_id, identity, granularity)  -> list[DayMetrics] | Rollup
read_daily(db, project_id, identity)                   -> list[DayMetrics]  (7, oldest first)
read_rollup(db, project_id, identity, granularity)     -> Rollup
read_day(db, project_id, identity, day)                -> DayMetrics
read_recent(db, project_id, identity, days)            -> list[DayMetrics]  (newest first)

Nothing here writes. Zero-filled days are synthesized on the fly and
flagged `synthetic=True`.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional, Union

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from focus_progress.core.clock import server_today
from focus_progress.core.config import settings
from focus_progress.core.errors import StoreReadError
from focus_progress.models.achievement import (
    ACCUMULATING_FIELDS,
    HIGH_WATERMARK_FIELDS,
    METRIC_FIELDS,
    STREAK_FIELDS,
    DailyAchievement,
)
from focus_progress.services.identity import Identity

logger = logging.getLogger(__name__)

DAILY_WINDOW = 7
WINDOW_DAYS = {"weekly": 7, "monthly": 30}


class Granularity(str, enum.Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


# ---------------------------------------------------------------------------
# Result types (plain dataclasses — no ORM, no Pydantic)
# ---------------------------------------------------------------------------

def zero_metrics() -> dict:
    return {name: 0 for name in METRIC_FIELDS}


@dataclass
class DayMetrics:
    project_id: str
    day: date
    values: dict = field(default_factory=zero_metrics)
    user_id: Optional[str] = None
    synthetic: bool = False
    updated_at: Optional[datetime] = None


@dataclass
class Rollup:
    project_id: str
    granularity: Granularity
    start: date
    end: date
    days_with_data: int
    values: dict = field(default_factory=zero_metrics)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _visible(query: Query, identity: Identity) -> Query:
    if identity.is_anonymous:
        return query.filter(DailyAchievement.user_id.is_(None))
    return query.filter(
        or_(DailyAchievement.user_id == identity.user_id, DailyAchievement.user_id.is_(None))
    )


def _fetch(
    db: Session,
    project_id: str,
    identity: Identity,
    start: date,
    end: date,
) -> list[DailyAchievement]:
    query = db.query(DailyAchievement).filter(
        DailyAchievement.project_id == project_id,
        DailyAchievement.day >= start,
        DailyAchievement.day <= end,
    )
    try:
        return _visible(query, identity).order_by(DailyAchievement.day).all()
    except SQLAlchemyError as exc:
        logger.error("Achievement read failed project=%s: %s", project_id, exc)
        raise StoreReadError(project_id, reason=exc.__class__.__name__) from exc


def _fold_day(project_id: str, day: date, rows: list[DailyAchievement], identity: Identity) -> DayMetrics:
    values = zero_metrics()
    for row in rows:
        metrics = row.metrics()
        for name in ACCUMULATING_FIELDS:
            values[name] += metrics[name]
        for name in HIGH_WATERMARK_FIELDS + STREAK_FIELDS:
            values[name] = max(values[name], metrics[name])

    owner = next((r.user_id for r in rows if r.user_id is not None), None)
    updated = [r.updated_at for r in rows if r.updated_at is not None]
    return DayMetrics(
        project_id=project_id,
        day=day,
        values=values,
        user_id=owner if not identity.is_anonymous else None,
        updated_at=max(updated) if updated else None,
    )


def _by_day(project_id: str, rows: list[DailyAchievement], identity: Identity) -> dict[date, DayMetrics]:
    grouped: dict[date, list[DailyAchievement]] = {}
    for row in rows:
        grouped.setdefault(row.day, []).append(row)
    return {d: _fold_day(project_id, d, group, identity) for d, group in grouped.items()}


def _synthetic(project_id: str, day: date) -> DayMetrics:
    return DayMetrics(project_id=project_id, day=day, synthetic=True)


def earliest_visible_day(db: Session, project_id: str, identity: Identity) -> Optional[date]:
    query = db.query(func.min(DailyAchievement.day)).filter(
        DailyAchievement.project_id == project_id
    )
    try:
        return _visible(query, identity).scalar()
    except SQLAlchemyError as exc:
        logger.error("Earliest-day lookup failed project=%s: %s", project_id, exc)
        raise StoreReadError(project_id, reason=exc.__class__.__name__) from exc


# ---------------------------------------------------------------------------
# Public — daily (7 entries, oldest first, zero-filled)
# ---------------------------------------------------------------------------

def read_daily(
    db: Session,
    project_id: str,
    identity: Identity,
    today: Optional[date] = None,
) -> list[DayMetrics]:
    end = today or server_today()
    days = [end - timedelta(days=i) for i in range(DAILY_WINDOW - 1, -1, -1)]  # oldest → newest
    found = _by_day(project_id, _fetch(db, project_id, identity, days[0], end), identity)
    return [found.get(d) or _synthetic(project_id, d) for d in days]


# ---------------------------------------------------------------------------
# Public — weekly / monthly / yearly rollups
# ---------------------------------------------------------------------------

def _window_start(
    db: Session,
    project_id: str,
    identity: Identity,
    granularity: Granularity,
    end: date,
) -> date:
    if granularity == Granularity.yearly:
        first = earliest_visible_day(db, project_id, identity)
        return min(first, end) if first is not None else settings.YEARLY_LOOKBACK_FLOOR
    return end - timedelta(days=WINDOW_DAYS[granularity.value] - 1)


def read_rollup(
    db: Session,
    project_id: str,
    identity: Identity,
    granularity: Granularity,
    today: Optional[date] = None,
) -> Rollup:
    """
    Sum every counter and hour field across the window; streaks are the
    window maximum. An empty window is an all-zero rollup.
    """
    granularity = Granularity(granularity)
    if granularity == Granularity.daily:
        raise ValueError("daily granularity is a day list, use read_daily()")

    end = today or server_today()
    start = _window_start(db, project_id, identity, granularity, end)
    days = _by_day(project_id, _fetch(db, project_id, identity, start, end), identity)

    totals = zero_metrics()
    for day_metrics in days.values():
        for name in ACCUMULATING_FIELDS + HIGH_WATERMARK_FIELDS:
            totals[name] += day_metrics.values[name]
        for name in STREAK_FIELDS:
            totals[name] = max(totals[name], day_metrics.values[name])

    return Rollup(
        project_id=project_id,
        granularity=granularity,
        start=start,
        end=end,
        days_with_data=len(days),
        values=totals,
    )


def read_aggregate(
    db: Session,
    project_id: str,
    identity: Identity,
    granularity: Union[Granularity, str],
    today: Optional[date] = None,
) -> Union[list[DayMetrics], Rollup]:
    granularity = Granularity(granularity)
    if granularity == Granularity.daily:
        return read_daily(db, project_id, identity, today)
    return read_rollup(db, project_id, identity, granularity, today)


# ---------------------------------------------------------------------------
# Public — single day / recent range
# ---------------------------------------------------------------------------

def read_day(db: Session, project_id: str, identity: Identity, day: date) -> DayMetrics:
    """The visible record for one day, or a synthetic zero day."""
    found = _by_day(project_id, _fetch(db, project_id, identity, day, day), identity)
    return found.get(day) or _synthetic(project_id, day)


def read_recent(
    db: Session,
    project_id: str,
    identity: Identity,
    days: int,
    today: Optional[date] = None,
) -> list[DayMetrics]:
    """Stored days within the last `days` days (today included), newest first."""
    if days < 1 or days > settings.RANGE_MAX_DAYS:
        raise ValueError(f"days must be between 1 and {settings.RANGE_MAX_DAYS}")
    end = today or server_today()
    start = end - timedelta(days=days - 1)
    found = _by_day(project_id, _fetch(db, project_id, identity, start, end), identity)
    return [found[d] for d in sorted(found, reverse=True)]
