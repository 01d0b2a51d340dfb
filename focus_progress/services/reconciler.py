"""
Write reconciler: the three write policies for daily achievements.

Public API
----------
write_replace(db, project_id, day, identity, fields)   -> DailyAchievement
write_merge(db, project_id, day, identity, fields)     -> (DailyAchievement, MergeMode)
sync_hours(db, project_id, day, identity, planned, completed) -> DailyAchievement
delete_records(db, project_id, identity, day, delete_all)     -> int

Every write is keyed by (project_id, day, owner) where the owner is the
resolved identity or the anonymous marker. Writes for one key are
serialized (in-process lock + row lock where the database has one), so
concurrent same-day merges do not lose increments.

A store fault rolls the session back and raises ReconciliationFailure;
the stored row keeps its prior state.
"""
from __future__ import annotations

import enum
import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from focus_progress.core.clock import server_today, utcnow
from focus_progress.core.errors import (
    AuthenticationRequiredError,
    MissingKeyFieldsError,
    ReconciliationFailure,
)
from focus_progress.models.achievement import (
    ACCUMULATING_FIELDS,
    HIGH_WATERMARK_FIELDS,
    METRIC_FIELDS,
    STREAK_FIELDS,
    DailyAchievement,
    owner_key_for,
)
from focus_progress.services.fields import MetricFields
from focus_progress.services.identity import Identity
from focus_progress.services.key_locks import write_locks

logger = logging.getLogger(__name__)


class MergeMode(str, enum.Enum):
    replaced = "replaced"
    accumulated = "accumulated"
    reset = "reset"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require_keys(project_id: Optional[str], day: Optional[date]) -> None:
    missing = []
    if not project_id or not str(project_id).strip():
        missing.append("project_id")
    if day is None:
        missing.append("date")
    if missing:
        raise MissingKeyFieldsError(missing)


def _find(db: Session, project_id: str, day: date, owner_key: str) -> Optional[DailyAchievement]:
    return (
        db.query(DailyAchievement)
        .filter(
            DailyAchievement.project_id == project_id,
            DailyAchievement.day == day,
            DailyAchievement.owner_key == owner_key,
        )
        .with_for_update()
        .first()
    )


def _get_or_new(db: Session, project_id: str, day: date, identity: Identity) -> DailyAchievement:
    owner_key = owner_key_for(identity.user_id)
    row = _find(db, project_id, day, owner_key)
    if row is None:
        row = DailyAchievement(
            project_id=project_id,
            day=day,
            user_id=identity.user_id,
            owner_key=owner_key,
        )
        for name in METRIC_FIELDS:
            setattr(row, name, 0)
        db.add(row)
    return row


def _apply_snapshot(row: DailyAchievement, fields: MetricFields) -> None:
    """Overwrite every metric; unsupplied fields become zero."""
    for name, value in fields.as_snapshot().items():
        setattr(row, name, value)


def _apply_accumulate(row: DailyAchievement, fields: MetricFields) -> None:
    for name in ACCUMULATING_FIELDS:
        setattr(row, name, (getattr(row, name) or 0) + fields.value_or_zero(name))
    for name in HIGH_WATERMARK_FIELDS:
        setattr(row, name, max(getattr(row, name) or 0, fields.value_or_zero(name)))
    for name in STREAK_FIELDS:
        supplied = getattr(fields, name)
        if supplied is not None:
            setattr(row, name, supplied)


def _commit(db: Session, row: DailyAchievement, project_id: str, day: Optional[date]) -> DailyAchievement:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Upsert rejected for project=%s day=%s: %s", project_id, day, exc)
        raise ReconciliationFailure(project_id, day, reason=exc.__class__.__name__) from exc
    db.refresh(row)
    return row


def _lock_key(project_id: str, day: date, identity: Identity) -> tuple:
    return (project_id, day, owner_key_for(identity.user_id))


def _write(db: Session, project_id: str, day: date, identity: Identity, apply) -> DailyAchievement:
    with write_locks.hold(_lock_key(project_id, day, identity)):
        try:
            row = _get_or_new(db, project_id, day, identity)
            apply(row)
            row.updated_at = utcnow()
            db.flush()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Write failed for project=%s day=%s: %s", project_id, day, exc)
            raise ReconciliationFailure(project_id, day, reason=exc.__class__.__name__) from exc
        return _commit(db, row, project_id, day)


# ---------------------------------------------------------------------------
# Public — replace
# ---------------------------------------------------------------------------

def write_replace(
    db: Session,
    project_id: str,
    day: date,
    identity: Identity,
    fields: MetricFields,
) -> DailyAchievement:
    """Full-snapshot overwrite. Replaying the same payload is harmless."""
    _require_keys(project_id, day)
    row = _write(db, project_id, day, identity, lambda r: _apply_snapshot(r, fields))
    logger.info("Replaced achievements project=%s day=%s owner=%s", project_id, day, row.owner_key)
    return row


# ---------------------------------------------------------------------------
# Public — merge (accumulate today, reset past days)
# ---------------------------------------------------------------------------

def write_merge(
    db: Session,
    project_id: str,
    day: date,
    identity: Identity,
    fields: MetricFields,
    today: Optional[date] = None,
) -> tuple[DailyAchievement, MergeMode]:
    """
    Accumulate into today's record, or reset any other day.

    today:
      counters  -> existing + delta
      hours / target tasks -> max(existing, delta)
      streaks   -> delta when supplied, else existing
    other days:
      the delta is the day's final snapshot (replace semantics).

    Not idempotent for today: every call adds. Callers must dedupe retries.
    """
    _require_keys(project_id, day)
    server_day = today or server_today()

    if day == server_day:
        mode = MergeMode.accumulated
        row = _write(db, project_id, day, identity, lambda r: _apply_accumulate(r, fields))
    else:
        mode = MergeMode.reset
        row = _write(db, project_id, day, identity, lambda r: _apply_snapshot(r, fields))

    logger.info(
        "Merged achievements project=%s day=%s owner=%s mode=%s",
        project_id, day, row.owner_key, mode.value,
    )
    return row, mode


# ---------------------------------------------------------------------------
# Public — hours sync (partial, signed-in only)
# ---------------------------------------------------------------------------

def sync_hours(
    db: Session,
    project_id: str,
    day: date,
    identity: Identity,
    planned_hours: float,
    completed_hours: float,
) -> DailyAchievement:
    """Set planned/completed hours for a day, leaving every other field alone."""
    _require_keys(project_id, day)
    if identity.is_anonymous:
        raise AuthenticationRequiredError()

    def apply(row: DailyAchievement) -> None:
        row.planned_hours = planned_hours or 0
        row.completed_hours = completed_hours or 0

    return _write(db, project_id, day, identity, apply)


# ---------------------------------------------------------------------------
# Public — delete
# ---------------------------------------------------------------------------

def delete_records(
    db: Session,
    project_id: str,
    identity: Identity,
    day: Optional[date] = None,
    delete_all: bool = False,
) -> int:
    """
    Delete the caller's record for one day, or all of the caller's records
    for the project. Anonymous callers only ever delete anonymous rows.
    Returns the number of rows removed; zero is not an error.
    """
    if not project_id or not str(project_id).strip():
        raise MissingKeyFieldsError(["project_id"])
    if not delete_all and day is None:
        raise MissingKeyFieldsError(["date"])

    query = db.query(DailyAchievement).filter(
        DailyAchievement.project_id == project_id,
        DailyAchievement.owner_key == owner_key_for(identity.user_id),
    )
    if not delete_all:
        query = query.filter(DailyAchievement.day == day)

    try:
        deleted = query.delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Delete failed for project=%s day=%s: %s", project_id, day, exc)
        raise ReconciliationFailure(project_id, day, reason=exc.__class__.__name__) from exc

    logger.info(
        "Deleted %d achievement row(s) project=%s day=%s all=%s owner=%s",
        deleted, project_id, day, delete_all, owner_key_for(identity.user_id),
    )
    return deleted
