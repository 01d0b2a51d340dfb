"""
Daily achievements router.

POST   /daily-achievements             — replace (full snapshot) + optional session log
PATCH  /daily-achievements             — merge: accumulate today, reset past days
GET    /daily-achievements             — one day (zero-filled) or the last N days
DELETE /daily-achievements             — one day, or every day with deleteAll
POST   /daily-achievements/sync-hours  — planned/completed hours only (signed-in)
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from focus_progress.core.clock import server_today
from focus_progress.core.config import settings
from focus_progress.db.base import get_db
from focus_progress.routers.serializers import day_to_out, row_to_out
from focus_progress.schemas.achievement import (
    AchievementListResponse,
    AchievementMergeRequest,
    AchievementWriteRequest,
    AchievementWriteResponse,
    DeleteResponse,
    MetricFieldsIn,
    SyncHoursRequest,
)
from focus_progress.services.aggregator import read_day, read_recent
from focus_progress.services.fields import MetricFields
from focus_progress.services.identity import Identity, resolve_identity
from focus_progress.services.reconciler import (
    MergeMode,
    delete_records,
    sync_hours,
    write_merge,
    write_replace,
)
from focus_progress.services.session_log import SessionRecord, append_session_entries

router = APIRouter(prefix="/daily-achievements", tags=["daily-achievements"])

_MERGE_MESSAGES = {
    MergeMode.accumulated: "Daily achievements updated incrementally",
    MergeMode.reset: "Daily achievements reset for past date",
}


def _fields(payload: MetricFieldsIn) -> MetricFields:
    return MetricFields.from_mapping(payload.model_dump(include=set(MetricFieldsIn.model_fields)))


@router.post(
    "",
    response_model=AchievementWriteResponse,
    summary="Replace a day's achievements",
    responses={
        200: {"description": "Record stored; omitted metrics are zero."},
        503: {"description": "The store rejected the write; the record is unchanged."},
    },
)
def replace_achievements(
    payload: AchievementWriteRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(resolve_identity),
):
    """
    Overwrite every metric of the (project, date, caller) record with the
    payload, defaulting omitted metrics to zero. Safe to retry.

    `sessions`, when present, are appended to the session log after the
    record is stored. A session log failure does not fail the request;
    `sessions_written` reports what was stored.
    """
    row = write_replace(db, payload.project_id, payload.date, identity, _fields(payload))
    written = append_session_entries(
        db,
        payload.project_id,
        payload.date,
        identity,
        [SessionRecord(**s.model_dump()) for s in payload.sessions],
    )
    return AchievementWriteResponse(
        message="Daily achievements synced successfully",
        mode=MergeMode.replaced.value,
        data=row_to_out(row),
        sessions_written=written,
    )


@router.patch(
    "",
    response_model=AchievementWriteResponse,
    summary="Merge into a day's achievements",
    responses={
        200: {"description": "Today accumulated, or a past day reset to the payload."},
        503: {"description": "The store rejected the write; the record is unchanged."},
    },
)
def merge_achievements(
    payload: AchievementMergeRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(resolve_identity),
):
    """
    If `date` is the server's today: counters add, hours keep the maximum,
    streaks take the supplied value (or keep the stored one).

    Any other date: the payload replaces the stored day outright.

    Each call for today adds again; do not blindly retry.
    Session entries are rejected here; send them with a replace.
    """
    row, mode = write_merge(db, payload.project_id, payload.date, identity, _fields(payload))
    return AchievementWriteResponse(
        message=_MERGE_MESSAGES[mode],
        mode=mode.value,
        data=row_to_out(row),
    )


@router.get(
    "",
    response_model=AchievementListResponse,
    summary="Read one day or a recent range",
)
def get_achievements(
    project_id: str = Query(..., alias="projectId", min_length=1),
    day: Optional[date] = Query(
        default=None,
        alias="date",
        description="ISO date (YYYY-MM-DD). Defaults to today (UTC).",
        examples=["2026-02-20"],
    ),
    days: Optional[int] = Query(
        default=None,
        ge=1,
        le=settings.RANGE_MAX_DAYS,
        description="Return stored records from the last N days instead of a single date.",
    ),
    db: Session = Depends(get_db),
    identity: Identity = Depends(resolve_identity),
):
    """
    With `days`: the stored days in the window, newest first (may be empty).
    Otherwise: a single-item list for `date`, zero-filled when nothing is stored.
    """
    if days is not None:
        return AchievementListResponse(
            data=[day_to_out(d) for d in read_recent(db, project_id, identity, days)]
        )
    return AchievementListResponse(
        data=[day_to_out(read_day(db, project_id, identity, day or server_today()))]
    )


@router.delete(
    "",
    response_model=DeleteResponse,
    summary="Delete the caller's records for a day or a project",
    responses={200: {"description": "Deleted (deleting nothing is also success)."}},
)
def delete_achievements(
    project_id: str = Query(..., alias="projectId", min_length=1),
    day: Optional[date] = Query(default=None, alias="date"),
    delete_all: bool = Query(default=False, alias="deleteAll"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(resolve_identity),
):
    deleted = delete_records(db, project_id, identity, day=day, delete_all=delete_all)
    message = (
        f"All daily achievements deleted for project {project_id}"
        if delete_all
        else f"Daily achievements deleted for {day}"
    )
    return DeleteResponse(message=message, deleted=deleted)


@router.post(
    "/sync-hours",
    response_model=AchievementWriteResponse,
    summary="Record planned / completed hours for a day",
    responses={401: {"description": "Caller is not signed in."}},
)
def sync_achievement_hours(
    payload: SyncHoursRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(resolve_identity),
):
    row = sync_hours(
        db,
        payload.project_id,
        payload.date,
        identity,
        planned_hours=payload.planned_hours,
        completed_hours=payload.completed_hours,
    )
    return AchievementWriteResponse(message="Hours synced successfully", data=row_to_out(row))
