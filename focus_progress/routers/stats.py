"""
Stats router — dashboard rollups and today's snapshot sync.

GET  /stats/{project_id}?type=daily|weekly|monthly|yearly
POST /stats/{project_id}    — replace today's record (local cache flush target)
"""
from __future__ import annotations

from typing import Union

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from focus_progress.core.clock import server_today
from focus_progress.db.base import get_db
from focus_progress.routers.serializers import day_to_out, rollup_to_out, row_to_out
from focus_progress.schemas.achievement import (
    AchievementOut,
    AchievementWriteResponse,
    AggregateOut,
    MetricFieldsIn,
)
from focus_progress.services.aggregator import Granularity, read_aggregate
from focus_progress.services.fields import MetricFields
from focus_progress.services.identity import Identity, resolve_identity
from focus_progress.services.reconciler import MergeMode, write_replace

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get(
    "/{project_id}",
    response_model=Union[list[AchievementOut], AggregateOut],
    summary="Progress rollup for a project",
    responses={
        200: {"description": "`daily`: 7 days oldest first. Otherwise a single summed object."},
    },
)
def project_stats(
    project_id: str,
    granularity: Granularity = Query(..., alias="type", description="daily | weekly | monthly | yearly"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(resolve_identity),
):
    """
    - **daily**: exactly seven entries ending today; days without a stored
      record are zero-filled (`synthetic: true`).
    - **weekly / monthly**: counters summed over the last 7 / 30 days,
      streaks are the window maximum.
    - **yearly**: same as monthly, from the first visible record onwards.

    Empty windows return zeros, never 404.
    """
    result = read_aggregate(db, project_id, identity, granularity)
    if granularity == Granularity.daily:
        return [day_to_out(d) for d in result]
    return rollup_to_out(result)


@router.post(
    "/{project_id}",
    response_model=AchievementWriteResponse,
    summary="Replace today's record with a client snapshot",
    responses={503: {"description": "The store rejected the write; the record is unchanged."}},
)
def sync_today(
    project_id: str,
    payload: MetricFieldsIn,
    db: Session = Depends(get_db),
    identity: Identity = Depends(resolve_identity),
):
    """Full-snapshot replace of the server's today; omitted metrics become zero."""
    fields = MetricFields.from_mapping(payload.model_dump())
    row = write_replace(db, project_id, server_today(), identity, fields)
    return AchievementWriteResponse(
        message="Stats synced",
        mode=MergeMode.replaced.value,
        data=row_to_out(row),
    )
