"""
Session log router.

GET /sessions/{project_id}   — newest sessions visible to the caller
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from focus_progress.core.config import settings
from focus_progress.db.base import get_db
from focus_progress.routers.serializers import session_to_out
from focus_progress.schemas.achievement import SessionEntryOut
from focus_progress.services.identity import Identity, resolve_identity
from focus_progress.services.session_log import list_recent_sessions

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("/{project_id}", response_model=list[SessionEntryOut], summary="Recent sessions")
def recent_sessions(
    project_id: str,
    limit: int = Query(default=settings.RECENT_SESSIONS_LIMIT, ge=1, le=500),
    db: Session = Depends(get_db),
    identity: Identity = Depends(resolve_identity),
):
    return [session_to_out(s) for s in list_recent_sessions(db, project_id, identity, limit)]
