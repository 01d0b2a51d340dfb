"""
Session log: append-only timer sessions stored next to achievement writes.

Writing the log is best effort. The achievement row is committed before
the log is attempted, and a failure here is logged and reported as zero
entries written, never raised.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from focus_progress.core.config import settings
from focus_progress.models.session_entry import SessionEntry, SessionType
from focus_progress.services.identity import Identity

logger = logging.getLogger(__name__)

_TYPE_ALIASES = {
    "focus": SessionType.focus,
    "short": SessionType.short_break,
    "short_break": SessionType.short_break,
    "long": SessionType.long_break,
    "long_break": SessionType.long_break,
}


@dataclass
class SessionRecord:
    """Schema-agnostic DTO for one reported session."""
    task_title: str = ""
    type: str = "focus"
    duration: float = 0
    task_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    completed: bool = True


def normalize_session_type(value: str) -> SessionType:
    try:
        return _TYPE_ALIASES[value.strip().lower()]
    except (KeyError, AttributeError):
        raise ValueError(f"Unknown session type: {value!r}") from None


def append_session_entries(
    db: Session,
    project_id: str,
    day: date,
    identity: Identity,
    entries: Iterable[SessionRecord],
) -> int:
    """Insert session entries for a day. Returns how many were stored (0 on failure)."""
    entries = list(entries)
    if not entries:
        return 0

    try:
        rows = [
            SessionEntry(
                project_id=project_id,
                user_id=identity.user_id,
                task_id=e.task_id,
                task_title=e.task_title or "",
                day=day,
                start_time=e.start_time,
                end_time=e.end_time,
                duration_minutes=int(round(e.duration or 0)),
                session_type=normalize_session_type(e.type),
                completed=e.completed is not False,
            )
            for e in entries
        ]
        db.add_all(rows)
        db.commit()
    except (SQLAlchemyError, ValueError) as exc:
        db.rollback()
        logger.warning(
            "Best-effort session log write failed project=%s day=%s entries=%d: %s",
            project_id, day, len(entries), exc,
        )
        return 0

    logger.debug("Stored %d session entries project=%s day=%s", len(rows), project_id, day)
    return len(rows)


def list_recent_sessions(
    db: Session,
    project_id: str,
    identity: Identity,
    limit: Optional[int] = None,
) -> list[SessionEntry]:
    """Newest sessions visible to the caller (own + anonymous)."""
    query = db.query(SessionEntry).filter(SessionEntry.project_id == project_id)
    if identity.is_anonymous:
        query = query.filter(SessionEntry.user_id.is_(None))
    else:
        query = query.filter(
            (SessionEntry.user_id == identity.user_id) | (SessionEntry.user_id.is_(None))
        )
    return (
        query.order_by(SessionEntry.start_time.desc(), SessionEntry.id.desc())
        .limit(limit or settings.RECENT_SESSIONS_LIMIT)
        .all()
    )
