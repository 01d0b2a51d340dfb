"""
Daily achievement request / response schemas.

Replace:   POST  /daily-achievements        → AchievementWriteRequest → AchievementWriteResponse
Merge:     PATCH /daily-achievements        → AchievementMergeRequest → AchievementWriteResponse
Hours:     POST  /daily-achievements/sync-hours → SyncHoursRequest
Today:     POST  /stats/{project_id}        → MetricFieldsIn
"""
from __future__ import annotations

import datetime as dt
from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

NonNegInt = Annotated[int, Field(ge=0)]
NonNegFloat = Annotated[float, Field(ge=0)]

ProjectId = Annotated[str, Field(
    min_length=1,
    max_length=64,
    description="Owning project id.",
    examples=["c0ffee00-aaaa-bbbb-cccc-000000000001"],
)]


# ---------------------------------------------------------------------------
# Write payloads
# ---------------------------------------------------------------------------

class MetricFieldsIn(BaseModel):
    """Metric values. Omitted fields are treated per write mode (zero for replace)."""

    focus_sessions: Optional[NonNegInt] = None
    break_sessions: Optional[NonNegInt] = None
    tasks_completed: Optional[NonNegInt] = None
    tasks_created: Optional[NonNegInt] = None
    total_session_time: Optional[NonNegFloat] = None
    focused_alerts: Optional[NonNegInt] = None
    deviated_alerts: Optional[NonNegInt] = None
    break_time: Optional[NonNegFloat] = None
    deviation_time: Optional[NonNegFloat] = None
    focus_time: Optional[NonNegFloat] = None
    long_break_time: Optional[NonNegFloat] = None
    current_streak: Optional[NonNegInt] = None
    longest_streak: Optional[NonNegInt] = None
    planned_hours: Optional[NonNegFloat] = None
    completed_hours: Optional[NonNegFloat] = None
    target_tasks_created: Optional[NonNegInt] = None


class SessionEntryIn(BaseModel):
    """One finished timer session reported alongside an achievement write."""

    task_id: Optional[str] = None
    task_title: str = ""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: float = Field(default=0, ge=0, description="Minutes; rounded on storage.")
    type: str = Field(
        default="focus",
        description="focus | short | long | short_break | long_break",
        examples=["focus", "short"],
    )
    completed: bool = True


class AchievementMergeRequest(MetricFieldsIn):
    """Merge payload. Session entries are only accepted on replace."""

    model_config = ConfigDict(extra="forbid")

    project_id: ProjectId
    date: dt.date = Field(description="Calendar day the snapshot describes (YYYY-MM-DD).")

    @field_validator("project_id", mode="before")
    @classmethod
    def strip_project_id(cls, v):
        return v.strip() if isinstance(v, str) else v


class AchievementWriteRequest(AchievementMergeRequest):
    model_config = ConfigDict(extra="ignore")

    sessions: list[SessionEntryIn] = Field(
        default_factory=list,
        description="Optional session log entries; stored best-effort.",
    )


class SyncHoursRequest(BaseModel):
    project_id: ProjectId
    date: dt.date
    planned_hours: NonNegFloat = 0
    completed_hours: NonNegFloat = 0


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class AchievementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    project_id: str
    date: str
    user_id: Optional[str] = None
    synthetic: bool = Field(default=False, description="True for zero-filled days with no stored record.")

    focus_sessions: int = 0
    break_sessions: int = 0
    tasks_completed: int = 0
    tasks_created: int = 0
    total_session_time: float = 0
    focused_alerts: int = 0
    deviated_alerts: int = 0
    break_time: float = 0
    deviation_time: float = 0
    focus_time: float = 0
    long_break_time: float = 0
    current_streak: int = 0
    longest_streak: int = 0
    planned_hours: float = 0
    completed_hours: float = 0
    target_tasks_created: int = 0
    updated_at: Optional[str] = None


class AggregateOut(BaseModel):
    project_id: str
    granularity: Literal["weekly", "monthly", "yearly"]
    start_date: str
    end_date: str
    days_with_data: int

    focus_sessions: int = 0
    break_sessions: int = 0
    tasks_completed: int = 0
    tasks_created: int = 0
    total_session_time: float = 0
    focused_alerts: int = 0
    deviated_alerts: int = 0
    break_time: float = 0
    deviation_time: float = 0
    focus_time: float = 0
    long_break_time: float = 0
    current_streak: int = 0
    longest_streak: int = 0
    planned_hours: float = 0
    completed_hours: float = 0
    target_tasks_created: int = 0


class AchievementWriteResponse(BaseModel):
    success: bool = True
    message: str
    mode: Optional[Literal["replaced", "accumulated", "reset"]] = None
    data: AchievementOut
    sessions_written: int = 0


class AchievementListResponse(BaseModel):
    success: bool = True
    data: list[AchievementOut]


class DeleteResponse(BaseModel):
    success: bool = True
    message: str
    deleted: int


class SessionEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: str
    task_id: Optional[str]
    task_title: str
    date: str
    start_time: Optional[str]
    end_time: Optional[str]
    duration_minutes: int
    session_type: str
    completed: bool
