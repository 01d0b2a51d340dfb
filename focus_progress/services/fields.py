"""
Typed write payload shared by the reconciler and the client cache.

`None` means "not supplied". Replace and reset writes default unsupplied
fields to zero; a same-day merge leaves them as they are (counters add
zero, streaks keep the stored value).
"""
from __future__ import annotations

from dataclasses import dataclass, fields as dc_fields
from typing import Any, Mapping, Optional

from focus_progress.models.achievement import METRIC_FIELDS


@dataclass
class MetricFields:
    focus_sessions: Optional[int] = None
    break_sessions: Optional[int] = None
    tasks_completed: Optional[int] = None
    tasks_created: Optional[int] = None
    total_session_time: Optional[float] = None
    focused_alerts: Optional[int] = None
    deviated_alerts: Optional[int] = None
    break_time: Optional[float] = None
    deviation_time: Optional[float] = None
    focus_time: Optional[float] = None
    long_break_time: Optional[float] = None
    current_streak: Optional[int] = None
    longest_streak: Optional[int] = None
    planned_hours: Optional[float] = None
    completed_hours: Optional[float] = None
    target_tasks_created: Optional[int] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MetricFields":
        """Build from any mapping, ignoring keys that are not metric fields."""
        return cls(**{k: v for k, v in data.items() if k in METRIC_FIELDS})

    def supplied(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in dc_fields(self) if getattr(self, f.name) is not None}

    def value_or_zero(self, name: str) -> Any:
        value = getattr(self, name)
        return 0 if value is None else value

    def as_snapshot(self) -> dict[str, Any]:
        """Every metric field, zero where not supplied."""
        return {name: self.value_or_zero(name) for name in METRIC_FIELDS}
