"""
Local-first cache of today's progress, one snapshot per project.

The UI updates the cache synchronously on every event and renders from
`merge_with_remote()`; `flush()` later pushes the snapshot to the server
with replace semantics. A snapshot stamped with an earlier date than the
client's today is discarded on load, so yesterday's numbers never show
after midnight. The client's date only drives this invalidation; the
server decides which day a write lands on.
"""
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Callable, Optional, Protocol

from pydantic import BaseModel, Field

from focus_progress.client.api import ProgressClient, WriteResult
from focus_progress.models.achievement import METRIC_FIELDS, STREAK_FIELDS

logger = logging.getLogger(__name__)

# Fields the cache owns. Streaks are included but only override the
# remote view once the client has set them.
CACHED_FIELDS = METRIC_FIELDS


class CachedSnapshot(BaseModel):
    project_id: str
    date: str
    values: dict[str, int | float] = Field(default_factory=dict)

    def metrics(self) -> dict:
        """Every metric, zero where the client never set one."""
        return {name: self.values.get(name, 0) for name in CACHED_FIELDS}


# ---------------------------------------------------------------------------
# Storage backends
# ---------------------------------------------------------------------------

class CacheStorage(Protocol):
    def read(self) -> dict[str, dict]: ...

    def write(self, data: dict[str, dict]) -> None: ...


class MemoryStorage:
    def __init__(self) -> None:
        self._data: dict[str, dict] = {}

    def read(self) -> dict[str, dict]:
        return json.loads(json.dumps(self._data))

    def write(self, data: dict[str, dict]) -> None:
        self._data = json.loads(json.dumps(data))


class JsonFileStorage:
    """One JSON document on disk, rewritten synchronously on every change."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def read(self) -> dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable cache file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def write(self, data: dict[str, dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self.path)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

@dataclass
class FlushResult:
    ok: bool
    project_id: str
    record: Optional[dict] = None
    error: Optional[str] = None


class LocalStatsCache:
    def __init__(
        self,
        storage: CacheStorage,
        client: Optional[ProgressClient] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._storage = storage
        self._client = client
        self._clock = clock
        self._lock = threading.Lock()

    def _today(self) -> str:
        return str(self._clock())

    def _read_all(self) -> dict[str, dict]:
        return self._storage.read()

    def load(self, project_id: str) -> Optional[CachedSnapshot]:
        """Today's snapshot for the project, or None (stale snapshots are dropped)."""
        with self._lock:
            data = self._read_all()
            raw = data.get(project_id)
            if raw is None:
                return None
            snapshot = CachedSnapshot.model_validate(raw)
            if snapshot.date != self._today():
                logger.info("Dropping stale cached stats project=%s date=%s", project_id, snapshot.date)
                del data[project_id]
                self._storage.write(data)
                return None
            return snapshot

    def update(self, project_id: str, **fields: float) -> CachedSnapshot:
        """Set fields on today's snapshot (last write wins) and persist immediately."""
        unknown = set(fields) - set(CACHED_FIELDS)
        if unknown:
            raise ValueError(f"Unknown cached fields: {sorted(unknown)}")

        with self._lock:
            data = self._read_all()
            today = self._today()
            raw = data.get(project_id)
            snapshot = CachedSnapshot.model_validate(raw) if raw else None
            if snapshot is None or snapshot.date != today:
                snapshot = CachedSnapshot(project_id=project_id, date=today)
            snapshot.values.update({k: v for k, v in fields.items() if v is not None})
            data[project_id] = snapshot.model_dump()
            self._storage.write(data)
            return snapshot

    def merge_with_remote(self, project_id: str, remote: Optional[dict]) -> dict:
        """
        Remote snapshot overlaid with every field the cache has set.
        Remote-only fields pass through untouched. Read-only: nothing is written.
        """
        merged = {name: 0 for name in CACHED_FIELDS}
        merged.update(remote or {})
        merged["project_id"] = project_id
        snapshot = self.load(project_id)
        if snapshot is not None:
            merged["date"] = snapshot.date
            merged.update(snapshot.values)
        else:
            merged.setdefault("date", self._today())
        return merged

    def flush(self, project_id: str) -> FlushResult:
        """
        Push today's snapshot with replace semantics. The cache is left as is
        whether or not the push succeeds.
        """
        if self._client is None:
            return FlushResult(ok=False, project_id=project_id, error="No client configured")
        snapshot = self.load(project_id)
        if snapshot is None:
            return FlushResult(ok=False, project_id=project_id, error="No local stats to sync")

        unset_streaks = [name for name in STREAK_FIELDS if name not in snapshot.values]
        if unset_streaks:
            logger.warning(
                "Flushing project=%s without %s; the server value will be replaced with 0",
                project_id, ", ".join(unset_streaks),
            )

        result: WriteResult = self._client.write_replace(
            project_id, date.fromisoformat(snapshot.date), snapshot.metrics()
        )
        if not result.ok:
            logger.warning("Flush failed project=%s: %s", project_id, result.error)
            return FlushResult(ok=False, project_id=project_id, error=result.error)
        return FlushResult(ok=True, project_id=project_id, record=result.data)
