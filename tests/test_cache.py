"""
Tests for the local-first stats cache and the HTTP client it flushes through.
"""
import logging
from datetime import date, timedelta

import httpx
import pytest

from focus_progress.client.api import ProgressClient
from focus_progress.client.cache import (
    JsonFileStorage,
    LocalStatsCache,
    MemoryStorage,
)
from focus_progress.core.clock import server_today

TODAY = date(2031, 3, 15)


class _Clock:
    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today


def _offline_client() -> ProgressClient:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    http = httpx.Client(base_url="http://progress.test", transport=httpx.MockTransport(handler))
    return ProgressClient(http=http)


def _html_client() -> ProgressClient:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>Bad gateway</html>", headers={"content-type": "text/html"})

    http = httpx.Client(base_url="http://progress.test", transport=httpx.MockTransport(handler))
    return ProgressClient(http=http)


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

class TestStorage:
    def test_memory_storage_copies(self):
        storage = MemoryStorage()
        data = {"p": {"project_id": "p", "date": "2031-03-15", "values": {}}}
        storage.write(data)
        data["p"]["date"] = "changed"
        assert storage.read()["p"]["date"] == "2031-03-15"

    def test_json_file_roundtrip_between_instances(self, tmp_path):
        path = tmp_path / "stats.json"
        LocalStatsCache(JsonFileStorage(path), clock=_Clock(TODAY)).update("p", tasks_completed=2)
        snapshot = LocalStatsCache(JsonFileStorage(path), clock=_Clock(TODAY)).load("p")
        assert snapshot.values == {"tasks_completed": 2}

    def test_json_file_missing_or_corrupt(self, tmp_path):
        path = tmp_path / "stats.json"
        assert JsonFileStorage(path).read() == {}
        path.write_text("{not json", encoding="utf-8")
        assert JsonFileStorage(path).read() == {}


# ---------------------------------------------------------------------------
# Cache behaviour
# ---------------------------------------------------------------------------

class TestLocalStatsCache:
    def test_load_empty(self):
        assert LocalStatsCache(MemoryStorage(), clock=_Clock(TODAY)).load("p") is None

    def test_update_last_write_wins(self):
        cache = LocalStatsCache(MemoryStorage(), clock=_Clock(TODAY))
        cache.update("p", tasks_completed=1, focus_sessions=1)
        snapshot = cache.update("p", tasks_completed=3)
        assert snapshot.date == str(TODAY)
        assert snapshot.values == {"tasks_completed": 3, "focus_sessions": 1}

    def test_update_unknown_field_rejected(self):
        cache = LocalStatsCache(MemoryStorage(), clock=_Clock(TODAY))
        with pytest.raises(ValueError):
            cache.update("p", coffee_cups=4)

    def test_projects_are_independent(self):
        cache = LocalStatsCache(MemoryStorage(), clock=_Clock(TODAY))
        cache.update("a", tasks_completed=1)
        cache.update("b", tasks_completed=9)
        assert cache.load("a").values["tasks_completed"] == 1
        assert cache.load("b").values["tasks_completed"] == 9

    def test_stale_snapshot_dropped_after_midnight(self):
        clock = _Clock(TODAY)
        storage = MemoryStorage()
        cache = LocalStatsCache(storage, clock=clock)
        cache.update("p", tasks_completed=5)

        clock.today = TODAY + timedelta(days=1)
        assert cache.load("p") is None
        assert "p" not in storage.read()

    def test_update_after_midnight_starts_fresh(self):
        clock = _Clock(TODAY)
        cache = LocalStatsCache(MemoryStorage(), clock=clock)
        cache.update("p", tasks_completed=5)
        clock.today = TODAY + timedelta(days=1)
        snapshot = cache.update("p", focus_sessions=1)
        assert snapshot.values == {"focus_sessions": 1}
        assert snapshot.date == str(TODAY + timedelta(days=1))

    def test_merge_with_remote_overlays_cached_fields(self):
        cache = LocalStatsCache(MemoryStorage(), clock=_Clock(TODAY))
        cache.update("p", tasks_completed=4)
        remote = {"tasks_completed": 2, "focus_sessions": 7, "current_streak": 3}
        merged = cache.merge_with_remote("p", remote)
        assert merged["tasks_completed"] == 4
        assert merged["focus_sessions"] == 7
        assert merged["current_streak"] == 3
        assert merged["break_sessions"] == 0
        assert merged["date"] == str(TODAY)

    def test_merge_with_remote_without_cache(self):
        cache = LocalStatsCache(MemoryStorage(), clock=_Clock(TODAY))
        merged = cache.merge_with_remote("p", None)
        assert merged["tasks_completed"] == 0
        assert merged["project_id"] == "p"


# ---------------------------------------------------------------------------
# Flush
# ---------------------------------------------------------------------------

class TestFlush:
    def test_flush_without_client(self):
        cache = LocalStatsCache(MemoryStorage(), clock=_Clock(TODAY))
        cache.update("p", tasks_completed=1)
        result = cache.flush("p")
        assert not result.ok
        assert result.error == "No client configured"

    def test_flush_without_snapshot(self):
        cache = LocalStatsCache(MemoryStorage(), client=_offline_client(), clock=_Clock(TODAY))
        result = cache.flush("p")
        assert not result.ok
        assert result.error == "No local stats to sync"

    def test_flush_replaces_server_record(self, client, project_id):
        today = server_today()
        cache = LocalStatsCache(MemoryStorage(), client=ProgressClient(http=client), clock=lambda: today)
        cache.update(project_id, tasks_completed=3, focus_sessions=2, current_streak=4)

        first = cache.flush(project_id)
        second = cache.flush(project_id)
        assert first.ok and second.ok
        assert second.record["tasks_completed"] == 3
        assert second.record["current_streak"] == 4
        assert second.record["break_sessions"] == 0

        weekly = client.get(f"/stats/{project_id}", params={"type": "weekly"}).json()
        assert weekly["tasks_completed"] == 3

    def test_flush_warns_when_streaks_unset(self, caplog):
        cache = LocalStatsCache(MemoryStorage(), client=_offline_client(), clock=_Clock(TODAY))
        cache.update("p", tasks_completed=2, current_streak=3)
        with caplog.at_level(logging.WARNING, logger="focus_progress.client.cache"):
            cache.flush("p")
        messages = [r.getMessage() for r in caplog.records if "without" in r.getMessage()]
        assert len(messages) == 1
        assert "longest_streak" in messages[0]
        assert "current_streak" not in messages[0]

    def test_flush_no_streak_warning_when_set(self, caplog):
        cache = LocalStatsCache(MemoryStorage(), client=_offline_client(), clock=_Clock(TODAY))
        cache.update("p", current_streak=3, longest_streak=5)
        with caplog.at_level(logging.WARNING, logger="focus_progress.client.cache"):
            cache.flush("p")
        assert not any("without" in r.getMessage() for r in caplog.records)

    def test_flush_failure_keeps_cache(self):
        cache = LocalStatsCache(MemoryStorage(), client=_offline_client(), clock=_Clock(TODAY))
        cache.update("p", tasks_completed=2)
        result = cache.flush("p")
        assert not result.ok
        assert result.error
        assert cache.load("p").values == {"tasks_completed": 2}


# ---------------------------------------------------------------------------
# Client reads
# ---------------------------------------------------------------------------

class TestProgressClientReads:
    def test_offline_daily_is_seven_zero_days(self):
        days = _offline_client().read_aggregate("p", "daily", today=TODAY)
        assert len(days) == 7
        assert days[0]["date"] == str(TODAY - timedelta(days=6))
        assert days[-1]["date"] == str(TODAY)
        assert all(d["tasks_completed"] == 0 for d in days)

    def test_offline_rollup_is_zero_object(self):
        result = _offline_client().read_aggregate("p", "monthly")
        assert result["granularity"] == "monthly"
        assert result["tasks_completed"] == 0

    def test_offline_today_is_zero(self):
        record = _offline_client().read_today("p", today=TODAY)
        assert record["date"] == str(TODAY)
        assert record["focus_sessions"] == 0

    def test_online_reads(self, client, project_id):
        api = ProgressClient(http=client)
        assert api.write_merge(project_id, server_today(), {"tasks_completed": 2}).ok
        assert api.read_today(project_id, today=server_today())["tasks_completed"] == 2
        assert len(api.read_aggregate(project_id, "daily")) == 7

    def test_write_rejection_reports_code(self, client):
        result = ProgressClient(http=client).delete("p-unknown")
        assert not result.ok
        assert result.status_code == 422
        assert result.error == "MISSING_KEY_FIELDS"

    def test_offline_rollup_has_full_shape(self):
        result = _offline_client().read_aggregate("p", "weekly", today=TODAY)
        assert result["start_date"] == str(TODAY - timedelta(days=6))
        assert result["end_date"] == str(TODAY)
        assert result["days_with_data"] == 0

    def test_non_json_body_degrades_to_zeros(self):
        api = _html_client()
        days = api.read_aggregate("p", "daily", today=TODAY)
        assert len(days) == 7
        assert all(d["focus_sessions"] == 0 for d in days)

        monthly = api.read_aggregate("p", "monthly", today=TODAY)
        assert monthly["start_date"] == str(TODAY - timedelta(days=29))
        assert monthly["tasks_completed"] == 0

        today = api.read_today("p", today=TODAY)
        assert today["date"] == str(TODAY)
        assert today["tasks_completed"] == 0

    def test_non_json_body_fails_write(self):
        result = _html_client().write_merge("p", TODAY, {"tasks_completed": 1})
        assert not result.ok
        assert result.status_code == 200
        assert result.error == "Invalid response body"

    def test_non_json_body_keeps_cache_on_flush(self):
        cache = LocalStatsCache(MemoryStorage(), client=_html_client(), clock=_Clock(TODAY))
        cache.update("p", tasks_completed=2)
        assert not cache.flush("p").ok
        assert cache.load("p").values == {"tasks_completed": 2}
