"""
HTTP client for the progress API.

Reads degrade to zero-valued data when the server is unreachable or
answers with an error, so dashboards show zeros instead of failing.
Writes return a WriteResult; the caller decides whether to retry.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Optional, Union

import httpx

from focus_progress.core.config import settings
from focus_progress.models.achievement import METRIC_FIELDS
from focus_progress.services.aggregator import WINDOW_DAYS

logger = logging.getLogger(__name__)


@dataclass
class WriteResult:
    ok: bool
    data: Optional[dict] = None
    error: Optional[str] = None
    status_code: Optional[int] = None


def _zero_day(project_id: str, day: date) -> dict:
    return {"project_id": project_id, "date": str(day), "synthetic": True, **{n: 0 for n in METRIC_FIELDS}}


def _zero_rollup(project_id: str, granularity: str, end: date) -> dict:
    if granularity in WINDOW_DAYS:
        start = end - timedelta(days=WINDOW_DAYS[granularity] - 1)
    else:
        start = min(settings.YEARLY_LOOKBACK_FLOOR, end)
    return {
        "project_id": project_id,
        "granularity": granularity,
        "start_date": str(start),
        "end_date": str(end),
        "days_with_data": 0,
        **{n: 0 for n in METRIC_FIELDS},
    }


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return body.get("code") or body.get("message") or str(body)
    return str(body)


class ProgressClient:
    """
    Thin wrapper around an `httpx.Client`.

    Pass `http` to reuse a configured client (base URL, auth cookie,
    transport); otherwise one is created for `base_url`.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: Optional[str] = None,
        http: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self._http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}

    def close(self) -> None:
        self._http.close()

    # --- writes ---

    def _write(self, method: str, url: str, **kwargs: Any) -> WriteResult:
        try:
            response = self._http.request(method, url, headers=self._headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            return WriteResult(ok=False, error=str(exc) or exc.__class__.__name__)
        if response.is_error:
            logger.warning("%s %s rejected with %s", method, url, response.status_code)
            return WriteResult(ok=False, error=_error_text(response), status_code=response.status_code)
        try:
            body = response.json()
        except ValueError:
            logger.warning("%s %s answered %s with a non-JSON body", method, url, response.status_code)
            return WriteResult(ok=False, error="Invalid response body", status_code=response.status_code)
        data = body.get("data", body) if isinstance(body, dict) else body
        return WriteResult(ok=True, data=data, status_code=response.status_code)

    def sync_today(self, project_id: str, fields: dict) -> WriteResult:
        """Replace the server's today record with `fields`."""
        return self._write("POST", f"/stats/{project_id}", json=fields)

    def write_replace(self, project_id: str, day: date, fields: dict, sessions: Optional[list] = None) -> WriteResult:
        payload = {"project_id": project_id, "date": str(day), **fields}
        if sessions:
            payload["sessions"] = sessions
        return self._write("POST", "/daily-achievements", json=payload)

    def write_merge(self, project_id: str, day: date, fields: dict) -> WriteResult:
        payload = {"project_id": project_id, "date": str(day), **fields}
        return self._write("PATCH", "/daily-achievements", json=payload)

    def delete(self, project_id: str, day: Optional[date] = None, delete_all: bool = False) -> WriteResult:
        params: dict[str, Any] = {"projectId": project_id, "deleteAll": str(delete_all).lower()}
        if day is not None:
            params["date"] = str(day)
        return self._write("DELETE", "/daily-achievements", params=params)

    # --- reads ---

    def read_aggregate(self, project_id: str, granularity: str, today: Optional[date] = None) -> Union[list, dict]:
        try:
            response = self._http.get(
                f"/stats/{project_id}", params={"type": granularity}, headers=self._headers
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Stats read failed for project=%s type=%s: %s", project_id, granularity, exc)
        end = today or date.today()
        if granularity == "daily":
            return [_zero_day(project_id, end - timedelta(days=i)) for i in range(6, -1, -1)]
        return _zero_rollup(project_id, granularity, end)

    def read_today(self, project_id: str, today: Optional[date] = None) -> dict:
        day = today or date.today()
        try:
            response = self._http.get(
                "/daily-achievements",
                params={"projectId": project_id, "date": str(day)},
                headers=self._headers,
            )
            response.raise_for_status()
            return response.json()["data"][0]
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as exc:
            logger.warning("Today read failed for project=%s: %s", project_id, exc)
        return _zero_day(project_id, day)
