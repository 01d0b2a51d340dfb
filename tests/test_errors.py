"""
Tests for error handling: structured error responses, HTTP status codes,
and the custom exception classes.
"""
from datetime import date

import pytest

from focus_progress.core.errors import (
    AuthenticationRequiredError,
    MissingKeyFieldsError,
    ProgressException,
    ReconciliationFailure,
    StoreReadError,
)


# ---------------------------------------------------------------------------
# Unit tests on exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    def test_missing_key_fields_error(self):
        err = MissingKeyFieldsError(["project_id", "date"])
        assert err.http_status == 422
        assert err.code == "MISSING_KEY_FIELDS"
        assert "project_id" in err.message
        assert err.to_dict()["details"]["missing"] == ["project_id", "date"]

    def test_reconciliation_failure(self):
        err = ReconciliationFailure("p1", date(2026, 2, 20), reason="OperationalError")
        assert err.http_status == 503
        assert err.code == "RECONCILIATION_FAILED"
        d = err.to_dict()
        assert d["details"]["date"] == "2026-02-20"
        assert d["details"]["project_id"] == "p1"
        assert d["details"]["reason"] == "OperationalError"

    def test_reconciliation_failure_without_day(self):
        err = ReconciliationFailure("p1", None, reason="OperationalError")
        assert "date" not in err.details

    def test_store_read_error(self):
        err = StoreReadError("p1", reason="OperationalError")
        assert err.http_status == 503
        assert err.code == "STORE_UNAVAILABLE"

    def test_authentication_required(self):
        err = AuthenticationRequiredError()
        assert err.http_status == 401
        assert err.code == "AUTHENTICATION_REQUIRED"

    def test_to_dict_without_details(self):
        d = AuthenticationRequiredError().to_dict()
        assert "code" in d
        assert "message" in d
        assert "details" not in d

    @pytest.mark.parametrize("cls_args", [
        (MissingKeyFieldsError, (["date"],)),
        (ReconciliationFailure, ("p", None, "x")),
        (StoreReadError, ("p", "x")),
        (AuthenticationRequiredError, ()),
    ])
    def test_all_subclass_base(self, cls_args):
        cls, args = cls_args
        assert isinstance(cls(*args), ProgressException)


# ---------------------------------------------------------------------------
# Structured responses from the API
# ---------------------------------------------------------------------------

class TestErrorResponses:
    def test_validation_error_envelope(self, client):
        r = client.post("/daily-achievements", json={"date": "not-a-date"})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["message"]
        for err in body["details"]["errors"]:
            assert set(err) == {"field", "message", "type"}

    def test_store_read_error_is_503(self, client, project_id, monkeypatch):
        from focus_progress.services import aggregator

        def broken(*args, **kwargs):
            raise StoreReadError(project_id, reason="OperationalError")

        monkeypatch.setattr(aggregator, "_fetch", broken)
        r = client.get(f"/stats/{project_id}", params={"type": "weekly"})
        assert r.status_code == 503
        assert r.json()["code"] == "STORE_UNAVAILABLE"

    def test_unknown_route_is_404(self, client):
        r = client.get("/nope")
        assert r.status_code == 404
