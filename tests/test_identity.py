"""
Tests for identity resolution: tokens, cookies and the anonymous fallback.
"""
from datetime import timedelta

from jose import jwt
from starlette.requests import Request

from focus_progress.core.config import settings
from focus_progress.services.identity import (
    ANONYMOUS,
    Identity,
    identity_from_token,
    issue_token,
    resolve_identity,
)


def _request(headers: dict | None = None) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


class TestIdentityFromToken:
    def test_valid_token(self):
        assert identity_from_token(issue_token("user-1")) == Identity(user_id="user-1")

    def test_missing_token_is_anonymous(self):
        assert identity_from_token(None) is ANONYMOUS
        assert identity_from_token("") is ANONYMOUS

    def test_garbage_token_is_anonymous(self):
        assert identity_from_token("not.a.jwt") is ANONYMOUS

    def test_expired_token_is_anonymous(self):
        token = issue_token("user-1", expires_delta=timedelta(seconds=-30))
        assert identity_from_token(token) is ANONYMOUS

    def test_wrong_secret_is_anonymous(self):
        token = jwt.encode({"sub": "user-1"}, "another-secret", algorithm=settings.JWT_ALGORITHM)
        assert identity_from_token(token) is ANONYMOUS

    def test_token_without_subject_is_anonymous(self):
        token = jwt.encode({"role": "admin"}, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
        assert identity_from_token(token) is ANONYMOUS

    def test_blank_subject_is_anonymous(self):
        token = jwt.encode({"sub": "  "}, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
        assert identity_from_token(token) is ANONYMOUS


class TestResolveIdentity:
    def test_bearer_header(self):
        req = _request({"Authorization": f"Bearer {issue_token('user-2')}"})
        assert resolve_identity(req).user_id == "user-2"

    def test_cookie(self):
        cookie = f"{settings.IDENTITY_COOKIE_NAME}={issue_token('user-3')}"
        assert resolve_identity(_request({"Cookie": cookie})).user_id == "user-3"

    def test_header_wins_over_cookie(self):
        req = _request({
            "Authorization": f"Bearer {issue_token('from-header')}",
            "Cookie": f"{settings.IDENTITY_COOKIE_NAME}={issue_token('from-cookie')}",
        })
        assert resolve_identity(req).user_id == "from-header"

    def test_non_bearer_scheme_ignored(self):
        req = _request({"Authorization": f"Basic {issue_token('user-4')}"})
        assert resolve_identity(req).is_anonymous

    def test_no_credentials(self):
        assert resolve_identity(_request()).is_anonymous


class TestIdentityOverHttp:
    def test_invalid_token_writes_as_anonymous(self, client, project_id):
        r = client.post(
            "/daily-achievements",
            json={"project_id": project_id, "date": "2024-01-01", "focus_sessions": 1},
            headers={"Authorization": "Bearer garbage"},
        )
        assert r.status_code == 200
        assert r.json()["data"]["user_id"] is None

    def test_cookie_identity_used_for_writes(self, client, project_id):
        client.cookies.set(settings.IDENTITY_COOKIE_NAME, issue_token("cookie-user"))
        try:
            r = client.post(
                "/daily-achievements",
                json={"project_id": project_id, "date": "2024-01-01", "focus_sessions": 1},
            )
        finally:
            client.cookies.clear()
        assert r.json()["data"]["user_id"] == "cookie-user"
