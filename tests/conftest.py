"""
Shared pytest fixtures.

Uses a SQLite file database so no Postgres is required for tests. Tests
isolate themselves with a fresh project id instead of a fresh database.
"""
import os
import uuid

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_focus_progress.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from focus_progress.db.base import Base, get_db
from focus_progress.main import app
from focus_progress import models  # noqa: F401
from focus_progress.services.identity import issue_token

SQLITE_URL = "sqlite:///./test_focus_progress.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def project_id() -> str:
    return f"proj-{uuid.uuid4().hex[:12]}"


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {issue_token(user_id)}"}
