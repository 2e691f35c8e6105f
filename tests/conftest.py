from __future__ import annotations

import os
import pathlib
import sys
import tempfile
from typing import Callable, Iterator

import pytest

ROOT_DIR = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

_DB_DIR = tempfile.mkdtemp(prefix="docchat-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_DB_DIR}/docchat.db")
os.environ.setdefault("EMAIL_BACKEND", "console")

from fastapi.testclient import TestClient

from docchat.config import settings
from docchat.db.session import SessionLocal, engine
from docchat.main import app
from docchat.models import Base
from tests.helpers import make_user_session


@pytest.fixture(scope="session")
def database_url() -> str:
    """Expose DATABASE_URL used for integration tests."""
    return settings.database_url

@pytest.fixture(scope="session", autouse=True)
def create_schema() -> Iterator[None]:
    """Create tables from the ORM metadata once per test session."""
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)

@pytest.fixture(scope="session")
def client(create_schema) -> Iterator[TestClient]:
    """Provide a FastAPI TestClient instance."""
    with TestClient(app) as _client:
        yield _client

@pytest.fixture()
def auth_context(client: TestClient) -> Iterator[dict[str, str]]:
    """Create an authenticated session and attach cookie to the client."""
    context = make_user_session("owner@example.com")
    client.cookies.set(settings.cookie_name, context["token"])
    try:
        yield context
    finally:
        client.cookies.clear()

@pytest.fixture()
def upload_text(client: TestClient, auth_context) -> Callable[..., dict]:
    """Upload a UTF-8 text document as the authenticated user."""

    def _upload(content: str = "The warranty lasts 24 months.", filename: str = "notes.txt") -> dict:
        response = client.post(
            "/documents/upload",
            files={"file": (filename, content.encode("utf-8"), "text/plain")},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _upload

@pytest.fixture(autouse=True)
def cleanup_database(create_schema) -> Iterator[None]:
    """Empty every table after each test to keep isolation."""
    yield
    with SessionLocal() as session:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
