"""Pytest configuration to ensure local testing defaults."""

from __future__ import annotations

import base64
import os
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

# During pytest runs we force SQLAlchemy to use a local sqlite database so that tests
# do not require a running PostgreSQL server.
default_sqlite_url = f"sqlite:///{(BACKEND_DIR / 'tests' / 'test_orders.db').resolve().as_posix()}"
os.environ.setdefault("DATABASE_URL", default_sqlite_url)
os.environ.setdefault("ADMIN_USERNAME", "admin")
os.environ.setdefault("ADMIN_PASSWORD", "test-secret")
os.environ.setdefault("PUBLIC_BASE_URL", "http://testserver")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from jersey_orders.config import get_settings  # noqa: E402
from jersey_orders.database import Base, get_db  # noqa: E402
from jersey_orders.main import app  # noqa: E402

settings = get_settings()
engine = create_engine(settings.get_database_url(), pool_pre_ping=True, future=True)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db

ADMIN_AUTH = (settings.admin_username, settings.admin_password)
ADMIN_HEADERS = {
    "Authorization": "Basic " + base64.b64encode(":".join(ADMIN_AUTH).encode()).decode(),
}


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app, headers=ADMIN_HEADERS)


@pytest.fixture
def anonymous_client():
    return TestClient(app)
