import os

os.environ["ENV"] = "test"
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("HIDDEN_KEYWORDS", "")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import app.models  # noqa: E402,F401
from app.db import Base, db_manager, get_db  # noqa: E402
from app.routers.utils.dependencies import get_notifier  # noqa: E402

pytest_plugins = [
    "tests.fixtures.message_fixtures",
    "tests.fixtures.notification_fixtures",
]

ADMIN_HEADERS = {"Authorization": "Bearer test-admin-key"}


@pytest.fixture(scope="function")
def db():
    """Fresh schema per test on the in-memory SQLite engine."""
    Base.metadata.create_all(bind=db_manager.engine)
    session = db_manager.SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=db_manager.engine)


@pytest.fixture(scope="function")
def client(db, recording_notifier):
    """TestClient sharing the test session and recording notifications."""
    from app.main import create_app

    app = create_app(testing=True)

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_notifier] = lambda: recording_notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return dict(ADMIN_HEADERS)
