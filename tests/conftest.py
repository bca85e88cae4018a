import os
from uuid import uuid4

# Settings are read at import time by app.core.db.session; point them at an
# in-memory database before anything from app is imported.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("AUTOMATION_QUEUE_ENABLED", "false")
os.environ.setdefault("AUTOMATION_CRON_SECRET", "")
os.environ.setdefault("TWILIO_ACCOUNT_SID", "")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.config_file import get_settings  # noqa: E402
from app.core.db.deps import get_db  # noqa: E402
from app.core.db.session import Base  # noqa: E402
from app.main import app  # noqa: E402

get_settings.cache_clear()


@pytest.fixture(scope="function")
def test_engine():
    """In-memory SQLite engine shared by every connection of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine):
    """Database session on a fresh schema."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database dependency override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def tenant_id():
    return uuid4()


@pytest.fixture
def tenant_headers(tenant_id):
    return {"X-Tenant-ID": str(tenant_id)}


@pytest.fixture
def settings_override(monkeypatch):
    """Set environment variables and reload settings for one test."""

    def _apply(**values):
        for key, value in values.items():
            monkeypatch.setenv(key, str(value))
        get_settings.cache_clear()
        return get_settings()

    yield _apply
    monkeypatch.undo()
    get_settings.cache_clear()
