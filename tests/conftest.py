import os

import pytest
import pytest_asyncio

# Tests run against in-memory SQLite unless a database is given explicitly
if not os.getenv("SKILLCONNECT_TEST_DB"):
    for _var in ("DATABASE_URL", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_HOST", "POSTGRES_PORT", "POSTGRES_DB"):
        os.environ.pop(_var, None)
os.environ.setdefault("EMAIL_BACKEND", "memory")

from skillconnect.bulk.config import BulkOperationsConfig
from skillconnect.bulk.engine import BulkOperationEngine
from skillconnect.db import database, models, schemas
from skillconnect.db.repositories import users as users_repo
from skillconnect.services.notification_sink import RecordingNotificationSink

ADMIN_EMAIL = "admin@skillconnect.test"


@pytest.fixture(autouse=True)
def _fresh_schema():
    """Recreate all tables for every test."""
    models.Base.metadata.drop_all(bind=database.engine)
    models.Base.metadata.create_all(bind=database.engine)
    database._SCHEMA_INIT_DONE = True
    yield
    models.Base.metadata.drop_all(bind=database.engine)


@pytest.fixture
def db_session():
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sink():
    return RecordingNotificationSink()


@pytest.fixture
def bulk_config(tmp_path, monkeypatch):
    monkeypatch.setenv("BULK_UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("BULK_EXPORT_DIR", str(tmp_path / "exports"))
    return BulkOperationsConfig()


@pytest.fixture
def bulk_engine(sink, bulk_config):
    return BulkOperationEngine(session_factory=database.SessionLocal, sink=sink, config=bulk_config)


@pytest.fixture
def make_user(db_session):
    """Factory creating users directly in the store."""

    def _make(email, first_name="Test", last_name="User", roles=None, account_status="active", **extra):
        return users_repo.create_user(
            db_session,
            schemas.UserCreate(
                first_name=first_name,
                last_name=last_name,
                email=email,
                roles=roles or ["mentee"],
                account_status=account_status,
                **extra,
            ),
        )

    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user(ADMIN_EMAIL, first_name="Ada", last_name="Admin", roles=["admin"])


@pytest.fixture
def admin_headers(admin_user):
    return {"X-Auth-Request-Email": ADMIN_EMAIL}


@pytest.fixture
def app(bulk_engine):
    from skillconnect.api.deps import get_bulk_engine
    from skillconnect.api.main import app as fastapi_app

    fastapi_app.dependency_overrides[get_bulk_engine] = lambda: bulk_engine
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest_asyncio.fixture
async def async_client(app):
    """httpx client on the test's event loop, so submitted jobs can be awaited."""
    import httpx

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
