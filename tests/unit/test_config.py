import pytest

from skillconnect.bulk.config import DEFAULT_MAX_UPLOAD_BYTES, BulkOperationsConfig
from skillconnect.db import database


def test_bulk_config_defaults(monkeypatch):
    for var in ("BULK_UPLOAD_DIR", "BULK_EXPORT_DIR", "BULK_MAX_UPLOAD_BYTES", "BULK_EMAIL_MAX_ATTEMPTS", "BULK_IMPORT_DEFAULT_PASSWORD"):
        monkeypatch.delenv(var, raising=False)
    cfg = BulkOperationsConfig()
    assert cfg.upload_dir == "uploads"
    assert cfg.export_dir == "uploads"
    assert cfg.max_upload_bytes == DEFAULT_MAX_UPLOAD_BYTES
    assert cfg.email_max_attempts == 1
    assert cfg.import_default_password == "DefaultPassword123!"
    assert cfg.validate() == []


def test_bulk_config_clamps_attempts_and_validates(monkeypatch):
    monkeypatch.setenv("BULK_EMAIL_MAX_ATTEMPTS", "0")
    monkeypatch.setenv("BULK_MAX_UPLOAD_BYTES", "0")
    monkeypatch.setenv("BULK_IMPORT_DEFAULT_PASSWORD", "abc")
    cfg = BulkOperationsConfig()
    assert cfg.email_max_attempts == 1
    errors = cfg.validate()
    assert any("BULK_MAX_UPLOAD_BYTES" in e for e in errors)
    assert any("BULK_IMPORT_DEFAULT_PASSWORD" in e for e in errors)


def test_database_url_precedence(monkeypatch):
    for var in ("SKILLCONNECT_TEST_DB", "DATABASE_URL", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_HOST", "POSTGRES_PORT", "POSTGRES_DB"):
        monkeypatch.delenv(var, raising=False)
    assert database._get_database_url() == "sqlite+pysqlite:///:memory:"

    monkeypatch.setenv("POSTGRES_USER", "u")
    monkeypatch.setenv("POSTGRES_PASSWORD", "p")
    monkeypatch.setenv("POSTGRES_HOST", "db")
    monkeypatch.setenv("POSTGRES_PORT", "5432")
    monkeypatch.setenv("POSTGRES_DB", "skillconnect")
    assert database._get_database_url() == "postgresql://u:p@db:5432/skillconnect"

    monkeypatch.setenv("DATABASE_URL", "postgresql://other/db")
    assert database._get_database_url() == "postgresql://other/db"

    monkeypatch.setenv("SKILLCONNECT_TEST_DB", "sqlite:///t.db")
    assert database._get_database_url() == "sqlite:///t.db"


def test_database_url_outside_pytest_requires_settings(monkeypatch):
    for var in ("SKILLCONNECT_TEST_DB", "DATABASE_URL", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_HOST", "POSTGRES_PORT", "POSTGRES_DB"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(database, "_is_pytest_runtime", lambda: False)
    with pytest.raises(ValueError, match="POSTGRES_USER"):
        database._get_database_url()
