"""
Alembic migrations apply cleanly on an empty SQLite database.
"""
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

ROOT = Path(__file__).resolve().parents[2]


def _config(url):
    # No ini file, so the app's logging setup is left alone
    cfg = Config()
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", url)
    return cfg


def test_upgrade_and_downgrade(tmp_path, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    url = f"sqlite:///{tmp_path / 'migrate.db'}"
    cfg = _config(url)

    command.upgrade(cfg, "head")

    engine = create_engine(url)
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())
    assert {"users", "audit_logs", "bulk_operations"} <= tables
    op_columns = {c["name"] for c in inspector.get_columns("bulk_operations")}
    assert {"operation_id", "progress_processed", "cancel_requested", "results", "input_file", "output_file"} <= op_columns
    unique = [ix for ix in inspector.get_indexes("bulk_operations") if ix["unique"]]
    assert any(ix["column_names"] == ["operation_id"] for ix in unique)

    command.downgrade(cfg, "base")
    assert "bulk_operations" not in set(inspect(engine).get_table_names())
    engine.dispose()
