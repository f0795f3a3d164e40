"""
Shared SQLAlchemy base and helpers.
"""
import secrets
from sqlalchemy.orm import declarative_base
from datetime import datetime, UTC

# SQLite compilation shims for PostgreSQL-only types when running tests.
from .. import sqlite_compiler_shims  # noqa: F401


def now_utc():
    """Return an aware UTC datetime for default/updated timestamps."""
    return datetime.now(UTC)


def new_object_id() -> str:
    """Return a 24-char lower-case hex identifier for user records."""
    return secrets.token_hex(12)


Base = declarative_base()
