"""SQLite compilation shim for the PostgreSQL JSONB type.

Lets `Base.metadata.create_all()` succeed on the in-memory SQLite database
used by tests. JSONB operators and indexing are not emulated; storage of
plain JSON values is.

Usage: imported for side-effects by skillconnect.db.models.
"""
from __future__ import annotations

from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(element, compiler, **kw):  # pragma: no cover - trivial
    return "JSON"
