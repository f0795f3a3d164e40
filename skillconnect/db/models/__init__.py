"""
Domain-split SQLAlchemy models with a compatibility aggregator.

Exposes `Base`, `now_utc` and all ORM classes from one import path.
"""

from .base import Base, now_utc, new_object_id  # re-export

from .users import User
from .audit import AuditLog
from .bulk_ops import BulkOperation

__all__ = [
    "Base",
    "now_utc",
    "new_object_id",
    "User",
    "AuditLog",
    "BulkOperation",
]
