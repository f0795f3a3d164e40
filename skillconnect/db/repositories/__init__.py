"""Repository modules for users, audit logs and bulk operations."""

__all__ = [
    "users",
    "audits",
    "bulk_ops",
]
