"""
Domain-split Pydantic schemas with a compatibility aggregator.
"""

from .users import (
    Role,
    AccountStatus,
    UserBase,
    UserCreate,
    UserUpdate,
    User,
    UserStatusUpdate,
    UserRolesUpdate,
    RoleSwitch,
)
from .audits import AuditLogBase, AuditLogCreate, AuditLog, ActivityPage
from .bulk_ops import (
    Progress,
    FailedItem,
    OperationResults,
    OperationFiles,
    BulkOperationCreate,
    BulkOperation,
    BulkOperationSubmitted,
    BulkOperationList,
)

__all__ = [
    "Role",
    "AccountStatus",
    "UserBase",
    "UserCreate",
    "UserUpdate",
    "User",
    "UserStatusUpdate",
    "UserRolesUpdate",
    "RoleSwitch",
    "AuditLogBase",
    "AuditLogCreate",
    "AuditLog",
    "ActivityPage",
    "Progress",
    "FailedItem",
    "OperationResults",
    "OperationFiles",
    "BulkOperationCreate",
    "BulkOperation",
    "BulkOperationSubmitted",
    "BulkOperationList",
]
