"""
Audit logging helpers and enums.

Centralized helpers to persist normalized audit records with consistent
schema; includes convenience wrappers per target type.
"""
from __future__ import annotations
import logging
from enum import Enum
from typing import Any, Optional, Dict
from sqlalchemy.orm import Session

from skillconnect.db import schemas
from skillconnect.db.repositories import audits as audit_repo

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    # Users
    USER_CREATED = "user_created"
    USER_UPDATED = "user_updated"
    USER_DELETED = "user_deleted"
    USER_SUSPENDED = "user_suspended"
    USER_REACTIVATED = "user_reactivated"
    ROLE_ASSIGNED = "role_assigned"
    ROLE_SWITCHED = "role_switched"
    USER_DEACTIVATED = "user_deactivated"
    # Bulk ops
    BULK_OPERATION_START = "bulk_operation_start"
    BULK_OPERATION_COMPLETE = "bulk_operation_complete"
    BULK_OPERATION_CANCEL = "bulk_operation_cancel"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


def log(
    db: Session,
    *,
    action: AuditAction | str,
    status: AuditStatus | str = AuditStatus.SUCCESS,
    target_type: str,
    target_id: Optional[str] = None,
    actor_user_id: Optional[str],
    reason: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> schemas.AuditLog:
    """Central audit logging helper.

    Ensures consistent schema and a single place for enrichment.
    """
    # Persist pure string values, not Enum reprs (avoid 'AuditAction.XYZ')
    action_value = action.value if isinstance(action, AuditAction) else str(action)
    status_value = status.value if isinstance(status, AuditStatus) else str(status)
    audit_log = schemas.AuditLogCreate(
        action_type=action_value,
        status=status_value,
        target_type=target_type,
        target_id=str(target_id) if target_id is not None else None,
        reason=reason,
        metadata=metadata or {},
    )
    return audit_repo.create_audit_log(db, audit_log=audit_log, actor_user_id=actor_user_id)


def log_quietly(db: Session, **kwargs) -> Optional[schemas.AuditLog]:
    """Like ``log`` but never raises; audit failures must not break the caller."""
    try:
        return log(db, **kwargs)
    except Exception as e:
        db.rollback()
        logger.warning("audit_log_failed action=%s: %s", kwargs.get("action"), e)
        return None


__all__ = ["AuditAction", "AuditStatus", "log", "log_quietly"]


def log_user(db: Session, *, actor_user_id: Optional[str], user_id: str, action: AuditAction, status: AuditStatus | str = AuditStatus.SUCCESS, reason: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None):
    return log_quietly(
        db,
        action=action,
        status=status,
        target_type="user",
        target_id=user_id,
        actor_user_id=actor_user_id,
        reason=reason,
        metadata=metadata,
    )


def log_bulk_operation(db: Session, *, actor_user_id: Optional[str], operation_id: str, action: AuditAction, status: AuditStatus | str = AuditStatus.SUCCESS, metadata: Optional[Dict[str, Any]] = None):
    return log_quietly(
        db,
        action=action,
        status=status,
        target_type="bulk_operation",
        target_id=operation_id,
        actor_user_id=actor_user_id,
        metadata=metadata,
    )

__all__.extend(["log_user", "log_bulk_operation"])
