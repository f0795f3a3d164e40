"""
Audit log repository functions.

Implements create and query functions for audit logs.
"""
from __future__ import annotations

from typing import Optional
from sqlalchemy.orm import Session

from skillconnect.db import schemas, models


def create_audit_log(db: Session, audit_log: schemas.AuditLogCreate, actor_user_id: Optional[str]):
    data = audit_log.model_dump()
    metadata_payload = data.pop('metadata', None)
    db_audit_log = models.AuditLog(
        **data,
        actor_user_id=actor_user_id,
        metadata_json=metadata_payload,
    )
    db.add(db_audit_log)
    db.commit()
    db.refresh(db_audit_log)
    return db_audit_log


def _filtered(
    db: Session,
    actor_user_id: Optional[str],
    target_id: Optional[str],
    action_type: Optional[str],
    status: Optional[str],
):
    query = db.query(models.AuditLog)
    if actor_user_id:
        query = query.filter(models.AuditLog.actor_user_id == actor_user_id)
    if target_id:
        query = query.filter(models.AuditLog.target_id == target_id)
    if action_type:
        query = query.filter(models.AuditLog.action_type == action_type)
    if status:
        query = query.filter(models.AuditLog.status == status)
    return query


def get_audit_logs(
    db: Session,
    actor_user_id: Optional[str] = None,
    target_id: Optional[str] = None,
    action_type: Optional[str] = None,
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
):
    query = _filtered(db, actor_user_id, target_id, action_type, status)
    return query.order_by(models.AuditLog.created_at.desc()).offset(skip).limit(limit).all()


def count_audit_logs(
    db: Session,
    actor_user_id: Optional[str] = None,
    target_id: Optional[str] = None,
    action_type: Optional[str] = None,
    status: Optional[str] = None,
) -> int:
    return _filtered(db, actor_user_id, target_id, action_type, status).count()
